"""排序异常定义

提供排序相关的异常类。

存储层的异常（如 SQLAlchemy 的数据库错误）不会被捕获或转换，
会原样抛给调用方。
"""

from typing import Any, Dict, Optional


class SortableError(Exception):
    """排序基础异常"""
    pass


class InvalidInputError(SortableError, TypeError):
    """无效输入异常

    当 set_new_order 收到的不是有序、可索引的主键序列时抛出。

    Attributes:
        value: 传入的无效值
    """

    def __init__(self, value: Any, message: str = None):
        self.value = value
        super().__init__(
            message or
            f"必须传入有序的主键序列（list / tuple 等），实际为 {type(value).__name__}"
        )


class RecordNotFoundError(SortableError, LookupError):
    """记录不存在异常

    当显式引用的记录（如 insert_before 的参照记录主键）无法加载时抛出。

    Attributes:
        key: 未找到的主键值
    """

    def __init__(self, key: Any):
        self.key = key
        super().__init__(f"记录不存在：{key!r}")


class PartitionMismatchError(SortableError):
    """分组不一致异常

    当一次操作涉及的两条记录不属于同一分组时抛出。
    不同分组之间的排序值没有可比性。

    Attributes:
        partition: 当前记录所在分组
        other_partition: 另一条记录所在分组
    """

    def __init__(
        self,
        partition: Optional[Dict[str, Any]],
        other_partition: Optional[Dict[str, Any]]
    ):
        self.partition = partition
        self.other_partition = other_partition
        super().__init__(
            f"记录不在同一分组中：{partition!r} != {other_partition!r}"
        )


class SortConfigError(SortableError, ValueError):
    """排序配置异常

    当排序配置无效时抛出（如排序字段名为空、排序策略不存在）。
    """
    pass


__all__ = [
    "SortableError",
    "InvalidInputError",
    "RecordNotFoundError",
    "PartitionMismatchError",
    "SortConfigError",
]
