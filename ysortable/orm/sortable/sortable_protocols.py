"""排序协议定义

- Orderable: 可排序记录需要实现的能力接口，排序引擎只通过它访问记录
- RankCondition: 作用于排序字段的范围条件，供存储层翻译为查询条件
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class Orderable(Protocol):
    """可排序记录协议

    任意记录类型实现这些方法即可交给 OrderEngine 排序，
    SQLAlchemy 模型可直接继承 SortableMixin，普通对象可继承 OrderableMixin。
    """

    def get_sort_key(self) -> Any: ...

    def get_sort_rank(self) -> int: ...

    def set_sort_rank(self, rank: int) -> None: ...

    def get_sort_flags(self) -> Optional[int]: ...

    def set_sort_flags(self, flags: int) -> None: ...

    def get_sort_partition(self) -> Dict[str, Any]: ...


# 比较符 -> 比较函数（同时适用于 Python 值与 SQLAlchemy 列表达式）
_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


@dataclass(frozen=True)
class RankCondition:
    """排序字段范围条件

    使用示例:
        RankCondition(">", 10).matches(11)        # True
        RankCondition("<=", 10).apply(Model.weight)  # Model.weight <= 10
    """
    op: str
    value: int

    def __post_init__(self):
        if self.op not in _OPERATORS:
            raise ValueError(f"不支持的比较符：{self.op}")

    def apply(self, left: Any) -> Any:
        """对左值应用比较，返回布尔值或 SQL 表达式"""
        return _OPERATORS[self.op](left, self.value)

    def matches(self, rank: Optional[int]) -> bool:
        """判断排序值是否满足条件（与 SQL 一致，None 不满足任何条件）"""
        if rank is None:
            return False
        return bool(self.apply(rank))


__all__ = [
    "Orderable",
    "RankCondition",
]
