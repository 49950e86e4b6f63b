"""记录存储抽象基类

定义排序引擎依赖的记录存储接口。排序引擎本身不执行查询、不管理事务，
所有读写都通过存储完成。
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..sortable_protocols import RankCondition


# 分组条件：字段名 -> 值（None 匹配 NULL），None / {} 表示不分组
Partition = Optional[Dict[str, Any]]


class BaseRecordStore(ABC):
    """记录存储抽象基类

    所有存储实现都应继承此类。记录以主键标识，
    partition 参数把查询和更新限制在一个分组内。
    """

    def __init__(self, key_field: str = "id"):
        self.key_field = key_field

    @abstractmethod
    def query_max(self, field: str, partition: Partition = None) -> Optional[int]:
        """查询分组内字段最大值，无记录返回 None"""
        pass

    @abstractmethod
    def query_min(self, field: str, partition: Partition = None) -> Optional[int]:
        """查询分组内字段最小值，无记录返回 None"""
        pass

    @abstractmethod
    def query_ordered(
        self,
        field: str,
        partition: Partition = None,
        descending: bool = False,
        limit: Optional[int] = None,
        condition: Optional[RankCondition] = None,
    ) -> List[Any]:
        """按字段排序查询记录

        排序值相同时按主键排序（与 descending 方向一致），保证结果确定。

        Args:
            field: 排序字段名
            partition: 分组条件
            descending: 是否降序
            limit: 最多返回条数，None 表示不限制
            condition: 作用于排序字段的范围条件

        Returns:
            记录列表
        """
        pass

    @abstractmethod
    def count(
        self,
        field: str,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
    ) -> int:
        """统计分组内满足条件的记录数"""
        pass

    @abstractmethod
    def get(self, key: Any) -> Optional[Any]:
        """根据主键加载记录，不存在返回 None"""
        pass

    @abstractmethod
    def update_field(
        self,
        key: Any,
        field: str,
        value: Any,
        partition: Partition = None,
        key_field: Optional[str] = None,
    ) -> int:
        """更新单条记录的字段

        Args:
            key: 主键值
            field: 字段名
            value: 新值
            partition: 分组条件，提供时只更新分组内的记录
            key_field: 用于定位记录的字段名，默认使用存储的主键字段

        Returns:
            受影响的记录数
        """
        pass

    @abstractmethod
    def increment_field(
        self,
        field: str,
        delta: int,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
        exclude_key: Any = None,
    ) -> int:
        """批量增减字段值（一次批量更新，而不是逐条更新）

        Args:
            field: 字段名
            delta: 增量（可为负数）
            partition: 分组条件
            condition: 作用于该字段的范围条件
            exclude_key: 排除的主键值

        Returns:
            受影响的记录数
        """
        pass

    @abstractmethod
    def bulk_update_excluding(
        self,
        field: str,
        value: Any,
        partition: Partition = None,
        excluded_keys: Iterable[Any] = (),
    ) -> int:
        """批量设置分组内除指定主键外所有记录的字段值

        Returns:
            受影响的记录数
        """
        pass

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """原子操作范围

        默认不做任何事，由调用方的事务保证原子性。
        子类可覆盖为保存点、快照回滚等实现。
        """
        yield
