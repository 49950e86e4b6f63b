"""内存记录存储

适用于：
- 单进程内的有序集合（如配置项、菜单）
- 开发测试

注意：数据只保存在内存中，进程重启后丢失。
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..sortable_protocols import RankCondition
from .base import BaseRecordStore, Partition


class MemoryRecordStore(BaseRecordStore):
    """内存记录存储

    直接持有记录对象，更新时原地修改对象属性。
    atomic() 期间的所有写入都会记录旧值，块内抛出异常时自动恢复。

    使用示例:
        store = MemoryRecordStore([item1, item2, item3])
        engine = OrderEngine(store, SortConfig())
        engine.move_up(item1)
    """

    def __init__(self, records: Iterable[Any] = None, key_field: str = "id"):
        super().__init__(key_field=key_field)
        self._records: Dict[Any, Any] = {}
        self._lock = threading.RLock()
        # 原子操作期间的旧值记录：(主键, 字段) -> 旧值
        self._journal: Optional[Dict[Tuple[Any, str], Any]] = None
        for record in records or ():
            self.add(record)

    # ==================== 记录管理 ====================

    def add(self, record: Any) -> Any:
        """添加记录"""
        with self._lock:
            self._records[getattr(record, self.key_field)] = record
        return record

    def remove(self, key: Any) -> Optional[Any]:
        """删除记录，返回被删除的记录"""
        with self._lock:
            return self._records.pop(key, None)

    def all(self) -> List[Any]:
        """获取所有记录（按添加顺序）"""
        with self._lock:
            return list(self._records.values())

    # ==================== 内部方法 ====================

    @staticmethod
    def _in_partition(record: Any, partition: Partition) -> bool:
        if not partition:
            return True
        return all(getattr(record, name) == value for name, value in partition.items())

    def _select(
        self,
        field: str,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
        key_field: Optional[str] = None,
        key: Any = None,
    ) -> List[Any]:
        matched = []
        for record in self._records.values():
            if not self._in_partition(record, partition):
                continue
            if condition is not None and not condition.matches(getattr(record, field)):
                continue
            if key_field is not None and getattr(record, key_field) != key:
                continue
            matched.append(record)
        return matched

    def _write(self, record: Any, field: str, value: Any) -> None:
        if self._journal is not None:
            journal_key = (getattr(record, self.key_field), field)
            if journal_key not in self._journal:
                self._journal[journal_key] = (record, getattr(record, field, None))
        setattr(record, field, value)

    # ==================== 查询 ====================

    def query_max(self, field: str, partition: Partition = None) -> Optional[int]:
        with self._lock:
            values = [getattr(r, field) for r in self._select(field, partition)]
            values = [v for v in values if v is not None]
            return max(values) if values else None

    def query_min(self, field: str, partition: Partition = None) -> Optional[int]:
        with self._lock:
            values = [getattr(r, field) for r in self._select(field, partition)]
            values = [v for v in values if v is not None]
            return min(values) if values else None

    def query_ordered(
        self,
        field: str,
        partition: Partition = None,
        descending: bool = False,
        limit: Optional[int] = None,
        condition: Optional[RankCondition] = None,
    ) -> List[Any]:
        with self._lock:
            records = [
                r for r in self._select(field, partition, condition)
                if getattr(r, field) is not None
            ]
            records.sort(
                key=lambda r: (getattr(r, field), getattr(r, self.key_field)),
                reverse=descending,
            )
            return records[:limit] if limit is not None else records

    def count(
        self,
        field: str,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
    ) -> int:
        with self._lock:
            return len(self._select(field, partition, condition))

    def get(self, key: Any) -> Optional[Any]:
        with self._lock:
            return self._records.get(key)

    # ==================== 更新 ====================

    def update_field(
        self,
        key: Any,
        field: str,
        value: Any,
        partition: Partition = None,
        key_field: Optional[str] = None,
    ) -> int:
        with self._lock:
            targets = self._select(field, partition, key_field=key_field or self.key_field, key=key)
            for record in targets:
                self._write(record, field, value)
            return len(targets)

    def increment_field(
        self,
        field: str,
        delta: int,
        partition: Partition = None,
        condition: Optional[RankCondition] = None,
        exclude_key: Any = None,
    ) -> int:
        with self._lock:
            count = 0
            for record in self._select(field, partition, condition):
                if exclude_key is not None and getattr(record, self.key_field) == exclude_key:
                    continue
                self._write(record, field, (getattr(record, field) or 0) + delta)
                count += 1
            return count

    def bulk_update_excluding(
        self,
        field: str,
        value: Any,
        partition: Partition = None,
        excluded_keys: Iterable[Any] = (),
    ) -> int:
        excluded = list(excluded_keys)
        with self._lock:
            count = 0
            for record in self._select(field, partition):
                if getattr(record, self.key_field) in excluded:
                    continue
                self._write(record, field, value)
                count += 1
            return count

    # ==================== 原子操作 ====================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """原子操作范围

        持有存储锁直到块结束；块内抛出异常时恢复所有被修改的字段。
        支持嵌套，只有最外层负责记录和恢复。
        """
        with self._lock:
            if self._journal is not None:
                yield
                return

            self._journal = {}
            try:
                yield
            except BaseException:
                for (_, field), (record, old_value) in self._journal.items():
                    setattr(record, field, old_value)
                raise
            finally:
                self._journal = None
