"""排序引擎

维护分组内每条记录的整数排序值（rank），提供上移、下移、交换、
插入到指定记录前/后、移到开头/末尾、批量重排等操作。

约定：
    - 排序值越大，显示越靠前。第一条记录 = 排序值最大，最后一条 = 排序值最小
    - "上移" 表示与排序值更大的相邻记录交换，"下移" 反之
    - 排序值相同时按主键排序，保证结果确定

引擎本身无状态，不执行查询、不管理事务，所有读写都通过记录存储完成，
因此同一套算法既可用于 SQLAlchemy 模型，也可用于内存中的普通对象。

使用示例:
    from ysortable.orm.sortable import OrderEngine, SortConfig
    from ysortable.orm.sortable.stores import MemoryRecordStore

    store = MemoryRecordStore(items)
    engine = OrderEngine(store, SortConfig(group_by=("menu_id",)))

    engine.move_up(item)
    engine.insert_before(item, other)
    engine.set_new_order([3, 1, 2])
"""

from collections.abc import Sequence
from typing import Any, Dict, Iterable, List, Optional, Union

from ysortable.log import get_logger

from .exceptions import InvalidInputError, PartitionMismatchError, RecordNotFoundError
from .sortable_config import SortConfig, SortOnCreate
from .sortable_flags import SortFlag
from .sortable_protocols import Orderable, RankCondition
from .stores.base import BaseRecordStore, Partition

logger = get_logger()


class OrderEngine:
    """排序引擎

    Attributes:
        store: 记录存储
        config: 排序配置
    """

    def __init__(self, store: BaseRecordStore, config: SortConfig = None):
        self.store = store
        self.config = config or SortConfig()

    # ==================== 内部方法 ====================

    @property
    def _rank_field(self) -> str:
        return self.config.rank_field

    @staticmethod
    def _partition_of(record: Orderable) -> Partition:
        return record.get_sort_partition() or None

    @staticmethod
    def _same_key(record: Orderable, other: Orderable) -> bool:
        return record.get_sort_key() == other.get_sort_key()

    def _check_same_partition(self, record: Orderable, other: Orderable) -> None:
        partition = record.get_sort_partition()
        other_partition = other.get_sort_partition()
        if partition != other_partition:
            raise PartitionMismatchError(partition, other_partition)

    def _resolve(self, reference: Union[Orderable, Any]) -> Orderable:
        """参照对象可以是记录或主键"""
        if isinstance(reference, Orderable):
            return reference
        return self.load(reference)

    # 先写存储再同步到调用方持有的对象，存储失败时对象保持原值
    def _write_rank(self, record: Orderable, rank: int) -> None:
        self.store.update_field(record.get_sort_key(), self._rank_field, rank)
        record.set_sort_rank(rank)

    def _write_flags(self, record: Orderable, flags: int) -> None:
        self.store.update_field(record.get_sort_key(), self.config.flags_field, int(flags))
        record.set_sort_flags(int(flags))

    # ==================== 查询 ====================

    def load(self, key: Any) -> Orderable:
        """根据主键加载记录

        Raises:
            RecordNotFoundError: 记录不存在
        """
        record = self.store.get(key)
        if record is None:
            raise RecordNotFoundError(key)
        return record

    def max_rank(self, partition: Partition = None) -> int:
        """分组内最大排序值，无记录返回 0"""
        return self.store.query_max(self._rank_field, partition) or 0

    def min_rank(self, partition: Partition = None) -> int:
        """分组内最小排序值，无记录返回 0"""
        return self.store.query_min(self._rank_field, partition) or 0

    def first(self, partition: Partition = None) -> Optional[Orderable]:
        """分组内第一条记录（排序值最大）"""
        records = self.store.query_ordered(self._rank_field, partition, descending=True, limit=1)
        return records[0] if records else None

    def last(self, partition: Partition = None) -> Optional[Orderable]:
        """分组内最后一条记录（排序值最小）"""
        records = self.store.query_ordered(self._rank_field, partition, descending=False, limit=1)
        return records[0] if records else None

    def ordered(self, partition: Partition = None, descending: bool = True) -> List[Orderable]:
        """按显示顺序（默认排序值降序）列出分组内的记录"""
        return self.store.query_ordered(self._rank_field, partition, descending=descending)

    def previous_of(self, record: Orderable) -> Optional[Orderable]:
        """显示顺序中的前一条记录（排序值更大的最近记录）"""
        records = self.store.query_ordered(
            self._rank_field,
            self._partition_of(record),
            descending=False,
            limit=1,
            condition=RankCondition(">", record.get_sort_rank()),
        )
        return records[0] if records else None

    def next_of(self, record: Orderable) -> Optional[Orderable]:
        """显示顺序中的后一条记录（排序值更小的最近记录）"""
        records = self.store.query_ordered(
            self._rank_field,
            self._partition_of(record),
            descending=True,
            limit=1,
            condition=RankCondition("<", record.get_sort_rank()),
        )
        return records[0] if records else None

    def position_of(self, record: Orderable) -> int:
        """记录在显示顺序中的位置（从 1 开始）"""
        above = self.store.count(
            self._rank_field,
            self._partition_of(record),
            RankCondition(">", record.get_sort_rank()),
        )
        return above + 1

    # ==================== 创建 / 删除 ====================

    def on_before_create(self, record: Orderable) -> Orderable:
        """新建记录保存前设置初始排序值

        - APPEND: 分组内最大排序值 + 1
        - PREPEND: 分组内最小排序值 - 1
        - NONE: 不修改
        """
        self.assign_initial_ranks([record])
        return record

    def assign_initial_ranks(self, records: Iterable[Orderable]) -> List[Orderable]:
        """为一批同时新建的记录设置初始排序值

        每个分组只查询一次，按传入顺序依次分配。
        """
        records = list(records)
        policy = self.config.sort_on_create
        if policy is SortOnCreate.NONE:
            return records

        step = 1 if policy is SortOnCreate.APPEND else -1
        cursors: Dict[tuple, int] = {}
        for record in records:
            partition = record.get_sort_partition()
            cursor_key = tuple(partition.items())
            if cursor_key not in cursors:
                if policy is SortOnCreate.APPEND:
                    cursors[cursor_key] = self.max_rank(partition or None)
                else:
                    cursors[cursor_key] = self.min_rank(partition or None)
            cursors[cursor_key] += step
            record.set_sort_rank(cursors[cursor_key])
            logger.debug(
                f"初始排序值: key={record.get_sort_key()!r}, "
                f"policy={policy.value}, rank={cursors[cursor_key]}"
            )
        return records

    def on_after_create(self, record: Orderable) -> None:
        """新建记录保存后刷新所在分组的可移动标记"""
        if self.config.maintains_flags:
            self.reset_flags(self._partition_of(record))

    def on_after_delete(self, record: Orderable) -> None:
        """记录删除后刷新所在分组的可移动标记"""
        if self.config.maintains_flags:
            self.reset_flags(self._partition_of(record))

    # ==================== 移动 ====================

    def move_up(self, record: Orderable) -> Orderable:
        """上移一位（与排序值更大的相邻记录交换），已在最前时不做任何事"""
        previous = self.previous_of(record)
        if previous is None:
            logger.debug(f"上移忽略: key={record.get_sort_key()!r} 已在最前")
            return record
        return self.swap_ranks(record, previous)

    def move_down(self, record: Orderable) -> Orderable:
        """下移一位（与排序值更小的相邻记录交换），已在最后时不做任何事"""
        next_record = self.next_of(record)
        if next_record is None:
            logger.debug(f"下移忽略: key={record.get_sort_key()!r} 已在最后")
            return record
        return self.swap_ranks(record, next_record)

    def swap_ranks(self, record: Orderable, other: Orderable) -> Orderable:
        """交换两条记录的排序值（启用标记维护时同时交换标记）

        Raises:
            PartitionMismatchError: 两条记录不在同一分组
        """
        if self._same_key(record, other):
            return record
        self._check_same_partition(record, other)

        maintains_flags = self.config.maintains_flags
        with self.store.atomic():
            record_rank = record.get_sort_rank()
            other_rank = other.get_sort_rank()
            record_flags = record.get_sort_flags()
            other_flags = other.get_sort_flags()

            self._write_rank(other, record_rank)
            if maintains_flags and record_flags is not None:
                self._write_flags(other, record_flags)

            self._write_rank(record, other_rank)
            if maintains_flags and other_flags is not None:
                self._write_flags(record, other_flags)

        logger.debug(
            f"交换排序值: {record.get_sort_key()!r}={other_rank}, "
            f"{other.get_sort_key()!r}={record_rank}"
        )
        return record

    def insert_before(self, record: Orderable, reference: Union[Orderable, Any]) -> Orderable:
        """移动到参照记录之前（显示顺序）

        记录取得参照记录的排序值，分组内其余排序值 <= 该值的记录整体减 1。

        Args:
            record: 要移动的记录
            reference: 参照记录或其主键

        Raises:
            RecordNotFoundError: 参照主键不存在
            PartitionMismatchError: 参照记录不在同一分组
        """
        return self._insert(record, reference, "<=", -1)

    def insert_after(self, record: Orderable, reference: Union[Orderable, Any]) -> Orderable:
        """移动到参照记录之后（显示顺序）

        记录取得参照记录的排序值，分组内其余排序值 >= 该值的记录整体加 1。
        """
        return self._insert(record, reference, ">=", 1)

    def _insert(self, record: Orderable, reference: Union[Orderable, Any], op: str, delta: int) -> Orderable:
        reference = self._resolve(reference)
        if self._same_key(record, reference):
            return record
        self._check_same_partition(record, reference)

        partition = self._partition_of(record)
        with self.store.atomic():
            target = reference.get_sort_rank()
            self._write_rank(record, target)
            shifted = self.store.increment_field(
                self._rank_field,
                delta,
                partition,
                condition=RankCondition(op, target),
                exclude_key=record.get_sort_key(),
            )
            self.reset_flags(partition)

        logger.debug(
            f"插入: key={record.get_sort_key()!r}, rank={target}, "
            f"shifted={shifted}, delta={delta}"
        )
        return record

    def move_to_start(self, record: Orderable) -> Orderable:
        """移到开头（插入到第一条记录之前）"""
        first = self.first(self._partition_of(record))
        if first is None or self._same_key(record, first):
            return record
        return self.insert_before(record, first)

    def move_to_end(self, record: Orderable) -> Orderable:
        """移到末尾（插入到最后一条记录之后）"""
        last = self.last(self._partition_of(record))
        if last is None or self._same_key(record, last):
            return record
        return self.insert_after(record, last)

    # ==================== 批量重排 ====================

    def set_new_order(
        self,
        keys: Sequence,
        start_order: int = 1,
        partition: Partition = None,
        key_field: Optional[str] = None,
    ) -> int:
        """按主键顺序重新设置排序值

        第 i 个主键对应的记录排序值设为 start_order + i，每个主键一条更新语句。
        重复的主键以最后一次为准，不存在的主键被忽略。

        Args:
            keys: 主键序列（list / tuple 等有序可索引序列）
            start_order: 起始排序值
            partition: 分组条件，提供时只更新分组内的记录
            key_field: 用于定位记录的字段名，默认主键字段

        Returns:
            更新的记录数

        Raises:
            InvalidInputError: keys 不是有序可索引序列，或 start_order 不是整数
        """
        if not isinstance(keys, Sequence) or isinstance(keys, (str, bytes, bytearray)):
            raise InvalidInputError(keys)
        if isinstance(start_order, bool) or not isinstance(start_order, int):
            raise InvalidInputError(start_order, f"起始排序值必须是整数，实际为 {start_order!r}")
        if not keys:
            return 0

        count = 0
        with self.store.atomic():
            for offset, key in enumerate(keys):
                count += self.store.update_field(
                    key,
                    self._rank_field,
                    start_order + offset,
                    partition=partition,
                    key_field=key_field,
                )

        logger.debug(f"批量重排: keys={len(keys)}, start={start_order}, updated={count}")
        return count

    def normalize(self, partition: Partition = None, start_order: int = 1) -> int:
        """规范化排序值

        保持当前顺序，将分组内排序值重新编号为连续序列
        （排序值最小的记录为 start_order）。

        Returns:
            更新的记录数
        """
        keys = [r.get_sort_key() for r in self.ordered(partition, descending=False)]
        return self.set_new_order(keys, start_order, partition)

    # ==================== 可移动标记 ====================

    def reset_flags(self, partition: Partition = None) -> None:
        """刷新分组内所有记录的可移动标记

        - 只有一条记录: CANNOT_MOVE_EITHER_DIRECTION
        - 第一条（排序值最大）: CAN_MOVE_DOWN_ONLY
        - 最后一条（排序值最小）: CAN_MOVE_UP_ONLY
        - 其余: CAN_MOVE_BOTH_DIRECTIONS

        未配置标记字段时不做任何事。
        """
        if not self.config.maintains_flags:
            return

        with self.store.atomic():
            first = self.first(partition)
            if first is None:
                return
            last = self.last(partition)

            if self._same_key(first, last):
                self._write_flags(first, SortFlag.CANNOT_MOVE_EITHER_DIRECTION)
            else:
                self._write_flags(first, SortFlag.CAN_MOVE_DOWN_ONLY)
                self._write_flags(last, SortFlag.CAN_MOVE_UP_ONLY)

            self.store.bulk_update_excluding(
                self.config.flags_field,
                int(SortFlag.CAN_MOVE_BOTH_DIRECTIONS),
                partition,
                excluded_keys=[first.get_sort_key(), last.get_sort_key()],
            )


__all__ = [
    "OrderEngine",
]
