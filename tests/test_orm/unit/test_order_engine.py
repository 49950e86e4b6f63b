"""排序引擎 OrderEngine 测试

使用内存记录存储测试排序引擎的全部操作：
1. 最大/最小排序值、首尾记录
2. 新建记录的初始排序值（append / prepend / none）
3. 上移、下移、交换
4. 插入到指定记录前/后、移到开头/末尾
5. 批量重排、规范化
6. 可移动标记维护
"""

import random

import pytest

from ysortable.config import SortableSettings
from ysortable.orm.sortable import (
    InvalidInputError,
    MemoryRecordStore,
    OrderableMixin,
    OrderEngine,
    PartitionMismatchError,
    RecordNotFoundError,
    SortFlag,
)


# ==================== 测试记录定义 ====================

DEFAULT_SETTINGS = SortableSettings()


class Item(OrderableMixin):
    """普通排序记录"""
    __sort_settings__ = DEFAULT_SETTINGS

    def __init__(self, id, weight=0, name=None, code=None):
        self.id = id
        self.weight = weight
        self.name = name or f"item-{id}"
        self.code = code

    def __repr__(self):
        return f"<Item {self.name} weight={self.weight}>"


class PrependItem(Item):
    """新建时排到最小排序值之前"""
    __sort_on_create__ = "prepend"


class ManualItem(Item):
    """新建时不设置排序值"""
    __sort_on_create__ = "none"


class GroupedItem(Item):
    """按 menu_id 分组排序"""
    __sort_group_by__ = "menu_id"

    def __init__(self, id, weight=0, menu_id=None, name=None):
        super().__init__(id, weight, name)
        self.menu_id = menu_id


class FlaggedItem(Item):
    """维护可移动标记"""
    __sort_flags_field__ = "sort_flags"

    def __init__(self, id, weight=0, name=None):
        super().__init__(id, weight, name)
        self.sort_flags = None


def build(record_cls, ranks, **extra):
    """按名称 -> 排序值构造记录和引擎"""
    records = {}
    for i, (name, weight) in enumerate(ranks.items(), 1):
        records[name] = record_cls(i, weight=weight, name=name, **extra)
    store = MemoryRecordStore(records.values())
    engine = OrderEngine(store, record_cls.get_sort_config())
    return engine, records


def weights(records):
    return {name: record.weight for name, record in records.items()}


def display(engine, partition=None):
    return [r.name for r in engine.ordered(partition)]


# ==================== 测试类 ====================

class TestExtremalQueries:
    """最大/最小排序值与首尾记录测试"""

    def test_empty_partition_returns_zero(self):
        """测试空集合的最大/最小排序值为 0"""
        engine = OrderEngine(MemoryRecordStore(), Item.get_sort_config())

        assert engine.max_rank() == 0
        assert engine.min_rank() == 0
        assert engine.first() is None
        assert engine.last() is None

    def test_max_and_min(self):
        """测试最大/最小排序值"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        assert engine.max_rank() == 30
        assert engine.min_rank() == 10
        assert engine.first() is records["C"]
        assert engine.last() is records["A"]

    def test_negative_ranks(self):
        """测试负数排序值"""
        engine, _ = build(Item, {"A": -5, "B": -1, "C": -12})

        assert engine.max_rank() == -1
        assert engine.min_rank() == -12

    def test_queries_are_read_only(self):
        """测试查询不修改记录"""
        engine, records = build(Item, {"A": 3, "B": 1})
        before = weights(records)

        engine.max_rank()
        engine.min_rank()
        engine.first()
        engine.ordered()

        assert weights(records) == before

    def test_ordered_is_display_order(self):
        """测试默认按排序值降序（显示顺序）"""
        engine, _ = build(Item, {"A": 1, "B": 3, "C": 2})

        assert display(engine) == ["B", "C", "A"]
        assert [r.name for r in engine.ordered(descending=False)] == ["A", "C", "B"]

    def test_ties_broken_by_key(self):
        """测试排序值相同时按主键排序"""
        engine, records = build(Item, {"A": 5, "B": 5, "C": 1})

        assert engine.first() is records["B"]
        assert [r.name for r in engine.ordered(descending=False)] == ["C", "A", "B"]

    def test_position_and_neighbours(self):
        """测试显示位置与相邻记录"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        assert engine.position_of(records["C"]) == 1
        assert engine.position_of(records["A"]) == 3
        assert engine.previous_of(records["B"]) is records["C"]
        assert engine.next_of(records["B"]) is records["A"]
        assert engine.previous_of(records["C"]) is None
        assert engine.next_of(records["A"]) is None


class TestCreation:
    """新建记录初始排序值测试"""

    def _create(self, engine, record):
        engine.on_before_create(record)
        engine.store.add(record)
        engine.on_after_create(record)
        return record

    def test_append_sequence(self):
        """测试 append 策略连续新建得到 1..N"""
        engine = OrderEngine(MemoryRecordStore(), Item.get_sort_config())

        created = [self._create(engine, Item(i)) for i in range(1, 6)]

        assert [r.weight for r in created] == [1, 2, 3, 4, 5]

    def test_prepend_sequence(self):
        """测试 prepend 策略连续新建得到 -1..-N"""
        engine = OrderEngine(MemoryRecordStore(), PrependItem.get_sort_config())

        created = [self._create(engine, PrependItem(i)) for i in range(1, 5)]

        assert [r.weight for r in created] == [-1, -2, -3, -4]

    def test_append_after_existing(self):
        """测试在已有记录之后追加"""
        engine, _ = build(Item, {"A": 10, "B": 40})

        record = self._create(engine, Item(99))

        assert record.weight == 41

    def test_none_policy_leaves_record_untouched(self):
        """测试 none 策略不修改排序值"""
        engine, _ = build(ManualItem, {"A": 10})

        record = self._create(engine, ManualItem(99, weight=7))

        assert record.weight == 7

    def test_append_is_partition_local(self):
        """测试分组内独立计算"""
        engine, _ = build(GroupedItem, {"A": 10, "B": 20})
        engine.store.add(GroupedItem(50, weight=100, menu_id=2))

        record = self._create(engine, GroupedItem(51, menu_id=None))

        assert record.weight == 21

    def test_assign_initial_ranks_batch(self):
        """测试批量新建时每条记录得到不同的排序值"""
        engine, _ = build(GroupedItem, {"A": 5}, menu_id=1)
        batch = [
            GroupedItem(10, menu_id=1),
            GroupedItem(11, menu_id=2),
            GroupedItem(12, menu_id=1),
            GroupedItem(13, menu_id=2),
        ]

        engine.assign_initial_ranks(batch)

        assert [r.weight for r in batch] == [6, 1, 7, 2]


class TestMoveUpDown:
    """上移/下移测试"""

    def test_move_up_swaps_with_nearest_greater(self):
        """测试上移与排序值更大的最近记录交换"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        result = engine.move_up(records["A"])

        assert result is records["A"]
        assert weights(records) == {"A": 20, "B": 10, "C": 30}
        assert display(engine) == ["C", "A", "B"]

    def test_move_down_swaps_with_nearest_lesser(self):
        """测试下移与排序值更小的最近记录交换"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        engine.move_down(records["C"])

        assert weights(records) == {"A": 10, "B": 30, "C": 20}

    def test_move_up_at_top_is_noop(self):
        """测试已在最前时上移不做任何事"""
        engine, records = build(Item, {"A": 10, "B": 20})

        result = engine.move_up(records["B"])

        assert result is records["B"]
        assert weights(records) == {"A": 10, "B": 20}

    def test_move_down_at_bottom_is_noop(self):
        """测试已在最后时下移不做任何事"""
        engine, records = build(Item, {"A": 10, "B": 20})

        engine.move_down(records["A"])

        assert weights(records) == {"A": 10, "B": 20}

    def test_move_up_then_down_restores_order(self):
        """测试上移后再下移恢复原顺序"""
        engine, records = build(Item, {"A": 3, "B": 7, "C": 11, "D": 12})
        before = weights(records)

        engine.move_up(records["B"])
        engine.move_down(records["B"])

        assert weights(records) == before

    def test_move_stays_in_partition(self):
        """测试分组内移动不影响其他分组"""
        engine, records = build(GroupedItem, {"A": 10, "B": 20}, menu_id=1)
        other = engine.store.add(GroupedItem(9, weight=15, menu_id=2, name="X"))

        engine.move_up(records["A"])

        assert weights(records) == {"A": 20, "B": 10}
        assert other.weight == 15


class TestSwapRanks:
    """交换排序值测试"""

    def test_swap(self):
        """测试交换两条记录的排序值"""
        engine, records = build(Item, {"A": 1, "B": 9})

        engine.swap_ranks(records["A"], records["B"])

        assert weights(records) == {"A": 9, "B": 1}

    def test_swap_with_self_is_noop(self):
        """测试与自身交换不做任何事"""
        engine, records = build(Item, {"A": 1, "B": 9})

        engine.swap_ranks(records["A"], records["A"])

        assert weights(records) == {"A": 1, "B": 9}

    def test_swap_across_partitions_raises(self):
        """测试跨分组交换抛出异常"""
        engine, records = build(GroupedItem, {"A": 1}, menu_id=1)
        other = engine.store.add(GroupedItem(9, weight=5, menu_id=2))

        with pytest.raises(PartitionMismatchError) as exc_info:
            engine.swap_ranks(records["A"], other)

        assert exc_info.value.partition == {"menu_id": 1}
        assert exc_info.value.other_partition == {"menu_id": 2}
        assert records["A"].weight == 1
        assert other.weight == 5

    def test_swap_also_swaps_flags(self):
        """测试启用标记维护时同时交换标记"""
        engine, records = build(FlaggedItem, {"A": 1, "B": 2, "C": 3})
        engine.reset_flags()

        engine.swap_ranks(records["C"], records["A"])

        assert records["C"].sort_flags == SortFlag.CAN_MOVE_UP_ONLY
        assert records["A"].sort_flags == SortFlag.CAN_MOVE_DOWN_ONLY
        assert records["B"].sort_flags == SortFlag.CAN_MOVE_BOTH_DIRECTIONS

    def test_swap_twice_restores_ranks_and_flags(self):
        """测试交换两次后排序值与标记完全恢复"""
        engine, records = build(FlaggedItem, {"A": 1, "B": 2, "C": 3})
        engine.reset_flags()
        before = {name: (r.weight, r.sort_flags) for name, r in records.items()}

        engine.swap_ranks(records["A"], records["C"])
        assert records["A"].weight == 3

        engine.swap_ranks(records["A"], records["C"])

        assert {name: (r.weight, r.sort_flags) for name, r in records.items()} == before
        assert [(r.weight, r.sort_flags) for r in engine.store.all()] == list(before.values())


class TestInsert:
    """插入到指定记录前/后测试"""

    def test_insert_before_scenario(self):
        """测试插入到参照记录之前：A:10, B:20, C:30 -> A:9, B:10, C:30"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        engine.insert_before(records["B"], records["A"])

        assert weights(records) == {"A": 9, "B": 10, "C": 30}
        assert display(engine) == ["C", "B", "A"]

    def test_insert_after(self):
        """测试插入到参照记录之后"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        engine.insert_after(records["C"], records["A"])

        assert weights(records) == {"A": 11, "B": 21, "C": 10}
        assert display(engine) == ["B", "A", "C"]

    def test_insert_before_by_key(self):
        """测试参照记录可以是主键"""
        engine, records = build(Item, {"A": 10, "B": 20, "C": 30})

        engine.insert_before(records["A"], records["C"].id)

        assert display(engine) == ["A", "C", "B"]

    def test_insert_with_missing_key_raises(self):
        """测试参照主键不存在时抛出异常且不修改数据"""
        engine, records = build(Item, {"A": 10, "B": 20})

        with pytest.raises(RecordNotFoundError) as exc_info:
            engine.insert_after(records["A"], 404)

        assert exc_info.value.key == 404
        assert isinstance(exc_info.value, LookupError)
        assert weights(records) == {"A": 10, "B": 20}

    def test_insert_relative_to_self_is_noop(self):
        """测试参照记录为自身时不做任何事"""
        engine, records = build(Item, {"A": 10, "B": 20})

        engine.insert_before(records["A"], records["A"])
        engine.insert_after(records["B"], records["B"].id)

        assert weights(records) == {"A": 10, "B": 20}

    def test_insert_across_partitions_raises(self):
        """测试参照记录在其他分组时抛出异常"""
        engine, records = build(GroupedItem, {"A": 10}, menu_id=1)
        other = engine.store.add(GroupedItem(9, weight=5, menu_id=2))

        with pytest.raises(PartitionMismatchError):
            engine.insert_before(records["A"], other)

    def test_insert_only_shifts_own_partition(self):
        """测试插入只平移同组记录"""
        engine, records = build(GroupedItem, {"A": 10, "B": 20}, menu_id=1)
        other = engine.store.add(GroupedItem(9, weight=10, menu_id=2))

        engine.insert_before(records["B"], records["A"])

        assert weights(records) == {"A": 9, "B": 10}
        assert other.weight == 10

    def test_store_failure_rolls_back(self):
        """测试存储失败时原样抛出异常并恢复已修改的值"""

        class FailingStore(MemoryRecordStore):
            def increment_field(self, *args, **kwargs):
                raise RuntimeError("database is gone")

        records = {name: Item(i, weight=w, name=name)
                   for i, (name, w) in enumerate({"A": 10, "B": 20}.items(), 1)}
        engine = OrderEngine(FailingStore(records.values()), Item.get_sort_config())

        with pytest.raises(RuntimeError, match="database is gone"):
            engine.insert_before(records["B"], records["A"])

        assert weights(records) == {"A": 10, "B": 20}


class TestMoveToStartEnd:
    """移到开头/末尾测试"""

    def test_move_to_start(self):
        """测试移到开头"""
        engine, records = build(Item, {"A": 1, "B": 2, "C": 3})

        engine.move_to_start(records["A"])

        assert display(engine) == ["A", "C", "B"]
        assert engine.first() is records["A"]

    def test_move_to_end(self):
        """测试移到末尾"""
        engine, records = build(Item, {"A": 1, "B": 2, "C": 3})

        engine.move_to_end(records["C"])

        assert display(engine) == ["B", "A", "C"]
        assert engine.last() is records["C"]

    def test_already_at_extremum_is_noop(self):
        """测试已在开头/末尾时不做任何事"""
        engine, records = build(Item, {"A": 1, "B": 2, "C": 3})
        before = weights(records)

        engine.move_to_start(records["C"])
        engine.move_to_end(records["A"])

        assert weights(records) == before

    def test_end_then_start_restores_two_records(self):
        """测试两条记录时先移到末尾再移到开头恢复原顺序"""
        engine, records = build(Item, {"A": 2, "B": 1})

        engine.move_to_end(records["A"])
        assert weights(records) == {"A": 1, "B": 2}

        engine.move_to_start(records["A"])
        assert weights(records) == {"A": 2, "B": 1}

    def test_ranks_stay_unique(self):
        """测试任意操作序列之后同组排序值保持唯一"""
        rng = random.Random(20240601)
        engine, records = build(Item, {f"R{i}": i * 3 for i in range(1, 9)})
        items = list(records.values())
        operations = [
            lambda r, o: engine.move_up(r),
            lambda r, o: engine.move_down(r),
            lambda r, o: engine.swap_ranks(r, o),
            lambda r, o: engine.insert_before(r, o),
            lambda r, o: engine.insert_after(r, o),
            lambda r, o: engine.move_to_start(r),
            lambda r, o: engine.move_to_end(r),
        ]

        for _ in range(200):
            record, other = rng.choice(items), rng.choice(items)
            rng.choice(operations)(record, other)
            ranks = [r.weight for r in items]
            assert len(set(ranks)) == len(ranks)


class TestSetNewOrder:
    """批量重排测试"""

    def test_set_new_order(self):
        """测试按主键顺序设置排序值"""
        engine, records = build(Item, {"A": 0, "B": 0, "C": 0})

        count = engine.set_new_order([3, 1, 2])

        assert count == 3
        assert weights(records) == {"A": 2, "B": 3, "C": 1}

    def test_start_order(self):
        """测试起始排序值"""
        engine, records = build(Item, {"A": 0, "B": 0})

        engine.set_new_order([2, 1], start_order=10)

        assert weights(records) == {"A": 11, "B": 10}

    def test_empty_sequence_updates_nothing(self):
        """测试空序列不更新任何记录"""
        engine, records = build(Item, {"A": 4})

        assert engine.set_new_order([]) == 0
        assert records["A"].weight == 4

    def test_duplicate_keys_last_assignment_wins(self):
        """测试重复主键以最后一次为准"""
        engine, records = build(Item, {"A": 0, "B": 0})

        count = engine.set_new_order([1, 2, 1])

        assert count == 3
        assert weights(records) == {"A": 3, "B": 2}

    def test_unknown_keys_are_skipped(self):
        """测试不存在的主键被忽略"""
        engine, records = build(Item, {"A": 0})

        assert engine.set_new_order([404, 1]) == 1
        assert records["A"].weight == 2

    @pytest.mark.parametrize("keys", [None, "abc", {1, 2}, (k for k in [1, 2]), 5, {1: 1}])
    def test_invalid_input_raises(self, keys):
        """测试非有序序列输入抛出异常"""
        engine, records = build(Item, {"A": 7})

        with pytest.raises(InvalidInputError) as exc_info:
            engine.set_new_order(keys)

        assert isinstance(exc_info.value, TypeError)
        assert exc_info.value.value is keys
        assert records["A"].weight == 7

    def test_tuple_is_accepted(self):
        """测试元组输入"""
        engine, records = build(Item, {"A": 0, "B": 0})

        engine.set_new_order((2, 1))

        assert weights(records) == {"A": 2, "B": 1}

    def test_custom_key_field(self):
        """测试按自定义字段定位记录"""
        records = {
            "A": Item(1, code="alpha"),
            "B": Item(2, code="beta"),
        }
        engine = OrderEngine(MemoryRecordStore(records.values()), Item.get_sort_config())

        count = engine.set_new_order(["beta", "alpha"], key_field="code")

        assert count == 2
        assert weights(records) == {"A": 2, "B": 1}

    def test_partition_restricts_updates(self):
        """测试提供分组条件时只更新分组内记录"""
        engine, records = build(GroupedItem, {"A": 0, "B": 0}, menu_id=1)
        other = engine.store.add(GroupedItem(9, weight=0, menu_id=2))

        count = engine.set_new_order([9, 1, 2], partition={"menu_id": 1})

        assert count == 2
        assert weights(records) == {"A": 2, "B": 3}
        assert other.weight == 0

    def test_normalize(self):
        """测试规范化保持顺序并连续编号"""
        engine, records = build(Item, {"A": 5, "B": 5, "C": 10, "D": -3})

        count = engine.normalize()

        assert count == 4
        assert weights(records) == {"A": 2, "B": 3, "C": 4, "D": 1}

    def test_normalize_start_order(self):
        """测试规范化起始值"""
        engine, records = build(Item, {"A": 100, "B": 50})

        engine.normalize(start_order=0)

        assert weights(records) == {"A": 1, "B": 0}


class TestFlags:
    """可移动标记测试"""

    def test_reset_flags(self):
        """测试首尾及中间记录的标记"""
        engine, records = build(FlaggedItem, {"A": 1, "B": 2, "C": 3})

        engine.reset_flags()

        assert records["C"].sort_flags == SortFlag.CAN_MOVE_DOWN_ONLY
        assert records["A"].sort_flags == SortFlag.CAN_MOVE_UP_ONLY
        assert records["B"].sort_flags == SortFlag.CAN_MOVE_BOTH_DIRECTIONS

    def test_single_record(self):
        """测试只有一条记录时不可移动"""
        engine, records = build(FlaggedItem, {"A": 1})

        engine.reset_flags()

        assert records["A"].sort_flags == SortFlag.CANNOT_MOVE_EITHER_DIRECTION

    def test_empty_partition(self):
        """测试空集合不做任何事"""
        engine = OrderEngine(MemoryRecordStore(), FlaggedItem.get_sort_config())

        engine.reset_flags()

    def test_flags_disabled(self):
        """测试未配置标记字段时不做任何事"""
        engine, records = build(Item, {"A": 1, "B": 2})

        engine.reset_flags()

        assert not hasattr(records["A"], "sort_flags")

    def test_flags_after_insert(self):
        """测试插入后刷新标记"""
        engine, records = build(FlaggedItem, {"A": 1, "B": 2, "C": 3})
        engine.reset_flags()

        engine.move_to_start(records["A"])

        assert records["A"].sort_flags == SortFlag.CAN_MOVE_DOWN_ONLY
        assert records["B"].sort_flags == SortFlag.CAN_MOVE_UP_ONLY
        assert records["C"].sort_flags == SortFlag.CAN_MOVE_BOTH_DIRECTIONS

    def test_flags_after_create_and_delete(self):
        """测试新建和删除后刷新标记"""
        engine = OrderEngine(MemoryRecordStore(), FlaggedItem.get_sort_config())
        first = FlaggedItem(1)
        engine.on_before_create(first)
        engine.store.add(first)
        engine.on_after_create(first)
        assert first.sort_flags == SortFlag.CANNOT_MOVE_EITHER_DIRECTION

        second = FlaggedItem(2)
        engine.on_before_create(second)
        engine.store.add(second)
        engine.on_after_create(second)
        assert second.sort_flags == SortFlag.CAN_MOVE_DOWN_ONLY
        assert first.sort_flags == SortFlag.CAN_MOVE_UP_ONLY

        engine.store.remove(second.id)
        engine.on_after_delete(second)
        assert first.sort_flags == SortFlag.CANNOT_MOVE_EITHER_DIRECTION
