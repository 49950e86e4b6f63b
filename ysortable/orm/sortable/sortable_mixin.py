"""排序管理 Mixin

为 SQLAlchemy 模型提供排序操作方法，支持简单列表排序和分组排序。
所有算法由 OrderEngine 实现，本 Mixin 只负责把模型接到 ORMRecordStore 上。

使用示例:
    from ysortable.orm import CoreModel
    from ysortable.orm.sortable import SortFieldMixin, SortableMixin

    # 简单列表排序（无分组）
    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"
        title = mapped_column(String(100))

    banner = Banner.get(1)
    banner.move_up()          # 上移一位
    banner.move_down()        # 下移一位
    banner.move_to_start()    # 移到开头
    banner.move_to_end()      # 移到末尾

    # 分组排序（同一分类内排序）
    class Product(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "product"
        __sort_group_by__ = "category_id"  # 按分类分组

        category_id = mapped_column(Integer)
        name = mapped_column(String(100))

    product = Product.get(1)
    product.move_up()  # 在同一分类内上移
"""

from typing import Any, List, Optional, Union

from sqlalchemy.orm import Session, object_session

from .orderable_mixin import OrderableMixin
from .sortable_config import SortOnCreate
from .sortable_engine import OrderEngine
from .stores.orm import ORMRecordStore


class SortableMixin(OrderableMixin):
    """排序管理 Mixin

    为模型提供排序操作能力。排序值越大显示越靠前。

    字段要求（使用者需定义或使用 SortFieldMixin）:
        - weight: int  排序值

    可配置属性（子类可覆盖，见 OrderableMixin）:
        - __sort_field__: 排序字段名，默认 "weight"
        - __sort_flags_field__: 可移动标记字段名，默认不维护（SortFlagsFieldMixin 会设置）
        - __sort_on_create__: 新建记录时的排序策略 none / prepend / append
        - __sort_group_by__: 分组字段
            - 字符串: 单字段分组，如 "category_id"
            - 列表: 多字段分组，如 ["category_id", "status"]
        - __sort_key_field__: 主键字段名，默认 "id"
        - __sort_settings__: SortableSettings 实例

    使用示例:
        # 简单排序
        class Banner(CoreModel, SortFieldMixin, SortableMixin):
            title: Mapped[str]

        banner = Banner.get(1)
        banner.move_up()
        banner.move_to_start()

        # 批量重排序（前端拖拽后）
        Banner.set_new_order([3, 1, 2])  # 依次设为 1, 2, 3
    """

    # ==================== 引擎 ====================

    @classmethod
    def sort_engine(cls, session: Session = None) -> OrderEngine:
        """获取绑定到本模型的排序引擎

        Args:
            session: 数据库会话，None 时使用 cls.query.session
        """
        config = cls.get_sort_config()
        store = ORMRecordStore(cls, session=session, key_field=config.key_field)
        return OrderEngine(store, config)

    def _sort_engine(self) -> OrderEngine:
        """优先使用实例所在的会话"""
        return self.__class__.sort_engine(object_session(self))

    # ==================== 实例方法 ====================

    def move_up(self):
        """上移一位

        与前一个记录（排序值更大的最近记录）交换位置，已在最前时不做任何事。

        Returns:
            self，支持链式调用

        Example:
            banner = Banner.get(1)
            banner.move_up()
            db.session.commit()
        """
        self._sort_engine().move_up(self)
        return self

    def move_down(self):
        """下移一位

        与后一个记录（排序值更小的最近记录）交换位置，已在最后时不做任何事。
        """
        self._sort_engine().move_down(self)
        return self

    def swap_with(self, other: "SortableMixin"):
        """与另一个记录交换位置

        Args:
            other: 要交换的记录（必须为同组记录）

        Raises:
            PartitionMismatchError: 不在同一分组
        """
        self._sort_engine().swap_ranks(self, other)
        return self

    def insert_before(self, reference: Union["SortableMixin", Any]):
        """移动到参照记录之前

        Args:
            reference: 参照记录或其主键

        Raises:
            RecordNotFoundError: 参照主键不存在
            PartitionMismatchError: 参照记录不在同一分组

        Example:
            menu = Menu.get(3)
            menu.insert_before(1)  # 移到 id=1 的菜单前面
        """
        self._sort_engine().insert_before(self, reference)
        return self

    def insert_after(self, reference: Union["SortableMixin", Any]):
        """移动到参照记录之后

        Args:
            reference: 参照记录或其主键
        """
        self._sort_engine().insert_after(self, reference)
        return self

    def move_to_start(self):
        """移到开头（同组第一位）"""
        self._sort_engine().move_to_start(self)
        return self

    def move_to_end(self):
        """移到末尾（同组最后一位）"""
        self._sort_engine().move_to_end(self)
        return self

    def init_sort_order(self, policy: Union[str, SortOnCreate, None] = None):
        """初始化排序值

        用于未激活排序钩子、需要手动设置初始排序值的场景。

        Args:
            policy: 排序策略（append / prepend），None 时使用模型配置

        Example:
            banner = Banner(title="新轮播图")
            banner.init_sort_order()            # 使用模型配置
            banner.init_sort_order("prepend")   # 排到最小排序值之前
            banner.save()
        """
        engine = self._sort_engine()
        if policy is not None:
            engine = OrderEngine(
                engine.store,
                engine.config.with_changes(sort_on_create=SortOnCreate.parse(policy)),
            )
        engine.on_before_create(self)
        return self

    def reset_sort_flags(self) -> None:
        """刷新所在分组的可移动标记"""
        engine = self._sort_engine()
        engine.reset_flags(self.get_sort_partition() or None)

    def get_previous(self) -> Optional["SortableMixin"]:
        """获取前一个记录（排序值更大的最近记录），没有返回 None"""
        return self._sort_engine().previous_of(self)

    def get_next(self) -> Optional["SortableMixin"]:
        """获取后一个记录（排序值更小的最近记录），没有返回 None"""
        return self._sort_engine().next_of(self)

    def get_sort_position(self) -> int:
        """获取当前排序位置（1-based）

        Example:
            banner = Banner.get(1)
            print(f"当前在第 {banner.get_sort_position()} 位")
        """
        return self._sort_engine().position_of(self)

    # ==================== 类方法 ====================

    @classmethod
    def get_max_sort_order(cls, group_filters: dict = None) -> int:
        """获取最大排序值

        Args:
            group_filters: 分组过滤条件，None 表示不过滤

        Returns:
            最大排序值，无记录返回 0

        Example:
            max_order = Banner.get_max_sort_order()

            # 分组查询
            max_order = Product.get_max_sort_order({"category_id": 1})
        """
        return cls.sort_engine().max_rank(group_filters)

    @classmethod
    def get_min_sort_order(cls, group_filters: dict = None) -> int:
        """获取最小排序值，无记录返回 0"""
        return cls.sort_engine().min_rank(group_filters)

    @classmethod
    def get_first(cls, group_filters: dict = None) -> Optional["SortableMixin"]:
        """获取第一条记录（排序值最大）"""
        return cls.sort_engine().first(group_filters)

    @classmethod
    def get_last(cls, group_filters: dict = None) -> Optional["SortableMixin"]:
        """获取最后一条记录（排序值最小）"""
        return cls.sort_engine().last(group_filters)

    @classmethod
    def get_sorted(cls, group_filters: dict = None, desc: bool = True) -> List["SortableMixin"]:
        """获取排序后的记录列表

        Args:
            group_filters: 分组过滤条件
            desc: 是否按排序值降序（即显示顺序），默认 True

        Example:
            banners = Banner.get_sorted()
            products = Product.get_sorted({"category_id": 1})
        """
        return cls.sort_engine().ordered(group_filters, descending=desc)

    @classmethod
    def set_new_order(cls, ids: List[Any], start_order: int = 1, group_filters: dict = None) -> int:
        """按主键顺序批量设置排序值

        适用于前端拖拽排序后提交新顺序的场景。

        Args:
            ids: 主键列表，第 i 个主键的排序值设为 start_order + i
            start_order: 起始排序值
            group_filters: 分组过滤条件，提供时只更新该分组内的记录

        Returns:
            更新的记录数

        Raises:
            InvalidInputError: ids 不是有序序列

        Example:
            count = Banner.set_new_order([3, 1, 2])
            db.session.commit()
        """
        return cls.sort_engine().set_new_order(ids, start_order, partition=group_filters)

    @classmethod
    def set_new_order_by_custom_column(
        cls,
        column: str,
        values: List[Any],
        start_order: int = 1,
        group_filters: dict = None,
    ) -> int:
        """按自定义字段的值顺序批量设置排序值

        Example:
            Banner.set_new_order_by_custom_column("code", ["b", "a", "c"])
        """
        return cls.sort_engine().set_new_order(
            values, start_order, partition=group_filters, key_field=column
        )

    @classmethod
    def normalize_sort_order(cls, group_filters: dict = None, start_order: int = 1) -> int:
        """规范化排序值

        保持当前顺序，消除间隙和重复值，从 start_order 开始连续编号
        （排序值最小的记录为 start_order）。

        Example:
            # 排序值可能不连续: 1, 3, 7, 10
            count = Banner.normalize_sort_order()
            # 规范化后变成: 1, 2, 3, 4
        """
        return cls.sort_engine().normalize(group_filters, start_order)

    @classmethod
    def swap_order(cls, first: Union["SortableMixin", Any], second: Union["SortableMixin", Any]):
        """交换两条记录的排序值

        Args:
            first: 记录或主键
            second: 记录或主键

        Raises:
            RecordNotFoundError: 主键不存在
        """
        engine = cls.sort_engine()
        if not isinstance(first, SortableMixin):
            first = engine.load(first)
        if not isinstance(second, SortableMixin):
            second = engine.load(second)
        engine.swap_ranks(first, second)
        return first


__all__ = [
    "SortableMixin",
]
