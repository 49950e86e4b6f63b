"""Orderable 协议的通用实现

通过类属性配置字段名，每个类只解析一次配置，生成固定的字段访问器。
SortableMixin 在此基础上增加 SQLAlchemy 相关的排序操作；
普通 Python 对象（如配合 MemoryRecordStore 使用的记录）也可以直接继承。

使用示例:
    class MenuItem(OrderableMixin):
        __sort_group_by__ = "menu_id"

        def __init__(self, id, menu_id, weight=0):
            self.id = id
            self.menu_id = menu_id
            self.weight = weight

    item = MenuItem(1, menu_id=10)
    item.get_sort_partition()  # {"menu_id": 10}
"""

from operator import attrgetter
from typing import Any, Dict, List, Optional, Tuple, Union

from .sortable_config import UNSET, SortConfig, SortOnCreate


class _SortAccessors:
    """按配置预先解析好的字段访问器"""

    __slots__ = ("config", "key", "rank", "flags", "group")

    def __init__(self, config: SortConfig):
        self.config = config
        self.key = attrgetter(config.key_field)
        self.rank = attrgetter(config.rank_field)
        self.flags = attrgetter(config.flags_field) if config.flags_field else None
        self.group: Tuple[Tuple[str, Any], ...] = tuple(
            (name, attrgetter(name)) for name in config.group_by
        )


class OrderableMixin:
    """Orderable 协议的通用实现

    可配置属性（子类可覆盖，未设置时使用 SortableSettings 中的默认值，
    显式设为 None 表示关闭，如 __sort_flags_field__ = None 不维护标记）:
        - __sort_field__: 排序字段名，默认 "weight"
        - __sort_flags_field__: 可移动标记字段名，默认不维护
        - __sort_on_create__: 新建记录时的排序策略，默认 "append"
        - __sort_group_by__: 分组字段，str 或 list，默认不分组
        - __sort_key_field__: 主键字段名，默认 "id"
        - __sort_settings__: SortableSettings 实例，默认从环境变量读取
    """

    __sort_field__: Optional[str] = UNSET
    __sort_flags_field__: Optional[str] = UNSET
    __sort_on_create__: Union[str, SortOnCreate, None] = UNSET
    __sort_group_by__: Union[str, List[str], None] = UNSET
    __sort_key_field__: Optional[str] = UNSET
    __sort_settings__: Any = None

    # ==================== 配置解析 ====================

    @classmethod
    def get_sort_config(cls) -> SortConfig:
        """获取排序配置（每个类只解析一次）"""
        return cls._get_sort_accessors().config

    @classmethod
    def _get_sort_accessors(cls) -> _SortAccessors:
        # 只看类自身的缓存，子类不复用父类的解析结果
        accessors = cls.__dict__.get("_sort_accessors_cache")
        if accessors is None:
            config = SortConfig.from_settings(
                cls.__sort_settings__,
                rank_field=cls.__sort_field__,
                sort_on_create=cls.__sort_on_create__,
                flags_field=cls.__sort_flags_field__,
                group_by=cls.__sort_group_by__,
                key_field=cls.__sort_key_field__,
            )
            accessors = _SortAccessors(config)
            setattr(cls, "_sort_accessors_cache", accessors)
        return accessors

    # ==================== Orderable 协议 ====================

    def get_sort_key(self) -> Any:
        """获取主键值"""
        return self._get_sort_accessors().key(self)

    def get_sort_rank(self) -> int:
        """获取当前排序值，未设置时视为 0"""
        return self._get_sort_accessors().rank(self) or 0

    def set_sort_rank(self, rank: int) -> None:
        """设置排序值"""
        setattr(self, self._get_sort_accessors().config.rank_field, rank)

    def get_sort_flags(self) -> Optional[int]:
        """获取可移动标记，未启用标记维护时返回 None"""
        getter = self._get_sort_accessors().flags
        return getter(self) if getter else None

    def set_sort_flags(self, flags: int) -> None:
        """设置可移动标记，未启用标记维护时忽略"""
        config = self._get_sort_accessors().config
        if config.flags_field:
            setattr(self, config.flags_field, flags)

    def get_sort_partition(self) -> Dict[str, Any]:
        """获取所在分组（分组字段 -> 当前值）"""
        return {name: getter(self) for name, getter in self._get_sort_accessors().group}


__all__ = [
    "OrderableMixin",
]
