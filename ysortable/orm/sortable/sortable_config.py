"""排序配置

每个可排序集合（模型）对应一份排序配置，在构造排序引擎时一次性解析，
之后不再读取任何全局状态。

使用示例:
    from ysortable.orm.sortable import SortConfig, SortOnCreate

    # 直接构造
    config = SortConfig(rank_field="weight", group_by=("category_id",))

    # 基于全局默认配置构造，并覆盖部分字段
    config = SortConfig.from_settings(settings.sortable, flags_field="sort_flags")
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Optional, Tuple, Union

from .exceptions import SortConfigError


class _Unset:
    """未覆盖标记，与显式传入的 None 区分"""

    def __repr__(self):
        return "UNSET"


UNSET: Any = _Unset()


class SortOnCreate(str, Enum):
    """新建记录时的排序策略"""

    # 不自动设置排序值
    NONE = "none"

    # 排到排序值序列的低端：min - 1
    PREPEND = "prepend"

    # 排到排序值序列的高端：max + 1
    APPEND = "append"

    @classmethod
    def parse(cls, value: Union[str, "SortOnCreate", None]) -> "SortOnCreate":
        """将字符串/None 解析为排序策略

        Raises:
            SortConfigError: 不支持的策略值
        """
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SortConfigError(
                f"不支持的排序策略：{value!r}，可选值：none / prepend / append"
            ) from None


def _normalize_group_by(group_by: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    """分组字段统一为元组"""
    if not group_by:
        return ()
    if isinstance(group_by, str):
        return (group_by,)
    return tuple(group_by)


@dataclass(frozen=True)
class SortConfig:
    """排序配置

    Attributes:
        rank_field: 排序字段名
        sort_on_create: 新建记录时的排序策略
        flags_field: 可移动标记字段名，None 表示不维护标记
        group_by: 分组字段（分组内独立排序），空元组表示全局排序
        key_field: 主键字段名
    """
    rank_field: str = "weight"
    sort_on_create: SortOnCreate = SortOnCreate.APPEND
    flags_field: Optional[str] = None
    group_by: Tuple[str, ...] = field(default_factory=tuple)
    key_field: str = "id"

    def __post_init__(self):
        # frozen dataclass 中需要通过 object.__setattr__ 规范化字段
        object.__setattr__(self, "sort_on_create", SortOnCreate.parse(self.sort_on_create))
        object.__setattr__(self, "group_by", _normalize_group_by(self.group_by))
        object.__setattr__(self, "flags_field", self.flags_field or None)

        if not self.rank_field:
            raise SortConfigError("排序字段名不能为空")
        if not self.key_field:
            raise SortConfigError("主键字段名不能为空")
        if self.flags_field == self.rank_field:
            raise SortConfigError("可移动标记字段不能与排序字段相同")

    @property
    def maintains_flags(self) -> bool:
        """是否维护可移动标记"""
        return self.flags_field is not None

    @classmethod
    def from_settings(cls, settings: Any = None, **overrides) -> "SortConfig":
        """根据 SortableSettings 构造配置

        值为 UNSET 的覆盖项会被忽略，使用 settings 中的默认值；
        显式传入 None 表示关闭该项（如 flags_field=None 不维护标记）。

        Args:
            settings: SortableSettings 实例，None 时从环境变量读取
            **overrides: 覆盖字段（rank_field, sort_on_create, flags_field, group_by, key_field）
        """
        if settings is None:
            from ysortable.config import SortableSettings
            settings = SortableSettings()

        values = {
            "rank_field": settings.sort_column_name,
            "sort_on_create": settings.sort_when_creating,
            "flags_field": settings.can_sorts_column_name,
            "key_field": settings.key_column_name,
        }
        values.update({k: v for k, v in overrides.items() if v is not UNSET})
        return cls(**values)

    def with_changes(self, **changes) -> "SortConfig":
        """返回修改部分字段后的新配置"""
        return replace(self, **changes)


__all__ = [
    "UNSET",
    "SortOnCreate",
    "SortConfig",
]
