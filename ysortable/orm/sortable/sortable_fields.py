"""排序字段定义

提供标准的排序字段定义 Mixin，简化模型定义。

使用示例:
    from ysortable.orm import CoreModel
    from ysortable.orm.sortable import SortFieldMixin, SortFlagsFieldMixin, SortableMixin

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"

        title = mapped_column(String(100))
        # weight 字段由 SortFieldMixin 自动提供

    # 同时维护可移动标记
    class Menu(CoreModel, SortFieldMixin, SortFlagsFieldMixin, SortableMixin):
        __tablename__ = "menu"
"""

from typing import Optional

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class SortFieldMixin:
    """排序字段 Mixin

    提供标准的 weight 字段定义。

    字段说明:
        - weight: 排序值，默认为0，值越大越靠前

    使用示例:
        class Banner(CoreModel, SortFieldMixin, SortableMixin):
            __tablename__ = "banner"
            title: Mapped[str]

        # 查询时按排序字段排序
        Banner.query.order_by(Banner.weight.desc()).all()
    """

    # 排序值，值越大越靠前
    weight: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        index=True,
        comment="排序值"
    )


class SortFlagsFieldMixin:
    """可移动标记字段 Mixin

    提供 sort_flags 字段，并启用可移动标记维护（取值见 SortFlag）。
    """

    __sort_flags_field__ = "sort_flags"

    # 可移动标记：0 不可移动，1 只能下移，2 只能上移，3 可上可下
    sort_flags: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="可移动标记"
    )


__all__ = [
    "SortFieldMixin",
    "SortFlagsFieldMixin",
]
