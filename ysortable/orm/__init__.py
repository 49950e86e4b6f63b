"""ORM 模块

- Base / CoreModel: 声明基类与基础模型
- init_database / db_session_scope / with_db_session: 数据库与会话管理
- sortable: 排序管理

使用示例:
    from ysortable.orm import CoreModel, init_database
    from ysortable.orm import SortFieldMixin, SortableMixin

    init_database("sqlite:///./app.db")

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"
"""

from .base_model import Base, CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
    with_db_session,
)
from .sortable import (
    OrderEngine,
    SortConfig,
    SortOnCreate,
    SortFlag,
    SortFieldMixin,
    SortFlagsFieldMixin,
    SortableMixin,
    activate_sortable_hook,
    deactivate_sortable_hook,
)

__all__ = [
    "Base",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "with_db_session",
    "OrderEngine",
    "SortConfig",
    "SortOnCreate",
    "SortFlag",
    "SortFieldMixin",
    "SortFlagsFieldMixin",
    "SortableMixin",
    "activate_sortable_hook",
    "deactivate_sortable_hook",
]
