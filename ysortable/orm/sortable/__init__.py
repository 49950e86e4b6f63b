"""排序管理模块

提供通用的排序功能支持。

导出:
    - OrderEngine: 排序引擎（所有排序算法）
    - SortConfig / SortOnCreate: 排序配置
    - SortFlag: 可移动标记
    - Orderable / OrderableMixin: 可排序记录协议及其通用实现
    - BaseRecordStore / MemoryRecordStore / ORMRecordStore: 记录存储
    - SortFieldMixin / SortFlagsFieldMixin: 排序字段 Mixin
    - SortableMixin: 排序管理 Mixin（SQLAlchemy 模型）
    - activate_sortable_hook: 自动设置初始排序值、刷新可移动标记
    - 异常: SortableError 及其子类

使用示例:
    from ysortable.orm import CoreModel
    from ysortable.orm.sortable import SortFieldMixin, SortableMixin, activate_sortable_hook

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        __tablename__ = "banner"
        title = mapped_column(String(100))

    activate_sortable_hook()

    # 使用排序方法
    banner = Banner.get(1)
    banner.move_up()          # 上移
    banner.move_down()        # 下移
    banner.move_to_start()    # 移到开头
    banner.move_to_end()      # 移到末尾
    banner.insert_before(3)   # 移到 id=3 的记录前面

    # 批量重排序
    Banner.set_new_order([3, 1, 2])
"""

from .exceptions import (
    SortableError,
    InvalidInputError,
    RecordNotFoundError,
    PartitionMismatchError,
    SortConfigError,
)
from .sortable_flags import SortFlag
from .sortable_config import SortConfig, SortOnCreate
from .sortable_protocols import Orderable, RankCondition
from .orderable_mixin import OrderableMixin
from .stores import BaseRecordStore, MemoryRecordStore, ORMRecordStore
from .sortable_engine import OrderEngine
from .sortable_fields import SortFieldMixin, SortFlagsFieldMixin
from .sortable_mixin import SortableMixin
from .sortable_hook import (
    activate_sortable_hook,
    deactivate_sortable_hook,
    is_sortable_hook_active,
)

__all__ = [
    # 异常
    "SortableError",
    "InvalidInputError",
    "RecordNotFoundError",
    "PartitionMismatchError",
    "SortConfigError",
    # 引擎与配置
    "SortFlag",
    "SortConfig",
    "SortOnCreate",
    "Orderable",
    "RankCondition",
    "OrderableMixin",
    "OrderEngine",
    # 存储
    "BaseRecordStore",
    "MemoryRecordStore",
    "ORMRecordStore",
    # 模型集成
    "SortFieldMixin",
    "SortFlagsFieldMixin",
    "SortableMixin",
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
]
