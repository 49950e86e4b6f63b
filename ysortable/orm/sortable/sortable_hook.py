"""排序事件钩子

注册 SQLAlchemy Session 事件监听器，为 SortableMixin 模型自动：
- 新建记录时按排序策略设置初始排序值（before_flush）
- 新建、删除记录后刷新所在分组的可移动标记（after_flush_postexec）
"""

from typing import Dict, List, Tuple

from sqlalchemy.event import listens_for
from sqlalchemy.orm import Session

from ysortable.log import get_logger

from .sortable_mixin import SortableMixin

logger = get_logger()

# 钩子是否生效
_hook_active: bool = False

# 监听器是否已注册（只注册一次）
_listeners_registered: bool = False

# session.info 中记录待刷新标记的分组
_PENDING_FLAGS_KEY = "ysortable_pending_flag_partitions"


def _register_listeners():
    """注册 Session 事件监听器"""

    @listens_for(Session, "before_flush")
    def _before_flush(session, flush_context, instances):
        if not _hook_active:
            return

        # 按模型分批，同一次 flush 中新建的多条记录依次分配排序值
        batches: Dict[type, List[SortableMixin]] = {}
        for instance in session.new:
            if isinstance(instance, SortableMixin):
                batches.setdefault(instance.__class__, []).append(instance)

        for model, records in batches.items():
            model.sort_engine(session).assign_initial_ranks(records)
            logger.debug(f"{model.__name__}: 为 {len(records)} 条新记录设置初始排序值")

    @listens_for(Session, "after_flush")
    def _after_flush(session, flush_context):
        if not _hook_active:
            return

        # after_flush 中 session.new / session.deleted 仍为 flush 前的状态
        pending: Dict[Tuple, Tuple] = session.info.setdefault(_PENDING_FLAGS_KEY, {})
        for instance in list(session.new) + list(session.deleted):
            if not isinstance(instance, SortableMixin):
                continue
            if not instance.get_sort_config().maintains_flags:
                continue
            partition = instance.get_sort_partition()
            pending[(instance.__class__, tuple(partition.items()))] = (instance.__class__, partition)

    @listens_for(Session, "after_flush_postexec")
    def _after_flush_postexec(session, flush_context):
        pending = session.info.pop(_PENDING_FLAGS_KEY, None)
        if not pending or not _hook_active:
            return

        for model, partition in pending.values():
            model.sort_engine(session).reset_flags(partition or None)
            logger.debug(f"{model.__name__}: 刷新可移动标记 partition={partition!r}")


def activate_sortable_hook():
    """激活排序钩子

    此函数会注册SQLAlchemy事件监听器，自动：
    - 新建 SortableMixin 记录时按 __sort_on_create__ 设置排序值
      （APPEND: 最大值 + 1，PREPEND: 最小值 - 1，NONE: 不修改）
    - 启用可移动标记的模型在新建、删除记录后刷新所在分组的标记

    使用示例:
        from ysortable.orm.sortable import activate_sortable_hook

        # 在应用启动时激活
        activate_sortable_hook()

        banner = Banner(title="新轮播图")
        banner.save(commit=True)  # weight 自动设为当前最大值 + 1
    """
    global _hook_active, _listeners_registered

    if not _listeners_registered:
        _register_listeners()
        _listeners_registered = True

    _hook_active = True


def deactivate_sortable_hook():
    """停用排序钩子

    注意：SQLAlchemy的事件监听器一旦注册就无法移除，
    此函数只是将钩子标记为停用，使其不再生效
    """
    global _hook_active
    _hook_active = False


def is_sortable_hook_active() -> bool:
    """检查排序钩子是否激活"""
    return _hook_active


__all__ = [
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
]
