"""可移动标记定义

提供记录在排序中可移动方向的标记枚举，用于前端启用/禁用上移、下移按钮。
"""

from enum import IntEnum


class SortFlag(IntEnum):
    """可移动标记

    数值与数据库中存储的值一一对应：
    - 第一条记录（排序值最大）只能下移
    - 最后一条记录（排序值最小）只能上移
    - 分组内只有一条记录时不可移动
    - 其余记录可上可下
    """

    # 不可上、不可下
    CANNOT_MOVE_EITHER_DIRECTION = 0

    # 不可上、可下
    CAN_MOVE_DOWN_ONLY = 1

    # 可上、不可下
    CAN_MOVE_UP_ONLY = 2

    # 可上、可下
    CAN_MOVE_BOTH_DIRECTIONS = 3

    @property
    def can_move_up(self) -> bool:
        """是否可以上移"""
        return bool(self & 0b10)

    @property
    def can_move_down(self) -> bool:
        """是否可以下移"""
        return bool(self & 0b01)


__all__ = [
    "SortFlag",
]
