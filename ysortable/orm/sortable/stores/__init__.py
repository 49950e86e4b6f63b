"""记录存储

- BaseRecordStore: 存储抽象基类
- MemoryRecordStore: 内存存储
- ORMRecordStore: SQLAlchemy 存储
"""

from .base import BaseRecordStore, Partition
from .memory import MemoryRecordStore
from .orm import ORMRecordStore

__all__ = [
    "BaseRecordStore",
    "Partition",
    "MemoryRecordStore",
    "ORMRecordStore",
]
