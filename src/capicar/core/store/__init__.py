"""CapiCar Core Store -- 记录存储接口与内存实现"""

from .memory import InMemoryRecordStore
from .protocols import (
    RecordNotFoundError,
    RecordStore,
    SortSpec,
    StoreError,
    StoreRecord,
)

__all__ = [
    "RecordStore",
    "StoreRecord",
    "SortSpec",
    "StoreError",
    "RecordNotFoundError",
    "InMemoryRecordStore",
]
