from live_context.storage.base import StorageBackend
from live_context.storage.disk import DiskStorage
from live_context.storage.sqlite import SQLiteStorage

__all__ = [
    "DiskStorage",
    "SQLiteStorage",
    "StorageBackend",
]
