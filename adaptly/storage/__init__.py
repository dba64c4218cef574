"""Persistence of UI state.

Available backends:
- SQLiteStorage: File-based SQLite database (recommended for local use)
- InMemoryStorage: In-memory storage for testing
"""

from adaptly.storage.lib import (
    INDEX_PREFIX,
    StateStore,
    StoredRecordInfo,
    index_key,
    record_key,
)
from adaptly.storage.memory import InMemoryStorage
from adaptly.storage.protocol import KeyValueStorage
from adaptly.storage.sqlite import SQLiteStorage

__all__ = [
    "KeyValueStorage",
    "SQLiteStorage",
    "InMemoryStorage",
    "StateStore",
    "StoredRecordInfo",
    "INDEX_PREFIX",
    "index_key",
    "record_key",
]
