"""Storage backends for users, tasks and time entries.

The tracker and the aggregator depend only on TimeTrackingStore; the user
service also needs a UserRepository. SQLiteStore and MemoryStore implement
both.
"""

from timetracker.storage.base import (
    USER_FILTER_FIELDS,
    StoreSession,
    TimeTrackingStore,
    UserRepository,
)
from timetracker.storage.memory import MemoryStore
from timetracker.storage.sqlite import SCHEMA_VERSION, SQLiteStore

__all__ = [
    # Interfaces
    "StoreSession",
    "TimeTrackingStore",
    "UserRepository",
    "USER_FILTER_FIELDS",
    # Backends
    "MemoryStore",
    "SQLiteStore",
    "SCHEMA_VERSION",
]
