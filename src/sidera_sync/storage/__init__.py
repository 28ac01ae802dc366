"""Storage module for the synchronization core.

Provides:
- Database: SQLite realisation of the shared backend tables
- RemoteCharacterStore: async character rows with change publication
- EventLog: append-only room event log
- LocalStore: device-resident active record and profile index
"""

from sidera_sync.storage.database import Database
from sidera_sync.storage.event_log import EventLog
from sidera_sync.storage.local_store import (
    JsonFileKeyValueStore,
    KeyValueStore,
    LocalStore,
    MemoryKeyValueStore,
)
from sidera_sync.storage.remote import RemoteCharacterStore, record_from_row

__all__ = [
    "Database",
    "EventLog",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LocalStore",
    "MemoryKeyValueStore",
    "RemoteCharacterStore",
    "record_from_row",
]
