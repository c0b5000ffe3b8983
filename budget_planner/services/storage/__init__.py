"""
Storage Services Package

Abstract interfaces and concrete backends for snapshot storage:
local files, Google Sheets for remote sync, and in-memory doubles.
"""

from budget_planner.services.storage.interface import (
    ConnectionError,
    KeyValueBackend,
    MalformedSnapshotError,
    RemoteSnapshotStore,
    RemoteWatch,
    StorageError,
)
from budget_planner.services.storage.local import (
    FileKeyValueBackend,
    LocalSnapshotPersistence,
)
from budget_planner.services.storage.memory import (
    InMemoryKeyValueBackend,
    InMemorySnapshotStore,
)
from budget_planner.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsSnapshotStore,
)

__all__ = [
    # Interfaces
    "KeyValueBackend",
    "RemoteSnapshotStore",
    "RemoteWatch",
    # Exceptions
    "ConnectionError",
    "MalformedSnapshotError",
    "StorageError",
    # Local
    "FileKeyValueBackend",
    "LocalSnapshotPersistence",
    # In-memory
    "InMemoryKeyValueBackend",
    "InMemorySnapshotStore",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsSnapshotStore",
]
