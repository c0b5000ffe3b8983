"""Services package."""

from budget_planner.services.storage import (
    ConnectionError,
    FileKeyValueBackend,
    GoogleSheetsClient,
    GoogleSheetsSnapshotStore,
    InMemoryKeyValueBackend,
    InMemorySnapshotStore,
    KeyValueBackend,
    LocalSnapshotPersistence,
    MalformedSnapshotError,
    RemoteSnapshotStore,
    StorageError,
)
from budget_planner.services.sync import (
    RemoteSyncAdapter,
    SnapshotSource,
    SyncCoordinator,
    SyncWorker,
)

__all__ = [
    # Storage services
    "ConnectionError",
    "FileKeyValueBackend",
    "GoogleSheetsClient",
    "GoogleSheetsSnapshotStore",
    "InMemoryKeyValueBackend",
    "InMemorySnapshotStore",
    "KeyValueBackend",
    "LocalSnapshotPersistence",
    "MalformedSnapshotError",
    "RemoteSnapshotStore",
    "StorageError",
    # Sync services
    "RemoteSyncAdapter",
    "SnapshotSource",
    "SyncCoordinator",
    "SyncWorker",
]
