"""Local/remote snapshot synchronization."""

from budget_planner.services.sync.coordinator import SnapshotSource, SyncCoordinator
from budget_planner.services.sync.remote import RemoteSyncAdapter
from budget_planner.services.sync.worker import SyncWorker

__all__ = [
    "RemoteSyncAdapter",
    "SnapshotSource",
    "SyncCoordinator",
    "SyncWorker",
]
