"""
Session Wiring for Budget Planner

A session owns one store and the storage components around it:

    BudgetStore ──persist──▶ SyncCoordinator ──▶ LocalSnapshotPersistence
         ▲                         │
         └──── remote changes ─────┴──────────▶ RemoteSyncAdapter

Startup merge policy (`start`):
1. If the remote store has a record for the user, it is authoritative:
   it replaces local state and overwrites the local cache
2. Otherwise the local snapshot is used (and pushed on the next save)
3. Otherwise the store starts empty

Remote I/O runs on the coordinator's sync worker thread, so `start` may
be called from `asyncio.run` and the subscription keeps running after
it returns. Call `close` to flush and stop it.

No field-level merge is ever attempted. The last full snapshot written
wins, so concurrent edits from a second device can be lost.
"""

from datetime import date
from pathlib import Path
from typing import Callable, Optional

from budget_planner.audit import AuditLogger
from budget_planner.config import Settings, get_settings
from budget_planner.models.audit import AuditEventBuilder
from budget_planner.models.finance import UserSettings
from budget_planner.services.storage import (
    FileKeyValueBackend,
    GoogleSheetsSnapshotStore,
    KeyValueBackend,
    LocalSnapshotPersistence,
    RemoteSnapshotStore,
)
from budget_planner.services.sync import RemoteSyncAdapter, SnapshotSource, SyncCoordinator
from budget_planner.store import BudgetStore


class BudgetSession:
    """Everything one signed-in (or anonymous) user works with."""

    def __init__(
        self,
        store: BudgetStore,
        local: LocalSnapshotPersistence,
        coordinator: SyncCoordinator,
        remote: Optional[RemoteSyncAdapter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.local = local
        self.coordinator = coordinator
        self.remote = remote
        self.audit_logger = audit_logger or AuditLogger()
        self.identity: Optional[str] = None

    async def start(self, identity: Optional[str] = None) -> str:
        """
        Load the initial state for `identity` (None for the anonymous key).

        Returns:
            Where the initial state came from (see SnapshotSource)
        """
        self.identity = identity
        self.local.set_user(identity)

        if identity and self.remote is not None:
            self.coordinator.bind_remote_user(identity)

        snapshot, source = await self.coordinator.load_with_sync()
        self.store.load_snapshot(snapshot, reset_view=True)

        if source == SnapshotSource.REMOTE:
            # Local is only a cache of the remote record
            self.local.save_local(self.store.snapshot())

        self.audit_logger.log(AuditEventBuilder.session_started(identity, source))
        return source

    async def close(self) -> None:
        """Flush queued remote writes, stop the subscription and the sync worker."""
        await self.coordinator.drain()
        self.coordinator.disconnect()
        self.coordinator.shutdown()


def create_session(
    settings: Optional[Settings] = None,
    local_backend: Optional[KeyValueBackend] = None,
    remote_store: Optional[RemoteSnapshotStore] = None,
    clock: Callable[[], date] = date.today,
    audit_logger: Optional[AuditLogger] = None,
) -> BudgetSession:
    """
    Factory function to create a wired session.

    Args:
        settings: Defaults to the cached environment settings
        local_backend: Defaults to JSON files in the configured data directory
        remote_store: Defaults to Google Sheets when sync is enabled
        clock: Source of "today" for date-window queries
        audit_logger: Shared audit logger
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage

    audit_logger = audit_logger or AuditLogger(history_size=app_settings.audit_history_size)

    store = BudgetStore(
        clock=clock,
        audit_logger=audit_logger,
        default_settings=UserSettings(currency=app_settings.default_currency),
        snapshot_version=storage_settings.snapshot_version,
    )

    local = LocalSnapshotPersistence(
        local_backend or FileKeyValueBackend(Path(storage_settings.data_dir)),
        storage_key=storage_settings.storage_key,
        version=storage_settings.snapshot_version,
        audit_logger=audit_logger,
    )

    remote = None
    if remote_store is None and app_settings.sync_enabled:
        remote_store = GoogleSheetsSnapshotStore()
    if remote_store is not None:
        remote = RemoteSyncAdapter(remote_store, audit_logger=audit_logger)

    coordinator = SyncCoordinator(store, local, remote)

    return BudgetSession(
        store=store,
        local=local,
        coordinator=coordinator,
        remote=remote,
        audit_logger=audit_logger,
    )
