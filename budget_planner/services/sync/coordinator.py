"""
Sync Coordinator

Joins the store to its two backing stores:
- After each mutation: write local, then enqueue the remote write
- On startup: choose between the remote and local snapshots
- On remote change: overwrite the store and back the result up locally

Remote work runs on a `SyncWorker` thread. The remote write is
fire-and-forget: the mutation returns once the local write is done and
`drain` waits for the queued remote writes. Queued writes reach the
remote store one at a time, in mutation order.
"""

import asyncio
import concurrent.futures
import threading
from typing import Optional

from budget_planner.models.finance import Snapshot
from budget_planner.services.storage.local import LocalSnapshotPersistence
from budget_planner.services.sync.remote import RemoteSyncAdapter
from budget_planner.services.sync.worker import SyncWorker
from budget_planner.store import BudgetStore


class SnapshotSource:
    REMOTE = "remote"
    LOCAL = "local"
    EMPTY = "empty"


class SyncCoordinator:

    def __init__(
        self,
        store: BudgetStore,
        local: LocalSnapshotPersistence,
        remote: Optional[RemoteSyncAdapter] = None,
        worker: Optional[SyncWorker] = None,
    ):
        self._store = store
        self._local = local
        self._remote = remote
        self._worker = worker or (SyncWorker() if remote is not None else None)

        self._pending: set[concurrent.futures.Future] = set()
        self._pending_lock = threading.Lock()
        self._write_lock: Optional[asyncio.Lock] = None

        store.set_persister(self.save)

    @property
    def remote_active(self) -> bool:
        return self._remote is not None and self._remote.is_active()

    @property
    def worker(self) -> Optional[SyncWorker]:
        return self._worker

    def save(self, snapshot: Optional[Snapshot] = None) -> bool:
        """
        Persist a snapshot: local first, then enqueue the remote write.

        Returns:
            Whether the local write succeeded
        """
        if snapshot is None:
            snapshot = self._store.snapshot()
        saved = self._local.save_local(snapshot)

        if self.remote_active:
            self._dispatch_remote(snapshot)

        return saved

    def _dispatch_remote(self, snapshot: Snapshot) -> None:
        future = self._worker.submit(self._save_remote(snapshot))
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: concurrent.futures.Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    async def _save_remote(self, snapshot: Snapshot) -> bool:
        # Runs on the worker loop; the lock keeps writes in mutation order
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            return await self._remote.save(snapshot)

    def pending_writes(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    async def drain(self) -> None:
        """Wait for every queued remote write to settle."""
        while True:
            with self._pending_lock:
                pending = list(self._pending)
            if not pending:
                return
            await asyncio.gather(*(asyncio.wrap_future(f) for f in pending))

    def bind_remote_user(self, identity: str) -> None:
        """Subscribe to `identity` from the worker loop, so polling outlives the caller's loop."""
        if self._remote is not None:
            self._worker.call(self._remote.set_user, identity, self.apply_remote_snapshot)

    def apply_remote_snapshot(self, snapshot: Snapshot) -> None:
        """Overwrite the store with a remote snapshot and keep a local backup."""
        self._store.load_snapshot(snapshot)
        self._local.save_local(self._store.snapshot())

    async def load_with_sync(self) -> tuple[Optional[Snapshot], str]:
        """
        Pick the initial snapshot.

        Remote wins whenever it has a record. Otherwise local is used
        (and becomes the first remote value on the next save).

        Returns:
            (snapshot or None, one of SnapshotSource)
        """
        local = self._local.load()

        if self.remote_active:
            remote = await asyncio.wrap_future(self._worker.submit(self._remote.load()))
            if remote is not None:
                return remote, SnapshotSource.REMOTE

        if local is not None:
            return local, SnapshotSource.LOCAL
        return None, SnapshotSource.EMPTY

    def disconnect(self) -> None:
        if self._remote is None:
            return
        if self._worker is not None and self._worker.running:
            self._worker.call(self._remote.disconnect)
        else:
            self._remote.disconnect()

    def shutdown(self) -> None:
        """Stop the worker thread. Call after `drain` and `disconnect`."""
        if self._worker is not None:
            self._worker.stop()
        self._write_lock = None
