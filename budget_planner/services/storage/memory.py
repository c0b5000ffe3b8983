"""
In-memory storage backends.

Used for tests and for running without a data directory. The remote
store delivers change events synchronously from inside `write`, the
same way a real-time database fires listeners for a local write
before the write is acknowledged.
"""

import copy
from typing import Optional

from budget_planner.services.storage.interface import (
    KeyValueBackend,
    RemoteChangeCallback,
    RemoteErrorCallback,
    RemotePayload,
    RemoteSnapshotStore,
    RemoteWatch,
)


class InMemoryKeyValueBackend(KeyValueBackend):

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class _MemoryWatch(RemoteWatch):

    def __init__(self, store: "InMemorySnapshotStore", key: str, callback: RemoteChangeCallback):
        self._store = store
        self._key = key
        self._callback = callback

    def cancel(self) -> None:
        self._store._remove_watcher(self._key, self._callback)


class InMemorySnapshotStore(RemoteSnapshotStore):
    """Remote store double holding deep copies of each record."""

    def __init__(self):
        self._records: dict[str, RemotePayload] = {}
        self._watchers: dict[str, list[RemoteChangeCallback]] = {}
        self.write_count = 0

    async def read(self, key: str) -> Optional[RemotePayload]:
        record = self._records.get(key)
        return copy.deepcopy(record) if record is not None else None

    async def write(self, key: str, payload: RemotePayload) -> bool:
        self._records[key] = copy.deepcopy(payload)
        self.write_count += 1
        self._fire(key)
        return True

    def push(self, key: str, payload: Optional[RemotePayload]) -> None:
        """Simulate a write made by another device."""
        if payload is None:
            self._records.pop(key, None)
        else:
            self._records[key] = copy.deepcopy(payload)
        self._fire(key)

    def watch(
        self,
        key: str,
        on_change: RemoteChangeCallback,
        on_error: Optional[RemoteErrorCallback] = None,
    ) -> RemoteWatch:
        self._watchers.setdefault(key, []).append(on_change)
        return _MemoryWatch(self, key, on_change)

    def watcher_count(self, key: str) -> int:
        return len(self._watchers.get(key, []))

    def _remove_watcher(self, key: str, callback: RemoteChangeCallback) -> None:
        callbacks = self._watchers.get(key, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def _fire(self, key: str) -> None:
        record = self._records.get(key)
        for callback in list(self._watchers.get(key, [])):
            callback(copy.deepcopy(record) if record is not None else None)
