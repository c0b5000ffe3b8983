"""
Abstract Storage Interfaces

Two kinds of backing store hold snapshots:
1. A local key-value store (a directory of JSON files, or memory in tests)
2. An optional remote document store keyed by user identity, with
   change subscriptions (Google Sheets, or memory in tests)

Both only ever see whole snapshots serialized as JSON. There is no
partial or transactional update protocol against either one.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


RemotePayload = dict[str, Any]
RemoteChangeCallback = Callable[[Optional[RemotePayload]], None]
RemoteErrorCallback = Callable[[Exception], None]


class KeyValueBackend(ABC):
    """
    Durable string key-value storage for serialized snapshots.

    Implementations raise StorageError (or OSError) on failure; callers
    above this layer decide whether that is fatal.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Returns:
            The stored text, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Raises:
            StorageError: If the write fails (e.g. out of space)
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is not an error."""
        pass


class RemoteWatch(ABC):
    """Handle for an active remote subscription."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering change events."""
        pass


class RemoteSnapshotStore(ABC):
    """
    Remote document store holding one snapshot record per user.

    Keys are already-normalized (lower-cased) identities.
    """

    @abstractmethod
    async def read(self, key: str) -> Optional[RemotePayload]:
        """
        One-shot fetch of the current record.

        Returns:
            The stored payload, or None if no record exists

        Raises:
            ConnectionError: If the backend can't be reached
        """
        pass

    @abstractmethod
    async def write(self, key: str, payload: RemotePayload) -> bool:
        """
        Overwrite the whole record for a key.

        Returns:
            True if written

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def watch(
        self,
        key: str,
        on_change: RemoteChangeCallback,
        on_error: Optional[RemoteErrorCallback] = None,
    ) -> RemoteWatch:
        """
        Subscribe to changes of a record.

        `on_change` receives the full new payload (or None if the
        record was removed) every time the record changes.
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class MalformedSnapshotError(StorageError):
    """Stored or imported data is not a valid snapshot."""
    pass
