"""
Local Snapshot Persistence

Durable read/write of the versioned snapshot under a key namespaced by
the active user identity. When no user is active the plain storage key
is used.

Failure policy: serialization and storage errors are caught, logged
and reported as False/None. They never raise into the mutation that
triggered the save; the in-memory state stays authoritative.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from pydantic import ValidationError

from budget_planner.audit import AuditLogger
from budget_planner.models.audit import AuditEventBuilder, AuditEventType, AuditEvent
from budget_planner.models.finance import Snapshot
from budget_planner.services.storage.interface import KeyValueBackend, StorageError


class FileKeyValueBackend(KeyValueBackend):
    """
    One JSON file per key inside a data directory.

    Writes go to a temporary file first and are renamed into place, so
    a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{quote(key, safe='')}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, self._path_for(key))
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e


class LocalSnapshotPersistence:
    """Persistence adapter for the local snapshot of the active user."""

    def __init__(
        self,
        backend: KeyValueBackend,
        storage_key: str = "budgetPlannerData",
        version: int = 1,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._storage_key = storage_key
        self._version = version
        self._audit_logger = audit_logger or AuditLogger()
        self._identity: Optional[str] = None

    def set_user(self, identity: Optional[str]) -> None:
        """Namespace subsequent reads/writes to this identity (None for the default key)."""
        self._identity = identity.lower() if identity else None

    @property
    def key(self) -> str:
        if self._identity:
            return f"{self._storage_key}:{self._identity}"
        return self._storage_key

    def save_local(self, snapshot: Snapshot) -> bool:
        """
        Write the snapshot with the current version and a savedAt stamp.

        Returns:
            True if written, False if serialization or storage failed
        """
        try:
            stamped = snapshot.model_copy(update={
                "version": self._version,
                "saved_at": datetime.now(timezone.utc),
            })
            self._backend.set(self.key, stamped.model_dump_json(by_alias=True, exclude_none=True))
            return True
        except (StorageError, OSError, ValueError, TypeError) as e:
            self._audit_logger.log(AuditEventBuilder.local_save_failed(self.key, str(e)))
            return False

    def load(self) -> Optional[Snapshot]:
        """
        Read the stored snapshot.

        Returns:
            The snapshot, or None if absent or unreadable
        """
        try:
            stored = self._backend.get(self.key)
            if not stored:
                return None
            return Snapshot.model_validate_json(stored)
        except (ValidationError, StorageError, OSError, ValueError) as e:
            self._audit_logger.log(AuditEventBuilder.local_load_failed(self.key, str(e)))
            return None

    def clear(self) -> bool:
        """Remove the stored snapshot for the active key."""
        try:
            self._backend.remove(self.key)
        except (StorageError, OSError) as e:
            self._audit_logger.log(AuditEventBuilder.local_save_failed(self.key, str(e)))
            return False

        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.LOCAL_CLEARED,
            entity_type="snapshot",
            entity_id=self.key,
            description="Local data cleared",
        ))
        return True
