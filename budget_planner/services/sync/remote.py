"""
Remote Sync Adapter

Binds the session to one user's record in the remote store, keeps a
subscription open, and pushes full-snapshot overwrites.

Echo suppression: every outbound write is tagged with this adapter's
origin token and a monotonically increasing revision. An inbound event
carrying our origin and a revision we have already issued is our own
write coming back and is ignored. Unlike a single "write in progress"
flag, this stays correct when writes overlap, and it also drops a late
echo of an older write that would otherwise roll the store back.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import uuid4

from pydantic import ValidationError

from budget_planner.audit import AuditLogger
from budget_planner.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from budget_planner.models.finance import Snapshot
from budget_planner.services.storage.interface import (
    RemotePayload,
    RemoteSnapshotStore,
    RemoteWatch,
)


SnapshotListener = Callable[[Snapshot], None]


class RemoteSyncAdapter:
    """
    Optional real-time replication of the snapshot for one identity.

    Failures are logged and reported as False/None; the local save path
    is never blocked by this adapter.
    """

    def __init__(
        self,
        store: RemoteSnapshotStore,
        audit_logger: Optional[AuditLogger] = None,
        enabled: bool = True,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._enabled = enabled

        self._identity: Optional[str] = None
        self._watch: Optional[RemoteWatch] = None
        self._listener: Optional[SnapshotListener] = None

        self._origin = uuid4().hex
        self._revision = 0
        self._in_flight: set[int] = set()

    @property
    def origin(self) -> str:
        return self._origin

    @property
    def revision(self) -> int:
        """Latest revision issued by this adapter."""
        return self._revision

    @property
    def current_user(self) -> Optional[str]:
        return self._identity

    @property
    def suppress_echo(self) -> bool:
        """True while at least one of our writes is in flight."""
        return bool(self._in_flight)

    def is_active(self) -> bool:
        return self._enabled and self._identity is not None

    def set_user(self, identity: str, on_change: SnapshotListener) -> None:
        """
        Bind to the record of `identity` (lower-cased) and subscribe to it.

        `on_change` receives every remote snapshot that isn't our own echo.
        """
        if not self._enabled:
            return

        self.disconnect()
        self._identity = identity.lower()
        self._listener = on_change
        self._watch = self._store.watch(
            self._identity,
            self._handle_remote_change,
            self._handle_remote_error,
        )
        self._audit_logger.log(AuditEvent(
            event_type=AuditEventType.REMOTE_USER_BOUND,
            entity_type="snapshot",
            entity_id=self._identity,
            description="Remote sync user set",
        ))

    def disconnect(self) -> None:
        """Stop the subscription and unbind the user."""
        if self._watch is not None:
            self._watch.cancel()
        self._watch = None
        self._identity = None
        self._listener = None

    def is_own_write(self, payload: RemotePayload) -> bool:
        revision = payload.get("revision")
        return (
            payload.get("origin") == self._origin
            and isinstance(revision, int)
            and revision <= self._revision
        )

    def _handle_remote_change(self, payload: Optional[RemotePayload]) -> None:
        if not payload or self._listener is None:
            return

        if self.is_own_write(payload):
            self._audit_logger.log(
                AuditEventBuilder.remote_echo_ignored(self._identity, payload.get("revision"))
            )
            return

        try:
            snapshot = Snapshot.model_validate(payload)
        except ValidationError as e:
            self._audit_logger.log(AuditEventBuilder.remote_sync_error(self._identity, str(e)))
            return

        self._audit_logger.log(
            AuditEventBuilder.remote_update_applied(self._identity, snapshot.revision)
        )
        self._listener(snapshot)

    def _handle_remote_error(self, error: Exception) -> None:
        self._audit_logger.log(AuditEventBuilder.remote_sync_error(self._identity or "", str(error)))

    async def save(self, snapshot: Snapshot) -> bool:
        """
        Overwrite the remote record with this snapshot.

        Returns:
            True if written. False if inactive or the write failed; the
            next mutation will try again with a newer snapshot.
        """
        if not self.is_active():
            return False

        identity = self._identity
        self._revision += 1
        revision = self._revision
        payload = snapshot.model_copy(update={
            "saved_at": None,
            "last_updated": datetime.now(timezone.utc),
            "origin": self._origin,
            "revision": revision,
        }).to_payload()

        self._in_flight.add(revision)
        try:
            return await self._store.write(identity, payload)
        except Exception as e:
            self._audit_logger.log(AuditEventBuilder.remote_save_failed(identity, str(e)))
            return False
        finally:
            self._in_flight.discard(revision)

    async def load(self) -> Optional[Snapshot]:
        """
        One-shot fetch of the remote snapshot.

        Returns:
            The snapshot, or None if there is none, sync is inactive, or
            the fetch failed
        """
        if not self.is_active():
            return None

        try:
            payload = await self._store.read(self._identity)
        except Exception as e:
            self._audit_logger.log(AuditEventBuilder.remote_load_failed(self._identity, str(e)))
            return None

        if not payload:
            return None

        try:
            return Snapshot.model_validate(payload)
        except ValidationError as e:
            self._audit_logger.log(AuditEventBuilder.remote_load_failed(self._identity, str(e)))
            return None
