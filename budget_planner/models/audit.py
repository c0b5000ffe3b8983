"""
Audit Models for Budget Planner

Every mutation and every storage/sync outcome is recorded as an audit
event. This provides:
1. Traceability of what changed the data and when
2. The only place durability failures become visible (they never
   propagate into mutation results)
3. The feed for user-facing sync warnings
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Domain mutations
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    BUDGET_SET = "budget_set"
    BUDGET_REMOVED = "budget_removed"
    BUDGET_TEMPLATE_APPLIED = "budget_template_applied"
    SETTINGS_CHANGED = "settings_changed"

    # Local persistence
    LOCAL_SAVE_FAILED = "local_save_failed"
    LOCAL_LOAD_FAILED = "local_load_failed"
    LOCAL_CLEARED = "local_cleared"

    # Remote sync
    REMOTE_USER_BOUND = "remote_user_bound"
    REMOTE_SAVE_FAILED = "remote_save_failed"
    REMOTE_LOAD_FAILED = "remote_load_failed"
    REMOTE_UPDATE_APPLIED = "remote_update_applied"
    REMOTE_ECHO_IGNORED = "remote_echo_ignored"
    REMOTE_SYNC_ERROR = "remote_sync_error"

    # Session / import
    SESSION_STARTED = "session_started"
    IMPORT_COMPLETED = "import_completed"
    IMPORT_FAILED = "import_failed"

    OBSERVER_FAILED = "observer_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What is this about? e.g. ('transaction', '<id>') or ('snapshot', '<key>')
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    # Should the user see a transient notification for this?
    notify_user: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("goal", goal.id)
        event = AuditEventBuilder.remote_save_failed("alice", str(exc))
    """

    @staticmethod
    def entity_created(entity_type: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type} created",
        )

    @staticmethod
    def entity_updated(entity_type: str, entity_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type} updated",
            details={"fields": fields},
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str, existed: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type} deleted" if existed else f"{entity_type} not found, nothing deleted",
            details={"existed": existed},
        )

    @staticmethod
    def budget_template_applied(template: str, income: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_TEMPLATE_APPLIED,
            entity_type="budgets",
            description=f"Budget template applied: {template}",
            details={"template": template, "monthly_income": income},
        )

    @staticmethod
    def local_save_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            entity_id=key,
            description="Failed to save local data",
            error_message=error_message,
        )

    @staticmethod
    def local_load_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            entity_id=key,
            description="Failed to load local data",
            error_message=error_message,
        )

    @staticmethod
    def remote_save_failed(identity: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SAVE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            entity_id=identity,
            description="Cloud sync failed. Changes are kept locally.",
            error_message=error_message,
            notify_user=True,
        )

    @staticmethod
    def remote_load_failed(identity: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            entity_id=identity,
            description="Could not load cloud data. Using local data.",
            error_message=error_message,
            notify_user=True,
        )

    @staticmethod
    def remote_sync_error(identity: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_ERROR,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            entity_id=identity,
            description="Sync error. Using local data.",
            error_message=error_message,
            notify_user=True,
        )

    @staticmethod
    def remote_update_applied(identity: str, revision: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_UPDATE_APPLIED,
            entity_type="snapshot",
            entity_id=identity,
            description="Received data from cloud",
            details={"revision": revision},
        )

    @staticmethod
    def remote_echo_ignored(identity: str, revision: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_ECHO_IGNORED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            entity_id=identity,
            description="Ignored echo of own write",
            details={"revision": revision},
        )

    @staticmethod
    def import_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            description="Failed to import data",
            error_message=error_message,
            notify_user=True,
        )

    @staticmethod
    def session_started(identity: Optional[str], source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            entity_type="session",
            entity_id=identity,
            description=f"Session started from {source} data",
            details={"source": source},
        )
