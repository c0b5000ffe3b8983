"""
Audit Logger

Storage and sync failures never propagate into mutation results, so the
audit log is where they become visible. The audit logger:
- Writes every event as a structured log line
- Keeps a bounded in-memory history for inspection
- Fans user-facing warnings out to alert listeners (toasts)

It is synchronous: store mutations are synchronous and log inline.
"""

from collections import deque
from typing import Callable, Optional

import structlog

from budget_planner.models.audit import AuditEvent, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


AlertListener = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Central audit logging service.

    One instance is shared by the store, the storage adapters and the
    sync adapter of a session.
    """

    def __init__(self, history_size: int = 200):
        """
        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("budget_planner.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._alert_listeners: list[AlertListener] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event and notify alert listeners if it is user-facing."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

        if event.notify_user:
            for listener in list(self._alert_listeners):
                try:
                    listener(event)
                except Exception as e:
                    self._logger.error(
                        "alert_listener_failed",
                        error=str(e),
                        event_id=str(event.event_id),
                    )

    def add_alert_listener(self, listener: AlertListener) -> Callable[[], None]:
        """
        Register a callback for user-facing warnings.

        Returns a function that removes the listener again.
        """
        self._alert_listeners.append(listener)

        def remove() -> None:
            if listener in self._alert_listeners:
                self._alert_listeners.remove(listener)

        return remove

    def recent_events(self, limit: Optional[int] = None) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(reversed(self._history))
        if limit is not None:
            return events[:limit]
        return events
