"""Audit logging package."""

from budget_planner.audit.logger import AlertListener, AuditLogger

__all__ = ["AlertListener", "AuditLogger"]
