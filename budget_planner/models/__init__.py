"""
Data Models Package

This package contains all Pydantic models used by Budget Planner.
Everything held in the store or written to storage conforms to these schemas.
"""

from budget_planner.models.finance import (
    BudgetTemplate,
    Debt,
    DebtDraft,
    ExportBundle,
    Goal,
    GoalDraft,
    Period,
    Recurrence,
    Snapshot,
    Transaction,
    TransactionDraft,
    TransactionFilters,
    TransactionType,
    UserSettings,
    generate_id,
)
from budget_planner.models.reports import (
    AmortizationRow,
    BudgetUsage,
    MonthlyTrendPoint,
    Summary,
)
from budget_planner.models.categories import CategoryInfo, get_category_info
from budget_planner.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Domain models
    "BudgetTemplate",
    "Debt",
    "DebtDraft",
    "ExportBundle",
    "Goal",
    "GoalDraft",
    "Period",
    "Recurrence",
    "Snapshot",
    "Transaction",
    "TransactionDraft",
    "TransactionFilters",
    "TransactionType",
    "UserSettings",
    "generate_id",
    # Reports
    "AmortizationRow",
    "BudgetUsage",
    "MonthlyTrendPoint",
    "Summary",
    # Categories
    "CategoryInfo",
    "get_category_info",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
