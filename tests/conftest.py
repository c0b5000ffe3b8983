"""Shared fixtures. Dates are pinned so period windows are deterministic."""

from datetime import date
from decimal import Decimal

import pytest

from budget_planner.audit import AuditLogger
from budget_planner.models.finance import Transaction, TransactionType
from budget_planner.store import BudgetStore


TODAY = date(2024, 6, 15)


def make_transaction(
    type: str = "expense",
    amount: str = "10",
    on: date = TODAY,
    category: str = "food",
    description: str = "",
) -> Transaction:
    return Transaction(
        type=TransactionType(type),
        amount=Decimal(amount),
        date=on,
        category=category,
        description=description,
    )


@pytest.fixture
def audit_logger():
    return AuditLogger(history_size=50)


@pytest.fixture
def store(audit_logger):
    return BudgetStore(clock=lambda: TODAY, audit_logger=audit_logger)


@pytest.fixture
def saved_snapshots(store):
    """Record every snapshot the store hands to its persister."""
    snapshots = []
    store.set_persister(snapshots.append)
    return snapshots
