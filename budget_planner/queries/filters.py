"""
Transaction list filtering.

Search, type and category filters are AND-composed. A filter set to
`all` (or an empty search) passes everything through. The period
filter always applies and uses the rolling lookback window.
"""

from datetime import date
from typing import Iterable

from budget_planner.models.finance import Period, Transaction, TransactionFilters
from budget_planner.queries.periods import rolling_window_start


def matches_search(transaction: Transaction, search: str) -> bool:
    """Case-insensitive substring match on description or category id."""
    needle = search.lower()
    return (
        needle in transaction.description.lower()
        or needle in transaction.category.lower()
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: TransactionFilters,
    period: Period,
    today: date,
) -> list[Transaction]:
    """
    Apply the list filters, preserving input order.

    Args:
        transactions: Store order (most recent first)
        filters: Search/type/category selections
        period: Lookback period
        today: Reference date for the lookback

    Returns:
        New list of matching transactions
    """
    filtered = list(transactions)

    if filters.search:
        filtered = [t for t in filtered if matches_search(t, filters.search)]

    if filters.type != "all":
        filtered = [t for t in filtered if t.type.value == filters.type]

    if filters.category != "all":
        filtered = [t for t in filtered if t.category == filters.category]

    start = rolling_window_start(today, period)
    return [t for t in filtered if t.date >= start]
