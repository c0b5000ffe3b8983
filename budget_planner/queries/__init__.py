"""Pure query and aggregation functions over store data."""

from budget_planner.queries.aggregations import (
    amortization_schedule,
    budget_template_allocation,
    budget_usage,
    debt_payoff_months,
    is_payable,
    monthly_income,
    monthly_trend,
    summarize,
    total_amount,
)
from budget_planner.queries.filters import filter_transactions, matches_search
from budget_planner.queries.periods import (
    in_calendar_window,
    rolling_window_start,
    shift_months,
)

__all__ = [
    "amortization_schedule",
    "budget_template_allocation",
    "budget_usage",
    "debt_payoff_months",
    "filter_transactions",
    "in_calendar_window",
    "is_payable",
    "matches_search",
    "monthly_income",
    "monthly_trend",
    "rolling_window_start",
    "shift_months",
    "summarize",
    "total_amount",
]
