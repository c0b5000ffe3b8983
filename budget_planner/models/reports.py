"""
Derived report models.

These are computed on demand from store data and never persisted.
The render layer reads them after every change notification.
"""

from decimal import Decimal

from pydantic import Field

from budget_planner.models.finance import CamelModel


class BudgetUsage(CamelModel):
    """Spending against one category's monthly limit."""

    limit: Decimal = Decimal("0")
    spent: Decimal = Decimal("0")
    remaining: Decimal = Decimal("0")
    percentage: float = 0.0


class Summary(CamelModel):
    """
    Dashboard totals for the active period.

    `balance` always equals income - expenses. Rates are 0, never NaN,
    when their denominator is 0.
    """

    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    savings_rate: float = 0.0
    total_budget: Decimal = Decimal("0")
    budget_used: float = 0.0
    categories: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Expense total per category id"
    )
    transaction_count: int = Field(default=0, ge=0)


class MonthlyTrendPoint(CamelModel):
    """Income and expenses for one calendar month."""

    month: str = Field(..., description="Three-letter month label, e.g. 'Jan'")
    year: int
    month_number: int = Field(..., ge=1, le=12)
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")


class AmortizationRow(CamelModel):
    """One month of a debt payoff schedule."""

    month: int = Field(..., ge=1)
    balance: Decimal
    interest: Decimal
    principal: Decimal
    total_payment: Decimal
