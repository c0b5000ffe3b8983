"""
Aggregation Functions

Pure functions computing the dashboard numbers from store data.
Nothing here reads a clock or mutates its inputs: the reference date
is always passed in, so results are deterministic for a given state.

Money is summed as Decimal. Percentages are floats and are 0 (never
NaN or infinite) when their denominator is 0.
"""

import math
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from budget_planner.models.finance import (
    BudgetTemplate,
    Debt,
    Period,
    Transaction,
    TransactionType,
)
from budget_planner.models.reports import (
    AmortizationRow,
    BudgetUsage,
    MonthlyTrendPoint,
    Summary,
)
from budget_planner.queries.periods import (
    MONTH_LABELS,
    in_calendar_window,
    same_month,
    shift_months,
)


ZERO = Decimal("0")
CENT = Decimal("0.01")
TREND_MONTHS = 6
MAX_SCHEDULE_MONTHS = 1200  # 100 years


def total_amount(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> Decimal:
    """Sum of amounts for one transaction type."""
    return sum(
        (t.amount for t in transactions if t.type == transaction_type),
        ZERO,
    )


def _percentage(numerator: Decimal, denominator: Decimal) -> float:
    if denominator <= 0:
        return 0.0
    return float(numerator / denominator * 100)


def monthly_income(transactions: Iterable[Transaction], today: date) -> Decimal:
    """Total income dated in the current calendar month."""
    return total_amount(
        (t for t in transactions if same_month(t.date, today)),
        TransactionType.INCOME,
    )


def budget_usage(
    transactions: Iterable[Transaction],
    budgets: Mapping[str, Decimal],
    category: str,
    today: date,
) -> BudgetUsage:
    """
    Spending against a category's limit for the current calendar month.

    A category without a budget has limit 0 and percentage 0, whatever
    has been spent.
    """
    limit = budgets.get(category) or ZERO
    spent = sum(
        (
            t.amount
            for t in transactions
            if t.type == TransactionType.EXPENSE
            and t.category == category
            and same_month(t.date, today)
        ),
        ZERO,
    )
    return BudgetUsage(
        limit=limit,
        spent=spent,
        remaining=limit - spent,
        percentage=_percentage(spent, limit),
    )


def summarize(
    transactions: Iterable[Transaction],
    budgets: Mapping[str, Decimal],
    period: Period,
    today: date,
) -> Summary:
    """Dashboard totals over the calendar window for `period`."""
    in_window = [t for t in transactions if in_calendar_window(t.date, period, today)]

    income = total_amount(in_window, TransactionType.INCOME)
    expenses = total_amount(in_window, TransactionType.EXPENSE)
    total_budget = sum(budgets.values(), ZERO)

    categories: dict[str, Decimal] = {}
    for t in in_window:
        if t.type == TransactionType.EXPENSE:
            categories[t.category] = categories.get(t.category, ZERO) + t.amount

    return Summary(
        income=income,
        expenses=expenses,
        balance=income - expenses,
        savings_rate=_percentage(income - expenses, income),
        total_budget=total_budget,
        budget_used=_percentage(expenses, total_budget),
        categories=categories,
        transaction_count=len(in_window),
    )


def monthly_trend(
    transactions: Iterable[Transaction],
    today: date,
    months: int = TREND_MONTHS,
) -> list[MonthlyTrendPoint]:
    """Income and expenses for the last `months` calendar months, oldest first."""
    transactions = list(transactions)
    first_of_month = today.replace(day=1)

    points = []
    for offset in range(months - 1, -1, -1):
        month_start = shift_months(first_of_month, -offset)
        in_month = [t for t in transactions if same_month(t.date, month_start)]
        points.append(MonthlyTrendPoint(
            month=MONTH_LABELS[month_start.month - 1],
            year=month_start.year,
            month_number=month_start.month,
            income=total_amount(in_month, TransactionType.INCOME),
            expenses=total_amount(in_month, TransactionType.EXPENSE),
        ))
    return points


def budget_template_allocation(
    template: Union[BudgetTemplate, str],
    income: Decimal,
) -> dict[str, Decimal]:
    """
    Budget mapping for a named allocation policy.

    Raises:
        ValueError: If the template name is unknown
    """
    template = BudgetTemplate(template)

    if template == BudgetTemplate.FIFTY_THIRTY_TWENTY:
        # 50% needs, 30% wants, 20% savings
        needs = income * Decimal("0.5")
        wants = income * Decimal("0.3")
        savings = income * Decimal("0.2")
        return {
            "housing": needs * Decimal("0.5"),
            "utilities": needs * Decimal("0.15"),
            "food": needs * Decimal("0.25"),
            "transportation": needs * Decimal("0.1"),
            "entertainment": wants * Decimal("0.4"),
            "shopping": wants * Decimal("0.3"),
            "personal": wants * Decimal("0.3"),
            "healthcare": savings * Decimal("0.25"),
            "education": savings * Decimal("0.25"),
            "other-expense": savings * Decimal("0.5"),
        }

    # zero-based: 100% of income allocated
    shares = {
        "housing": "0.30",
        "utilities": "0.08",
        "food": "0.12",
        "transportation": "0.10",
        "entertainment": "0.05",
        "shopping": "0.08",
        "personal": "0.05",
        "healthcare": "0.07",
        "education": "0.05",
        "other-expense": "0.10",
    }
    return {category: income * Decimal(share) for category, share in shares.items()}


def debt_payoff_months(debt: Debt) -> Optional[Union[int, float]]:
    """
    Months until a debt is paid off at its current payment.

    Returns:
        None if there is no payment; NaN if the payment never covers
        the interest; otherwise a whole number of months.
    """
    payment = float(debt.payment or 0)
    if payment <= 0:
        return None

    principal = float(debt.principal or 0)
    monthly_rate = float(debt.rate or 0) / 100 / 12

    if monthly_rate == 0:
        return math.ceil(principal / payment)

    ratio = 1 - (monthly_rate * principal) / payment
    if ratio <= 0:
        return math.nan

    return math.ceil(-math.log(ratio) / math.log(1 + monthly_rate))


def is_payable(months: Optional[Union[int, float]]) -> bool:
    """True when a payoff estimate is a real, finite number of months."""
    return months is not None and math.isfinite(months)


def amortization_schedule(
    debt: Debt,
    extra_payment: Decimal = ZERO,
    max_months: int = MAX_SCHEDULE_MONTHS,
) -> list[AmortizationRow]:
    """
    Month-by-month payoff schedule.

    Empty when there is nothing to pay or the payment can't cover the
    monthly interest.
    """
    balance = debt.principal
    monthly_rate = debt.rate / Decimal(100) / Decimal(12)
    total_payment = debt.payment + extra_payment

    if balance <= 0 or total_payment <= 0:
        return []
    if total_payment <= balance * monthly_rate:
        return []

    rows = []
    month = 0
    while balance > 0 and month < max_months:
        month += 1
        interest = (balance * monthly_rate).quantize(CENT)
        principal = total_payment - interest
        if principal > balance:
            principal = balance
        balance -= principal
        rows.append(AmortizationRow(
            month=month,
            balance=max(balance, ZERO),
            interest=interest,
            principal=principal,
            total_payment=interest + principal,
        ))
    return rows
