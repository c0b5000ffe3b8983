"""
Date windows.

There are two deliberately different notions of "this period":

- Rolling lookback (transaction list): everything dated on or after
  today minus 7 days / 1 calendar month / 1 calendar year.
- Calendar window (dashboard summary): trailing 7 days for a week, the
  current calendar month, or the current calendar year.

They disagree near month and year boundaries; keep both.
"""

import calendar
from datetime import date, timedelta

from budget_planner.models.finance import Period


MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def shift_months(day: date, months: int) -> date:
    """Move by whole calendar months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month_index = divmod(index, 12)
    last_day = calendar.monthrange(year, month_index + 1)[1]
    return date(year, month_index + 1, min(day.day, last_day))


def rolling_window_start(today: date, period: Period) -> date:
    """First date included by the rolling lookback for `period`."""
    period = Period(period)
    if period == Period.WEEK:
        return today - timedelta(days=7)
    if period == Period.MONTH:
        return shift_months(today, -1)
    return shift_months(today, -12)


def in_calendar_window(day: date, period: Period, today: date) -> bool:
    """Is `day` inside the calendar window used by the summary?"""
    period = Period(period)
    if period == Period.WEEK:
        return day >= today - timedelta(days=7)
    if period == Period.MONTH:
        return day.year == today.year and day.month == today.month
    return day.year == today.year


def same_month(day: date, other: date) -> bool:
    return day.year == other.year and day.month == other.month
