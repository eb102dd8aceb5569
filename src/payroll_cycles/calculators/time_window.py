"""Calendar month boundaries for payroll periods."""

from __future__ import annotations

import calendar
from collections.abc import Iterator
from datetime import date

from payroll_cycles.calculators.types import PayPeriodWindow
from payroll_cycles.errors import InvalidPeriodError


def resolve_pay_period(year: int, month: int) -> PayPeriodWindow:
    """Resolve the calendar window for a payroll month.

    Every calendar day counts as a working day; weekends and holidays are
    not excluded.

    Raises:
        InvalidPeriodError: If month is outside 1-12 or year is out of range.
    """
    if not 1 <= month <= 12:
        raise InvalidPeriodError(year, month, "month must be between 1 and 12")
    if not date.min.year <= year <= date.max.year:
        raise InvalidPeriodError(year, month, "year is out of range")

    days_in_month = calendar.monthrange(year, month)[1]
    return PayPeriodWindow(
        year=year,
        month=month,
        month_start=date(year, month, 1),
        month_end=date(year, month, days_in_month),
        total_working_days=days_in_month,
    )


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def iter_months(start: date, stop: date) -> Iterator[tuple[int, int]]:
    """Yield (year, month) from start's month up to, not including, stop's month."""
    year, month = start.year, start.month
    while (year, month) < (stop.year, stop.month):
        yield year, month
        year, month = next_month(year, month)
