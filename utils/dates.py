"""
Shared calendar helpers — used by the rule evaluator and the scheduler.

Weekdays use the 0 = Sunday .. 6 = Saturday numbering of the reminder
config files, not Python's Monday-based `date.weekday()`.
"""
from __future__ import annotations

from calendar import monthrange
from datetime import date, timedelta
from typing import Optional


def sunday_weekday(d: date) -> int:
    """Weekday of `d` with 0 = Sunday."""
    return d.isoweekday() % 7


def last_day_of_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> int:
    """Clamp a day-of-month to the month's length (31 → 30 in April)."""
    return min(day, last_day_of_month(year, month))


def nth_weekday(year: int, month: int, weekday: int, n: int) -> Optional[date]:
    """
    Date of the n-th `weekday` (0 = Sunday) in the month.
    Returns None when the month has fewer than n such weekdays.
    """
    first = date(year, month, 1)
    offset = (weekday - sunday_weekday(first)) % 7
    target = first + timedelta(days=offset + (n - 1) * 7)
    if target.month != month:
        return None
    return target


def last_weekday(year: int, month: int, weekday: int) -> date:
    """Date of the last `weekday` (0 = Sunday) in the month."""
    last = date(year, month, last_day_of_month(year, month))
    return last - timedelta(days=(sunday_weekday(last) - weekday) % 7)


def days_until(today: date, target: date) -> int:
    """Whole calendar days from today to target (0 on the day, negative once passed)."""
    return (target - today).days


def format_date(d: date) -> str:
    return d.strftime("%Y/%m/%d")
