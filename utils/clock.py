"""
Reference-date providers.

All reminder predicates are evaluated against "today" in a fixed UTC+9
offset. The clock is injected so evaluation can be pinned in tests.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol

JST = timezone(timedelta(hours=9), name="JST")


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC+9."""

    def now(self) -> datetime:
        return datetime.now(JST)

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Always returns the same instant. Naive datetimes are read as UTC+9."""

    def __init__(self, instant: datetime | date):
        if not isinstance(instant, datetime):
            instant = datetime(instant.year, instant.month, instant.day)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=JST)
        self._instant = instant.astimezone(JST)

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.date()


def reference_date(clock: Clock) -> date:
    """Day-truncated 'today' for one evaluation pass."""
    return clock.now().astimezone(JST).date()


def to_local_date(value: date) -> date:
    """Truncate a date or datetime to its UTC+9 calendar day. Naive datetimes are taken as local."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(JST)
        return value.date()
    return value
