"""Tests for the shared calendar helpers."""
from datetime import date

from utils.dates import (
    clamp_day, days_until, format_date, last_day_of_month, last_weekday,
    nth_weekday, sunday_weekday,
)


class TestSundayWeekday:
    def test_sunday_is_zero(self):
        assert sunday_weekday(date(2026, 2, 1)) == 0

    def test_monday_is_one(self):
        assert sunday_weekday(date(2026, 10, 19)) == 1

    def test_saturday_is_six(self):
        assert sunday_weekday(date(2026, 10, 31)) == 6


class TestMonthLength:
    def test_thirty_day_month(self):
        assert last_day_of_month(2026, 4) == 30

    def test_february_leap_year(self):
        assert last_day_of_month(2024, 2) == 29
        assert last_day_of_month(2026, 2) == 28

    def test_clamp(self):
        assert clamp_day(2026, 4, 31) == 30
        assert clamp_day(2026, 2, 31) == 28
        assert clamp_day(2024, 2, 30) == 29
        assert clamp_day(2026, 5, 31) == 31
        assert clamp_day(2026, 4, 15) == 15


class TestNthWeekday:
    def test_second_wednesday(self):
        assert nth_weekday(2026, 10, 3, 2) == date(2026, 10, 14)

    def test_first_occurrence_on_the_first(self):
        assert nth_weekday(2026, 2, 0, 1) == date(2026, 2, 1)

    def test_fifth_monday_exists(self):
        assert nth_weekday(2026, 3, 1, 5) == date(2026, 3, 30)

    def test_fifth_monday_missing(self):
        assert nth_weekday(2026, 2, 1, 5) is None


class TestLastWeekday:
    def test_last_friday(self):
        assert last_weekday(2026, 10, 5) == date(2026, 10, 30)

    def test_last_day_is_the_weekday(self):
        assert last_weekday(2026, 10, 6) == date(2026, 10, 31)

    def test_last_monday_of_february(self):
        assert last_weekday(2026, 2, 1) == date(2026, 2, 23)


class TestDaysUntil:
    def test_same_day(self):
        assert days_until(date(2026, 10, 19), date(2026, 10, 19)) == 0

    def test_tomorrow(self):
        assert days_until(date(2026, 10, 19), date(2026, 10, 20)) == 1

    def test_across_year(self):
        assert days_until(date(2026, 12, 31), date(2027, 1, 2)) == 2

    def test_past(self):
        assert days_until(date(2026, 10, 19), date(2026, 10, 18)) == -1


def test_format_date():
    assert format_date(date(2026, 3, 5)) == "2026/03/05"
