"""Unit tests for calendar arithmetic."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from src.core.date_math import (
    add_months,
    advance_by_frequency,
    days_until,
    ensure_aware,
    start_of_day,
)
from src.domain.maintenance import Frequency


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestDaysUntil:
    """Tests for days_until rounding."""

    def test_same_instant_is_zero(self):
        assert days_until(NOW, NOW) == 0

    def test_twelve_hours_ago_counts_as_today(self):
        assert days_until(NOW - timedelta(hours=12), NOW) == 0

    def test_twelve_hours_ahead_counts_as_one_day(self):
        assert days_until(NOW + timedelta(hours=12), NOW) == 1

    def test_exact_days(self):
        assert days_until(NOW + timedelta(days=3), NOW) == 3
        assert days_until(NOW - timedelta(days=1), NOW) == -1

    def test_naive_values_are_treated_as_utc(self):
        assert days_until(datetime(2024, 3, 4, 12, 0), NOW) == 3

    def test_other_timezones_compare_by_instant(self):
        plus_two = timezone(timedelta(hours=2))
        due = datetime(2024, 3, 4, 14, 0, tzinfo=plus_two)
        assert days_until(due, NOW) == 3


@pytest.mark.unit
class TestAddMonths:
    """Tests for month arithmetic with clamping."""

    def test_clamps_to_end_of_february_in_leap_year(self):
        assert add_months(datetime(2024, 1, 31, tzinfo=UTC), 1) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_clamps_to_end_of_february_in_common_year(self):
        assert add_months(datetime(2023, 1, 31, tzinfo=UTC), 1) == datetime(2023, 2, 28, tzinfo=UTC)

    def test_keeps_time_of_day(self):
        result = add_months(datetime(2024, 5, 15, 9, 30, tzinfo=UTC), 6)
        assert result == datetime(2024, 11, 15, 9, 30, tzinfo=UTC)

    def test_crosses_year_boundary(self):
        assert add_months(datetime(2024, 11, 30, tzinfo=UTC), 3) == datetime(2025, 2, 28, tzinfo=UTC)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        (Frequency.WEEKLY, datetime(2024, 1, 22, tzinfo=UTC)),
        (Frequency.MONTHLY, datetime(2024, 2, 15, tzinfo=UTC)),
        (Frequency.QUARTERLY, datetime(2024, 4, 15, tzinfo=UTC)),
        (Frequency.BIANNUAL, datetime(2024, 7, 15, tzinfo=UTC)),
        (Frequency.YEARLY, datetime(2025, 1, 15, tzinfo=UTC)),
    ],
)
def test_advance_by_frequency(frequency, expected):
    assert advance_by_frequency(datetime(2024, 1, 15, tzinfo=UTC), frequency) == expected


@pytest.mark.unit
def test_advance_by_frequency_multiple_units():
    start = datetime(2024, 1, 15, tzinfo=UTC)
    assert advance_by_frequency(start, Frequency.WEEKLY, units=2) == datetime(2024, 1, 29, tzinfo=UTC)
    assert advance_by_frequency(start, Frequency.QUARTERLY, units=2) == datetime(2024, 7, 15, tzinfo=UTC)


@pytest.mark.unit
def test_advance_by_frequency_rejects_once():
    with pytest.raises(ValueError, match="does not recur"):
        advance_by_frequency(NOW, Frequency.ONCE)


@pytest.mark.unit
def test_yearly_from_leap_day_clamps():
    assert advance_by_frequency(datetime(2024, 2, 29, tzinfo=UTC), Frequency.YEARLY) == datetime(
        2025, 2, 28, tzinfo=UTC
    )


@pytest.mark.unit
def test_start_of_day_keeps_timezone():
    assert start_of_day(NOW) == datetime(2024, 3, 1, tzinfo=UTC)


@pytest.mark.unit
def test_ensure_aware_leaves_aware_values_alone():
    plus_two = timezone(timedelta(hours=2))
    value = datetime(2024, 3, 1, tzinfo=plus_two)
    assert ensure_aware(value).tzinfo is plus_two
    assert ensure_aware(datetime(2024, 3, 1)).tzinfo is UTC
