"""Calendar arithmetic for maintenance scheduling.

All functions are pure: callers pass ``now`` explicitly instead of reading a clock.
"""

import math
from datetime import UTC, datetime, timedelta

from dateutil.relativedelta import relativedelta

from src.domain.maintenance import Frequency


SECONDS_PER_DAY = 86400

# Calendar months per unit of each recurring frequency (weekly is handled in days)
_MONTHS_PER_UNIT: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.BIANNUAL: 6,
    Frequency.YEARLY: 12,
}


def ensure_aware(value: datetime) -> datetime:
    """Return value as a timezone-aware datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def start_of_day(value: datetime) -> datetime:
    """Midnight of the given day, keeping its timezone."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def days_until(due: datetime, now: datetime) -> int:
    """Whole days from now until due, rounding partial days up.

    A due date 12 hours in the past gives 0 (due today); 12 hours in the future gives 1.
    """
    delta = ensure_aware(due) - ensure_aware(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months, clamping to the last day of a shorter month.

    Jan 31 + 1 month is Feb 28 (Feb 29 in a leap year), never March 2/3.
    """
    return value + relativedelta(months=months)


def advance_by_frequency(value: datetime, frequency: Frequency, units: int = 1) -> datetime:
    """Move a date forward by ``units`` steps of a recurring frequency.

    Raises:
        ValueError: If frequency is ``once``, which has no next occurrence
    """
    if frequency == Frequency.WEEKLY:
        return add_days(value, 7 * units)

    months = _MONTHS_PER_UNIT.get(frequency)
    if months is None:
        msg = f"Frequency '{frequency}' does not recur"
        raise ValueError(msg)
    return add_months(value, months * units)
