"""Unit tests for the recurrence engine."""

from datetime import UTC, datetime

import pytest

from src.core.errors import TaskAlreadyCompletedError
from src.core.recurrence import advance, describe_frequency, initial_due_date
from src.domain.maintenance import Frequency
from tests.unit.mocks import make_task


@pytest.mark.unit
def test_once_task_is_done():
    outcome = advance(make_task(frequency=Frequency.ONCE))

    assert outcome.done is True
    assert outcome.next_due_date is None


@pytest.mark.unit
def test_monthly_from_january_31_lands_on_leap_day():
    task = make_task(frequency=Frequency.MONTHLY, next_due_date=datetime(2024, 1, 31, tzinfo=UTC))

    outcome = advance(task)

    assert outcome.done is False
    assert outcome.next_due_date == datetime(2024, 2, 29, tzinfo=UTC)


@pytest.mark.unit
def test_weekly_advances_seven_days_from_previous_due_date():
    task = make_task(frequency=Frequency.WEEKLY, next_due_date=datetime(2024, 3, 4, 8, 0, tzinfo=UTC))

    outcome = advance(task)

    assert outcome.next_due_date == datetime(2024, 3, 11, 8, 0, tzinfo=UTC)


@pytest.mark.unit
def test_advance_does_not_mutate_task():
    task = make_task(frequency=Frequency.QUARTERLY)
    before = task.model_copy()

    advance(task)

    assert task == before


@pytest.mark.unit
def test_advancing_completed_task_is_rejected():
    task = make_task(frequency=Frequency.ONCE, is_completed=True)

    with pytest.raises(TaskAlreadyCompletedError):
        advance(task)


@pytest.mark.unit
def test_initial_due_date():
    now = datetime(2024, 1, 31, 10, 0, tzinfo=UTC)

    assert initial_due_date(Frequency.ONCE, now) == now
    assert initial_due_date(Frequency.WEEKLY, now) == datetime(2024, 2, 7, 10, 0, tzinfo=UTC)
    assert initial_due_date(Frequency.MONTHLY, now) == datetime(2024, 2, 29, 10, 0, tzinfo=UTC)
    assert initial_due_date(Frequency.YEARLY, now) == datetime(2025, 1, 31, 10, 0, tzinfo=UTC)


@pytest.mark.unit
def test_describe_frequency():
    assert describe_frequency(Frequency.ONCE) == "one time"
    assert describe_frequency(Frequency.QUARTERLY) == "every 3 months"
    assert describe_frequency(Frequency.BIANNUAL) == "every 6 months"
