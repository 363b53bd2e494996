"""Recurrence engine: rolls a maintenance task forward after a completion."""

from datetime import datetime

from pydantic import BaseModel

from src.core.date_math import advance_by_frequency, ensure_aware
from src.core.errors import TaskAlreadyCompletedError
from src.domain.maintenance import Frequency, MaintenanceTask


_FREQUENCY_DESCRIPTIONS: dict[Frequency, str] = {
    Frequency.ONCE: "one time",
    Frequency.WEEKLY: "every week",
    Frequency.MONTHLY: "every month",
    Frequency.QUARTERLY: "every 3 months",
    Frequency.BIANNUAL: "every 6 months",
    Frequency.YEARLY: "every year",
}


class RecurrenceOutcome(BaseModel):
    """Result of advancing a task past its current occurrence."""

    done: bool
    next_due_date: datetime | None = None


def advance(task: MaintenanceTask) -> RecurrenceOutcome:
    """Compute what happens to a task once its current occurrence is completed.

    One-time tasks become terminally done. Recurring tasks move forward one
    frequency unit from the current ``next_due_date`` (not from the completion
    time), so early or late completions never shift the schedule.

    Args:
        task: The task being completed

    Returns:
        RecurrenceOutcome with ``done=True`` or the new due date

    Raises:
        TaskAlreadyCompletedError: If the task has already terminated
    """
    if task.is_completed:
        msg = f"Cannot advance: task {task.id} is already completed"
        raise TaskAlreadyCompletedError(msg)

    if task.frequency == Frequency.ONCE:
        return RecurrenceOutcome(done=True)

    return RecurrenceOutcome(
        done=False,
        next_due_date=advance_by_frequency(task.next_due_date, task.frequency),
    )


def initial_due_date(frequency: Frequency, now: datetime) -> datetime:
    """First due date for a task created from a template: one unit from now, or now for one-time tasks."""
    now = ensure_aware(now)
    if frequency == Frequency.ONCE:
        return now
    return advance_by_frequency(now, frequency)


def describe_frequency(frequency: Frequency) -> str:
    """Convert a frequency to human-readable text (e.g., "every 3 months")."""
    return _FREQUENCY_DESCRIPTIONS[frequency]
