"""Status classifier: derives a task's urgency from its due date and the current time."""

from collections.abc import Iterable
from datetime import datetime

from src.core.date_math import days_until
from src.domain.maintenance import URGENCY_ORDER, MaintenanceTask, UrgencyState
from src.models.service_models import MaintenanceStats


def classify(task: MaintenanceTask, now: datetime) -> UrgencyState:
    """Classify a task relative to now.

    Completed tasks are always ``completed``. Otherwise a task is ``overdue``
    once its due day has passed, ``due_soon`` within its reminder window
    (inclusive), and ``upcoming`` before that.
    """
    if task.is_completed:
        return UrgencyState.COMPLETED

    remaining = days_until(task.next_due_date, now)
    if remaining < 0:
        return UrgencyState.OVERDUE
    if remaining <= task.reminder_days_before:
        return UrgencyState.DUE_SOON
    return UrgencyState.UPCOMING


def group_by_urgency(tasks: Iterable[MaintenanceTask], now: datetime) -> dict[UrgencyState, list[MaintenanceTask]]:
    """Group tasks by urgency, with keys in display order (overdue first). Input order is kept within a group."""
    groups: dict[UrgencyState, list[MaintenanceTask]] = {state: [] for state in URGENCY_ORDER}
    for task in tasks:
        groups[classify(task, now)].append(task)
    return groups


def summarize(tasks: Iterable[MaintenanceTask], now: datetime) -> MaintenanceStats:
    """Count tasks per urgency state."""
    groups = group_by_urgency(tasks, now)
    return MaintenanceStats(
        overdue=len(groups[UrgencyState.OVERDUE]),
        due_soon=len(groups[UrgencyState.DUE_SOON]),
        upcoming=len(groups[UrgencyState.UPCOMING]),
        completed=len(groups[UrgencyState.COMPLETED]),
    )
