"""Notification synchronizer: reconciles the reminder backend with the task store.

Reconciliation is diff-based. Given every active task, the synchronizer works
out which reminders should exist, compares them with what the backend holds,
and only issues the schedule/cancel calls needed to close the gap. Running it
twice in a row makes no backend calls the second time.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from src.core.config import constants
from src.core.date_math import ensure_aware
from src.core.errors import ReminderBackendError
from src.core.logging import log_with_task_context, span
from src.core.reminder_scheduler import ReminderBackend, reminder_backend
from src.domain.maintenance import MaintenanceTask, ScheduledReminder
from src.models.service_models import SyncReport


logger = logging.getLogger(__name__)


def reminder_fire_at(task: MaintenanceTask) -> datetime:
    """When a task's reminder fires: ``reminder_days_before`` days ahead of its due date."""
    return task.next_due_date - timedelta(days=task.reminder_days_before)


def build_reminder_payload(task: MaintenanceTask) -> dict[str, Any]:
    """Notification content for a task's reminder."""
    if task.reminder_days_before == 0:
        when = "today"
    elif task.reminder_days_before == 1:
        when = "tomorrow"
    else:
        when = f"in {task.reminder_days_before} days"

    return {
        "type": "maintenance",
        "title": constants.REMINDER_TITLE,
        "body": f"{task.title} is due {when}",
        "task_id": task.id,
        "property_id": task.property_id,
    }


def desired_reminders(tasks: Iterable[MaintenanceTask], now: datetime) -> dict[str, ScheduledReminder]:
    """Reminders that should be pending, keyed by task id.

    Completed and inactive tasks get none. Reminders whose fire time is not
    after ``now`` are dropped rather than fired late; the task shows as due
    soon or overdue in the list instead.
    """
    now = ensure_aware(now)
    desired: dict[str, ScheduledReminder] = {}
    for task in tasks:
        if task.is_completed or not task.is_active:
            continue
        fire_at = reminder_fire_at(task)
        if fire_at <= now:
            continue
        desired[task.id] = ScheduledReminder(task_id=task.id, fire_at=fire_at, payload=build_reminder_payload(task))
    return desired


def _matches(scheduled: ScheduledReminder, wanted: ScheduledReminder) -> bool:
    return scheduled.fire_at == wanted.fire_at and scheduled.payload == wanted.payload


async def _cancel(backend: ReminderBackend, task_id: str, report: SyncReport) -> bool:
    try:
        await backend.cancel_reminder(task_id)
    except Exception as e:
        log_with_task_context(logger, "error", "Failed to cancel reminder", task_id=task_id, error=str(e))
        report.failed_task_ids.append(task_id)
        return False
    return True


async def _list_scheduled(backend: ReminderBackend) -> list[ScheduledReminder]:
    try:
        return await backend.list_scheduled()
    except Exception as e:
        logger.error("Failed to list scheduled reminders", extra={"error": str(e)})
        msg = f"Could not list scheduled reminders: {e}"
        raise ReminderBackendError(msg) from e


async def _schedule(backend: ReminderBackend, reminder: ScheduledReminder, report: SyncReport) -> bool:
    try:
        await backend.schedule_reminder(reminder.task_id, reminder.fire_at, reminder.payload)
    except Exception as e:
        log_with_task_context(logger, "error", "Failed to schedule reminder", task_id=reminder.task_id, error=str(e))
        report.failed_task_ids.append(reminder.task_id)
        return False
    return True


async def sync_reminders(
    active_tasks: Iterable[MaintenanceTask],
    *,
    now: datetime,
    backend: ReminderBackend | None = None,
) -> SyncReport:
    """Reconcile scheduled reminders with the given tasks.

    ``active_tasks`` must be the whole active set across all properties: any
    scheduled reminder whose task is missing from it gets cancelled.

    A failing schedule/cancel call does not stop the run; the task id is
    collected in ``SyncReport.failed_task_ids`` and the next run retries it.

    Raises:
        ReminderBackendError: If the backend cannot list its pending reminders
    """
    with span("reminder_sync.sync_reminders"):
        backend = backend or reminder_backend
        tasks = list(active_tasks)
        desired = desired_reminders(tasks, now)

        scheduled = {reminder.task_id: reminder for reminder in await _list_scheduled(backend)}
        report = SyncReport()
        skipped = {task.id for task in tasks if not task.is_completed and task.is_active} - desired.keys()
        report.skipped_past_due.extend(sorted(skipped))

        for task_id in sorted(scheduled.keys() - desired.keys()):
            if await _cancel(backend, task_id, report):
                report.cancelled.append(task_id)

        for task_id, wanted in sorted(desired.items()):
            existing = scheduled.get(task_id)
            if existing is None:
                if await _schedule(backend, wanted, report):
                    report.scheduled.append(task_id)
            elif _matches(existing, wanted):
                report.unchanged.append(task_id)
            elif await _cancel(backend, task_id, report) and await _schedule(backend, wanted, report):
                report.rescheduled.append(task_id)

        logger.info(
            "Reminder sync finished",
            extra={
                "scheduled": len(report.scheduled),
                "rescheduled": len(report.rescheduled),
                "cancelled": len(report.cancelled),
                "unchanged": len(report.unchanged),
                "skipped_past_due": len(report.skipped_past_due),
                "failed": len(report.failed_task_ids),
            },
        )
        return report


async def list_pending_reminders(*, backend: ReminderBackend | None = None) -> list[ScheduledReminder]:
    """Reminders the backend currently holds, soonest first.

    Raises:
        ReminderBackendError: If the backend cannot list its pending reminders
    """
    with span("reminder_sync.list_pending_reminders"):
        reminders = await _list_scheduled(backend or reminder_backend)
        return sorted(reminders, key=lambda reminder: (reminder.fire_at, reminder.task_id))
