"""Reminder backend: holds one pending reminder per maintenance task.

The production backend stores reminders as date-triggered APScheduler jobs on
the application's ``AsyncIOScheduler``. Every call is idempotent: scheduling
replaces any existing entry for the task and cancelling a missing entry is a
no-op, so overlapping reconciliation runs converge.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from src.core.config import constants
from src.core.logging import log_with_task_context, span
from src.domain.maintenance import ScheduledReminder


logger = logging.getLogger(__name__)

# Global scheduler instance shared by reminder jobs and periodic jobs
scheduler = AsyncIOScheduler(timezone=UTC)


class ReminderBackend(Protocol):
    """Storage of pending reminders, keyed by task id."""

    async def schedule_reminder(self, task_id: str, fire_at: datetime, payload: dict[str, Any]) -> None: ...

    async def cancel_reminder(self, task_id: str) -> None: ...

    async def list_scheduled(self) -> list[ScheduledReminder]: ...


def reminder_job_id(task_id: str) -> str:
    """Scheduler job id for a task's reminder."""
    return f"{constants.REMINDER_JOB_PREFIX}{task_id}"


def task_id_from_job_id(job_id: str) -> str | None:
    """Inverse of reminder_job_id. Returns None for jobs that are not reminders."""
    if not job_id.startswith(constants.REMINDER_JOB_PREFIX):
        return None
    return job_id[len(constants.REMINDER_JOB_PREFIX) :]


async def deliver_reminder(task_id: str, payload: dict[str, Any]) -> None:
    """Deliver a fired reminder.

    Delivery is a structured log record inside a span; logfire forwards it to
    whatever sink is configured.
    """
    with span("reminder_scheduler.deliver_reminder"):
        log_with_task_context(
            logger,
            "info",
            f"{payload.get('title', constants.REMINDER_TITLE)}: {payload.get('body', '')}",
            task_id=task_id,
            operation_type="reminder_delivered",
            property_id=payload.get("property_id"),
        )


class APSchedulerReminderBackend:
    """ReminderBackend backed by date-triggered APScheduler jobs."""

    def __init__(self, scheduler: AsyncIOScheduler) -> None:
        self._scheduler = scheduler

    async def schedule_reminder(self, task_id: str, fire_at: datetime, payload: dict[str, Any]) -> None:
        """Schedule (or replace) the reminder for a task."""
        job_id = reminder_job_id(task_id)

        # A stopped scheduler queues jobs without de-duplicating ids, so drop any old entry first
        if self._scheduler.get_job(job_id) is not None:
            self._scheduler.remove_job(job_id)

        self._scheduler.add_job(
            deliver_reminder,
            trigger=DateTrigger(run_date=fire_at, timezone=UTC),
            id=job_id,
            name=f"Maintenance reminder for {task_id}",
            kwargs={"task_id": task_id, "payload": payload},
            replace_existing=True,
        )
        log_with_task_context(logger, "debug", "Reminder scheduled", task_id=task_id, fire_at=fire_at.isoformat())

    async def cancel_reminder(self, task_id: str) -> None:
        """Cancel the reminder for a task. Missing entries are ignored."""
        job_id = reminder_job_id(task_id)
        if self._scheduler.get_job(job_id) is None:
            return
        self._scheduler.remove_job(job_id)
        log_with_task_context(logger, "debug", "Reminder cancelled", task_id=task_id)

    async def list_scheduled(self) -> list[ScheduledReminder]:
        """All pending maintenance reminders."""
        reminders = []
        for job in self._scheduler.get_jobs():
            task_id = task_id_from_job_id(job.id)
            if task_id is None:
                continue
            reminders.append(
                ScheduledReminder(
                    task_id=task_id,
                    fire_at=job.trigger.run_date,
                    payload=dict(job.kwargs.get("payload", {})),
                )
            )
        return reminders


# Default backend used by the maintenance service
reminder_backend = APSchedulerReminderBackend(scheduler)
