"""Scheduler for automated jobs (periodic reminder reconciliation)."""

import logging
from datetime import UTC, datetime

from apscheduler.triggers.interval import IntervalTrigger

from src.core.config import constants, settings
from src.core.reminder_scheduler import scheduler
from src.core.scheduler_tracker import retry_job_with_backoff
from src.services import maintenance_service


logger = logging.getLogger(__name__)


async def _reconcile_once() -> None:
    report = await maintenance_service.reconcile_all_reminders(now=datetime.now(UTC))
    # Raising makes the retry wrapper try again for the failed entries
    report.raise_for_failures()


async def reconcile_reminders_job() -> None:
    """Bring scheduled reminders in line with the stored tasks.

    Reminder jobs live in process memory, so this also restores them after a
    restart. Runs once at startup and then every
    ``reminder_reconcile_interval_minutes``.
    """
    logger.info("Running reminder reconciliation job")
    await retry_job_with_backoff(_reconcile_once, constants.RECONCILE_JOB_ID)


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        reconcile_reminders_job,
        trigger=IntervalTrigger(minutes=settings.reminder_reconcile_interval_minutes, timezone=UTC),
        id=constants.RECONCILE_JOB_ID,
        name="Reconcile Maintenance Reminders",
        next_run_time=datetime.now(UTC),
        replace_existing=True,
    )
    logger.info(
        "Scheduled reminder reconciliation job: every %d minutes",
        settings.reminder_reconcile_interval_minutes,
    )

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
