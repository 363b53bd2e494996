"""Tests for the periodic reminder reconciliation job."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from src.core import scheduler as scheduler_module
from src.core.config import constants
from src.core.scheduler_tracker import job_tracker
from src.domain.maintenance import Frequency
from src.services import task_service


FAR_FUTURE = datetime(2099, 6, 1, tzinfo=UTC)


@pytest.fixture
def no_sleep():
    with patch("src.core.scheduler_tracker.asyncio.sleep", new=AsyncMock()):
        yield


@pytest.mark.unit
async def test_reconcile_job_schedules_reminders(patched_db, patched_backend, now, sample_task_data):
    task = await task_service.create_task(data={**sample_task_data, "next_due_date": FAR_FUTURE}, now=now)

    await scheduler_module.reconcile_reminders_job()

    assert task.id in patched_backend.reminders
    status = await job_tracker.get_job_status(constants.RECONCILE_JOB_ID)
    assert status["success_count"] == 1


@pytest.mark.unit
async def test_reconcile_job_skips_finished_tasks(patched_db, patched_backend, now, sample_task_data):
    task = await task_service.create_task(
        data={**sample_task_data, "next_due_date": FAR_FUTURE, "frequency": Frequency.ONCE}, now=now
    )
    await task_service.apply_completion(task=task, next_due_date=None)

    await scheduler_module.reconcile_reminders_job()

    assert patched_backend.reminders == {}


@pytest.mark.unit
async def test_partial_failures_are_retried_and_tracked(patched_db, patched_backend, now, sample_task_data, no_sleep):
    task = await task_service.create_task(data={**sample_task_data, "next_due_date": FAR_FUTURE}, now=now)
    patched_backend.fail_schedule_for = {task.id}

    await scheduler_module.reconcile_reminders_job()

    scheduled = [call for call in patched_backend.calls if call == ("schedule", task.id)]
    assert len(scheduled) == constants.JOB_MAX_RETRIES
    status = await job_tracker.get_job_status(constants.RECONCILE_JOB_ID)
    assert status["consecutive_failures"] == 1
    assert task.id in status["last_error"]
