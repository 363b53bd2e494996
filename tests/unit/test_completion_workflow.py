"""Unit tests for the completion workflow."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.core.db_client import DatabaseError
from src.core.errors import (
    CompletionNotRecordedError,
    CompletionPartiallyAppliedError,
    TaskAlreadyCompletedError,
    TaskNotFoundError,
    TaskValidationError,
    WorkerNotFoundError,
)
from src.domain.create_models import CompletionCreate
from src.domain.maintenance import Frequency
from src.services import completion_service, task_service, worker_service
from src.services.completion_workflow import complete_task


NOW = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


async def _create(sample_task_data, **overrides):
    return await task_service.create_task(data={**sample_task_data, **overrides}, now=NOW)


@pytest.mark.unit
class TestRecurringCompletion:
    """Completing recurring tasks."""

    async def test_monthly_task_advances_from_previous_due_date(self, patched_db, sample_task_data):
        task = await _create(sample_task_data, next_due_date=datetime(2024, 3, 10, tzinfo=UTC))
        completed_at = datetime(2024, 3, 2, 14, 0, tzinfo=UTC)

        result = await complete_task(task_id=task.id, now=completed_at)

        assert result.is_terminal is False
        assert result.replayed is False
        assert result.task.next_due_date == datetime(2024, 4, 10, tzinfo=UTC)
        assert result.task.is_completed is False
        assert result.completion.completed_date == completed_at
        assert result.completion.due_date == datetime(2024, 3, 10, tzinfo=UTC)

    @pytest.mark.parametrize("completed_offset", [timedelta(days=-3), timedelta(0), timedelta(days=5)])
    async def test_weekly_advance_ignores_completion_time(self, patched_db, sample_task_data, completed_offset):
        due = datetime(2024, 3, 4, 8, 0, tzinfo=UTC)
        task = await _create(sample_task_data, frequency=Frequency.WEEKLY, next_due_date=due)

        result = await complete_task(task_id=task.id, now=due + completed_offset)

        assert result.task.next_due_date == due + timedelta(days=7)

    async def test_each_completion_appends_history(self, patched_db, sample_task_data):
        task = await _create(sample_task_data)

        await complete_task(task_id=task.id, now=NOW)
        await complete_task(task_id=task.id, now=NOW + timedelta(days=30))

        assert await completion_service.count_completions(task_id=task.id) == 2
        stored = await task_service.get_task_by_id(task_id=task.id)
        assert stored.next_due_date == datetime(2024, 5, 10, tzinfo=UTC)

    async def test_completion_details_are_recorded(self, patched_db, sample_task_data):
        worker = await worker_service.create_worker(data={"name": "Pat"})
        task = await _create(sample_task_data)

        result = await complete_task(
            task_id=task.id,
            now=NOW,
            completion=CompletionCreate(worker_id=worker.id, notes="  ", cost=40),
        )

        assert result.completion.worker_id == worker.id
        assert result.completion.notes is None
        assert result.completion.cost == 40


@pytest.mark.unit
class TestOnceCompletion:
    """Completing one-time tasks."""

    async def test_once_task_becomes_terminal(self, patched_db, sample_task_data):
        task = await _create(sample_task_data, frequency=Frequency.ONCE)

        result = await complete_task(task_id=task.id, now=NOW)

        assert result.is_terminal is True
        assert result.task.is_completed is True
        assert result.task.next_due_date == task.next_due_date

    async def test_second_completion_is_rejected_without_writing(self, patched_db, sample_task_data):
        task = await _create(sample_task_data, frequency=Frequency.ONCE)
        await complete_task(task_id=task.id, now=NOW)

        with pytest.raises(TaskAlreadyCompletedError):
            await complete_task(task_id=task.id, now=NOW + timedelta(days=1))

        assert await completion_service.count_completions(task_id=task.id) == 1


@pytest.mark.unit
class TestFailures:
    """Lookup and store failures."""

    async def test_missing_task(self, patched_db):
        with pytest.raises(TaskNotFoundError):
            await complete_task(task_id="missing", now=NOW)

    async def test_missing_worker(self, patched_db, sample_task_data):
        task = await _create(sample_task_data)

        with pytest.raises(WorkerNotFoundError):
            await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(worker_id="ghost"))

        assert await completion_service.count_completions(task_id=task.id) == 0

    async def test_ledger_failure_changes_nothing(self, patched_db, sample_task_data, monkeypatch):
        task = await _create(sample_task_data)
        monkeypatch.setattr("src.core.db_client.create_record", AsyncMock(side_effect=DatabaseError("locked")))

        with pytest.raises(CompletionNotRecordedError):
            await complete_task(task_id=task.id, now=NOW)

        assert await task_service.get_task_by_id(task_id=task.id) == task

    async def test_completion_id_from_another_task_is_rejected(self, patched_db, sample_task_data):
        first = await _create(sample_task_data)
        second = await _create(sample_task_data, title="Other")
        await complete_task(task_id=first.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        with pytest.raises(TaskValidationError):
            await complete_task(task_id=second.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))


@pytest.mark.unit
class TestIdempotentRetry:
    """Retrying a completion with the same completion_id."""

    async def test_partial_failure_then_retry_writes_one_ledger_row(
        self, patched_db, in_memory_db, sample_task_data, monkeypatch
    ):
        task = await _create(sample_task_data)
        monkeypatch.setattr("src.core.db_client.update_record", AsyncMock(side_effect=DatabaseError("timeout")))

        with pytest.raises(CompletionPartiallyAppliedError) as exc_info:
            await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        assert exc_info.value.completion_id == "key-1"
        assert (await task_service.get_task_by_id(task_id=task.id)).next_due_date == task.next_due_date

        monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
        result = await complete_task(
            task_id=task.id, now=NOW + timedelta(minutes=5), completion=CompletionCreate(completion_id="key-1")
        )

        assert result.replayed is False
        assert result.completion.id == "key-1"
        assert result.completion.completed_date == NOW
        assert result.task.next_due_date == datetime(2024, 4, 10, tzinfo=UTC)
        assert await completion_service.count_completions(task_id=task.id) == 1

    async def test_retry_after_success_replays_result(self, patched_db, sample_task_data):
        task = await _create(sample_task_data)
        first = await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        second = await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        assert second.replayed is True
        assert second.completion == first.completion
        assert second.task.next_due_date == first.task.next_due_date
        assert await completion_service.count_completions(task_id=task.id) == 1

    async def test_retry_of_completed_once_task_replays_instead_of_failing(self, patched_db, sample_task_data):
        task = await _create(sample_task_data, frequency=Frequency.ONCE)
        await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        replay = await complete_task(task_id=task.id, now=NOW, completion=CompletionCreate(completion_id="key-1"))

        assert replay.replayed is True
        assert replay.is_terminal is True
