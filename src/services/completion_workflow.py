"""Completion workflow: record a completion and advance the task in one operation.

The two writes (ledger row, then task update) are not atomic. Each completion
stores the due date it resolved, and callers may supply a ``completion_id``.
Retrying with the same id after a partial failure finds the recorded row,
sees that the task still sits on that due date, and finishes the advance
without writing a second ledger row.
"""

import logging
from datetime import datetime

from src.core import recurrence
from src.core.errors import (
    CompletionNotRecordedError,
    CompletionPartiallyAppliedError,
    StoreFailureError,
    TaskAlreadyCompletedError,
    TaskValidationError,
)
from src.core.logging import log_with_task_context, span
from src.domain.create_models import CompletionCreate
from src.domain.maintenance import MaintenanceCompletion, MaintenanceTask
from src.models.service_models import CompletionResult
from src.services import completion_service, task_service, worker_service


logger = logging.getLogger(__name__)


def _already_advanced(task: MaintenanceTask, completion: MaintenanceCompletion) -> bool:
    return task.is_completed or task.next_due_date != completion.due_date


async def _find_previous_attempt(task_id: str, completion_id: str | None) -> MaintenanceCompletion | None:
    if completion_id is None:
        return None

    previous = await completion_service.get_completion_by_id(completion_id=completion_id)
    if previous is not None and previous.task_id != task_id:
        msg = f"Completion id {completion_id} already belongs to another task"
        raise TaskValidationError(msg)
    return previous


async def _record(task: MaintenanceTask, request: CompletionCreate, now: datetime) -> MaintenanceCompletion:
    if task.is_completed:
        msg = f"Task {task.id} is already completed"
        raise TaskAlreadyCompletedError(msg)

    if request.worker_id is not None:
        await worker_service.get_worker_by_id(worker_id=request.worker_id)

    try:
        return await completion_service.record_completion(
            task_id=task.id,
            completed_date=now,
            due_date=task.next_due_date,
            worker_id=request.worker_id,
            notes=request.notes,
            cost=request.cost,
            completion_id=request.completion_id,
        )
    except StoreFailureError as e:
        msg = f"Completion for task {task.id} was not recorded: {e}"
        raise CompletionNotRecordedError(msg) from e


async def complete_task(
    *,
    task_id: str,
    now: datetime,
    completion: CompletionCreate | None = None,
) -> CompletionResult:
    """Complete the current occurrence of a task.

    Appends a ledger row dated ``now``, then either marks a one-time task
    completed or moves a recurring task's due date forward one unit from its
    previous due date.

    Args:
        task_id: Task to complete
        now: Completion time
        completion: Worker, notes, cost and optional idempotency key

    Returns:
        CompletionResult with the updated task and the ledger row

    Raises:
        TaskNotFoundError: If the task does not exist
        WorkerNotFoundError: If the given worker does not exist
        TaskAlreadyCompletedError: If a one-time task was already completed
        CompletionNotRecordedError: If the ledger write failed (nothing changed)
        CompletionPartiallyAppliedError: If the ledger row exists but the task was not advanced
    """
    with span("completion_workflow.complete_task"):
        request = completion or CompletionCreate()
        task = await task_service.get_task_by_id(task_id=task_id)

        ledger_row = await _find_previous_attempt(task_id, request.completion_id)
        if ledger_row is not None and _already_advanced(task, ledger_row):
            log_with_task_context(
                logger,
                "info",
                "Completion already applied, returning recorded result",
                task_id=task_id,
                completion_id=ledger_row.id,
            )
            return CompletionResult(task=task, completion=ledger_row, is_terminal=task.is_completed, replayed=True)

        if ledger_row is None:
            ledger_row = await _record(task, request, now)
        else:
            log_with_task_context(
                logger,
                "warning",
                "Resuming partially applied completion",
                task_id=task_id,
                completion_id=ledger_row.id,
            )

        outcome = recurrence.advance(task)
        try:
            updated = await task_service.apply_completion(task=task, next_due_date=outcome.next_due_date)
        except StoreFailureError as e:
            logger.error(
                "Completion recorded but task not advanced",
                extra={"task_id": task_id, "completion_id": ledger_row.id, "error": str(e)},
            )
            msg = f"Completion {ledger_row.id} was recorded but task {task_id} was not updated: {e}"
            raise CompletionPartiallyAppliedError(msg, task_id=task_id, completion_id=ledger_row.id) from e

        log_with_task_context(
            logger,
            "info",
            "Completed maintenance task",
            task_id=task_id,
            completion_id=ledger_row.id,
            is_terminal=outcome.done,
            next_due_date=updated.next_due_date.isoformat(),
        )
        return CompletionResult(task=updated, completion=ledger_row, is_terminal=outcome.done)
