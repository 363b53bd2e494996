"""Completion ledger: append-only history of completed maintenance tasks."""

import logging
from datetime import datetime

from src.core import db_client
from src.core.errors import StoreFailureError
from src.core.logging import log_with_task_context, span
from src.domain.maintenance import MaintenanceCompletion


logger = logging.getLogger(__name__)

COLLECTION = "maintenance_completions"


def _newest_first(completions: list[MaintenanceCompletion]) -> list[MaintenanceCompletion]:
    return sorted(completions, key=lambda completion: completion.completed_date, reverse=True)


async def _list_completions(filter_query: str) -> list[MaintenanceCompletion]:
    try:
        records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query)
    except db_client.DatabaseError as e:
        raise StoreFailureError(str(e)) from e
    return _newest_first([MaintenanceCompletion(**record) for record in records])


async def record_completion(
    *,
    task_id: str,
    completed_date: datetime,
    due_date: datetime,
    worker_id: str | None = None,
    notes: str | None = None,
    cost: float | None = None,
    completion_id: str | None = None,
) -> MaintenanceCompletion:
    """Append a completion to the ledger.

    Args:
        task_id: Completed task
        completed_date: When the work was done
        due_date: The task's due date this completion resolves
        worker_id: Worker who did the job
        notes: Free-form notes
        cost: Cost of the job
        completion_id: Caller-chosen id; generated when omitted

    Returns:
        The recorded completion

    Raises:
        StoreFailureError: If the write fails (nothing was recorded)
    """
    with span("completion_service.record_completion"):
        data = {
            "task_id": task_id,
            "worker_id": worker_id,
            "completed_date": completed_date.isoformat(),
            "due_date": due_date.isoformat(),
            "notes": notes,
            "cost": cost,
        }
        if completion_id is not None:
            data["id"] = completion_id

        try:
            record = await db_client.create_record(collection=COLLECTION, data=data)
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        completion = MaintenanceCompletion(**record)
        log_with_task_context(
            logger,
            "info",
            "Recorded maintenance completion",
            task_id=task_id,
            completion_id=completion.id,
            worker_id=worker_id,
        )
        return completion


async def get_completion_by_id(*, completion_id: str) -> MaintenanceCompletion | None:
    """Get a completion by ID, or None if it was never recorded."""
    with span("completion_service.get_completion_by_id"):
        try:
            record = await db_client.get_record(collection=COLLECTION, record_id=completion_id)
        except db_client.RecordNotFoundError:
            return None
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e
        return MaintenanceCompletion(**record)


async def get_completions_by_task(*, task_id: str) -> list[MaintenanceCompletion]:
    """Completion history of a task, newest first."""
    with span("completion_service.get_completions_by_task"):
        return await _list_completions(f'task_id = "{db_client.sanitize_param(task_id)}"')


async def get_completions_by_worker(*, worker_id: str) -> list[MaintenanceCompletion]:
    """Completions done by a worker, newest first."""
    with span("completion_service.get_completions_by_worker"):
        return await _list_completions(f'worker_id = "{db_client.sanitize_param(worker_id)}"')


async def get_latest_completion(*, task_id: str) -> MaintenanceCompletion | None:
    """Most recent completion of a task, if any."""
    completions = await get_completions_by_task(task_id=task_id)
    return completions[0] if completions else None


async def count_completions(*, task_id: str) -> int:
    """Number of times a task has been completed."""
    return len(await get_completions_by_task(task_id=task_id))


async def delete_completions_for_task(*, task_id: str) -> int:
    """Remove a task's whole history. Only used when the task itself is deleted."""
    with span("completion_service.delete_completions_for_task"):
        try:
            removed = await db_client.delete_records(
                collection=COLLECTION,
                filter_query=f'task_id = "{db_client.sanitize_param(task_id)}"',
            )
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        if removed:
            log_with_task_context(logger, "info", "Deleted completion history", task_id=task_id, count=removed)
        return removed
