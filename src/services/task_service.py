"""Maintenance task store: CRUD over the maintenance_tasks collection."""

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.config import constants, settings
from src.core.date_math import add_days, start_of_day
from src.core.errors import (
    StoreFailureError,
    TaskAlreadyCompletedError,
    TaskNotFoundError,
    TaskValidationError,
    WorkerNotFoundError,
    validation_message,
)
from src.core.logging import log_with_task_context, span
from src.core.recurrence import initial_due_date
from src.domain.create_models import MaintenanceTaskCreate
from src.domain.maintenance import Frequency, MaintenanceTask
from src.domain.templates import get_template
from src.domain.update_models import MaintenanceTaskUpdate
from src.services import completion_service, worker_service


logger = logging.getLogger(__name__)

COLLECTION = "maintenance_tasks"


def _sort_for_display(tasks: list[MaintenanceTask]) -> list[MaintenanceTask]:
    """Open tasks first, then by due date."""
    return sorted(tasks, key=lambda task: (task.is_completed, task.next_due_date))


async def _list_tasks(filter_query: str) -> list[MaintenanceTask]:
    try:
        records = await db_client.list_all_records(collection=COLLECTION, filter_query=filter_query)
    except db_client.DatabaseError as e:
        raise StoreFailureError(str(e)) from e
    return _sort_for_display([MaintenanceTask(**record) for record in records])


async def _ensure_worker_exists(worker_id: str | None) -> None:
    if worker_id is None:
        return
    try:
        await worker_service.get_worker_by_id(worker_id=worker_id)
    except WorkerNotFoundError as e:
        msg = f"Assigned worker does not exist: {worker_id}"
        raise TaskValidationError(msg) from e


async def create_task(*, data: MaintenanceTaskCreate | dict[str, Any], now: datetime) -> MaintenanceTask:
    """Create a new maintenance task.

    Args:
        data: Task fields, either validated or as a raw mapping
        now: Current time; the first due date may not lie before today

    Returns:
        Created task

    Raises:
        TaskValidationError: If any field is invalid (checked before any write)
        StoreFailureError: If the store rejects the write
    """
    with span("task_service.create_task"):
        if not isinstance(data, MaintenanceTaskCreate):
            try:
                data = MaintenanceTaskCreate(**{"reminder_days_before": settings.default_reminder_days_before, **data})
            except ValidationError as e:
                raise TaskValidationError(validation_message(e)) from e

        if data.next_due_date < start_of_day(now):
            msg = "Due date must not be in the past"
            raise TaskValidationError(msg)

        await _ensure_worker_exists(data.assigned_worker_id)

        record_data = {
            **data.model_dump(mode="json"),
            "is_completed": False,
            "is_active": True,
        }

        try:
            record = await db_client.create_record(collection=COLLECTION, data=record_data)
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        task = MaintenanceTask(**record)
        log_with_task_context(
            logger,
            "info",
            "Created maintenance task",
            task_id=task.id,
            property_id=task.property_id,
            frequency=task.frequency,
        )
        return task


async def create_task_from_template(
    *,
    property_id: str,
    template_key: str,
    now: datetime,
    assigned_worker_id: str | None = None,
    asset_id: str | None = None,
) -> MaintenanceTask:
    """Create a task from a built-in template, due one frequency unit from now.

    Raises:
        TaskValidationError: If the template key is unknown
    """
    with span("task_service.create_task_from_template"):
        template = get_template(template_key)
        if template is None:
            msg = f"Unknown maintenance template: {template_key}"
            raise TaskValidationError(msg)

        return await create_task(
            data={
                "property_id": property_id,
                "title": template.title,
                "description": template.description,
                "frequency": template.frequency,
                "reminder_days_before": template.reminder_days_before,
                "next_due_date": initial_due_date(template.frequency, now),
                "assigned_worker_id": assigned_worker_id,
                "asset_id": asset_id,
            },
            now=now,
        )


async def get_task_by_id(*, task_id: str) -> MaintenanceTask:
    """Get task by ID.

    Raises:
        TaskNotFoundError: If the task does not exist
        StoreFailureError: If the store fails
    """
    with span("task_service.get_task_by_id"):
        try:
            record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
        except db_client.RecordNotFoundError as e:
            raise TaskNotFoundError(task_id) from e
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e
        return MaintenanceTask(**record)


async def get_tasks_by_property(*, property_id: str, include_inactive: bool = False) -> list[MaintenanceTask]:
    """Tasks of a property, open tasks first and then by due date."""
    with span("task_service.get_tasks_by_property"):
        filter_query = f'property_id = "{db_client.sanitize_param(property_id)}"'
        if not include_inactive:
            filter_query += " && is_active = true"
        return await _list_tasks(filter_query)


async def get_tasks_by_assigned_worker(*, worker_id: str) -> list[MaintenanceTask]:
    """Active tasks assigned to a worker."""
    with span("task_service.get_tasks_by_assigned_worker"):
        return await _list_tasks(f'assigned_worker_id = "{db_client.sanitize_param(worker_id)}" && is_active = true')


async def get_active_tasks() -> list[MaintenanceTask]:
    """Every active task across all properties, completed one-time tasks included."""
    with span("task_service.get_active_tasks"):
        return await _list_tasks("is_active = true")


async def get_upcoming_tasks(
    *, property_id: str, now: datetime, days: int = constants.UPCOMING_WINDOW_DAYS
) -> list[MaintenanceTask]:
    """Open active tasks of a property due within ``days`` of now, overdue ones included, soonest first."""
    with span("task_service.get_upcoming_tasks"):
        horizon = add_days(now, days)
        tasks = await get_tasks_by_property(property_id=property_id)
        return [task for task in tasks if not task.is_completed and task.next_due_date <= horizon]


async def update_task(*, task_id: str, updates: MaintenanceTaskUpdate | dict[str, Any]) -> MaintenanceTask:
    """Apply a partial update to a task.

    A completed one-time task stays completed: it cannot be turned into a
    recurring task. Completion state itself is only changed by
    ``apply_completion``.

    Raises:
        TaskValidationError: If the update is invalid
        TaskAlreadyCompletedError: If the update would make a completed one-time task recurring
        TaskNotFoundError: If the task does not exist
        StoreFailureError: If the store fails
    """
    with span("task_service.update_task"):
        if not isinstance(updates, MaintenanceTaskUpdate):
            try:
                updates = MaintenanceTaskUpdate(**updates)
            except ValidationError as e:
                raise TaskValidationError(validation_message(e)) from e

        data = updates.to_record()
        if not data:
            return await get_task_by_id(task_id=task_id)

        current = await get_task_by_id(task_id=task_id)
        if current.is_completed and data.get("frequency", Frequency.ONCE) != Frequency.ONCE:
            msg = f"Task {task_id} is completed and cannot be reopened"
            raise TaskAlreadyCompletedError(msg)

        if "assigned_worker_id" in data:
            await _ensure_worker_exists(data["assigned_worker_id"])

        record = await _write(task_id, data)
        log_with_task_context(logger, "info", "Updated maintenance task", task_id=task_id, fields=sorted(data))
        return record


async def apply_completion(*, task: MaintenanceTask, next_due_date: datetime | None) -> MaintenanceTask:
    """Advance a task after its completion was recorded in the ledger.

    Recurring tasks move to ``next_due_date``. One-time tasks pass None and
    become completed, keeping their due date.

    Raises:
        TaskNotFoundError: If the task does not exist
        StoreFailureError: If the store fails
    """
    with span("task_service.apply_completion"):
        if task.is_recurring:
            data = MaintenanceTaskUpdate(next_due_date=next_due_date).to_record()
        else:
            data = {"is_completed": True}
        return await _write(task.id, data)


async def _write(task_id: str, data: dict[str, Any]) -> MaintenanceTask:
    try:
        record = await db_client.update_record(collection=COLLECTION, record_id=task_id, data=data)
    except db_client.RecordNotFoundError as e:
        raise TaskNotFoundError(task_id) from e
    except db_client.DatabaseError as e:
        raise StoreFailureError(str(e)) from e
    return MaintenanceTask(**record)


async def delete_task(*, task_id: str) -> None:
    """Delete a task together with its completion history.

    The task row goes first; the schema cascades its history, and the explicit
    ledger cleanup afterwards covers stores without foreign keys.

    Raises:
        TaskNotFoundError: If the task does not exist
        StoreFailureError: If the store fails
    """
    with span("task_service.delete_task"):
        try:
            await db_client.delete_record(collection=COLLECTION, record_id=task_id)
        except db_client.RecordNotFoundError as e:
            raise TaskNotFoundError(task_id) from e
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        removed = await completion_service.delete_completions_for_task(task_id=task_id)
        log_with_task_context(logger, "info", "Deleted maintenance task", task_id=task_id, completions_removed=removed)
