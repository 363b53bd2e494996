"""HTTP interface for maintenance tasks, completions and workers."""

import logging
from datetime import UTC, datetime
from typing import Any, NoReturn

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from src.core.config import constants
from src.core.errors import MaintenanceError, classify_error_with_response
from src.domain.create_models import CompletionCreate, WorkerCreate
from src.domain.maintenance import Frequency, ScheduledReminder, Worker
from src.domain.templates import MAINTENANCE_TEMPLATES, MaintenanceTemplate
from src.models.service_models import (
    CompletionResult,
    CompletionWithWorker,
    PropertyMaintenance,
    TaskMutationResult,
    TaskView,
)
from src.services import maintenance_service, worker_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


class NewTaskRequest(BaseModel):
    """Body of a task creation request; the property comes from the path."""

    title: str
    next_due_date: datetime
    frequency: Frequency = Frequency.ONCE
    reminder_days_before: int | None = None
    assigned_worker_id: str | None = None
    asset_id: str | None = None
    description: str | None = None


class TemplateTaskRequest(BaseModel):
    """Optional extras when creating a task from a template."""

    assigned_worker_id: str | None = None
    asset_id: str | None = None


def get_now() -> datetime:
    """Request clock. Overridden in tests."""
    return datetime.now(UTC)


def _raise_http(exc: MaintenanceError) -> NoReturn:
    response = classify_error_with_response(exc)
    logger.warning(
        "maintenance_request_failed",
        extra={"code": response.code, "http_status": response.http_status, "error": str(exc)},
    )
    raise HTTPException(
        status_code=response.http_status,
        detail=response.model_dump(mode="json", exclude={"http_status"}),
    ) from exc


@router.get("/templates")
async def list_templates() -> list[MaintenanceTemplate]:
    """Built-in maintenance templates."""
    return list(MAINTENANCE_TEMPLATES)


@router.get("/properties/{property_id}")
async def get_property_maintenance(property_id: str, now: datetime = Depends(get_now)) -> PropertyMaintenance:
    """Tasks of a property grouped by urgency, with tallies."""
    try:
        return await maintenance_service.load_property_maintenance(property_id=property_id, now=now)
    except MaintenanceError as e:
        _raise_http(e)


@router.get("/properties/{property_id}/upcoming")
async def get_upcoming_tasks(
    property_id: str,
    days: int = Query(default=constants.UPCOMING_WINDOW_DAYS, ge=0),
    now: datetime = Depends(get_now),
) -> list[TaskView]:
    """Open tasks of a property due within the next ``days`` days, overdue ones included."""
    try:
        return await maintenance_service.get_upcoming_tasks(property_id=property_id, now=now, days=days)
    except MaintenanceError as e:
        _raise_http(e)


@router.get("/reminders")
async def list_pending_reminders() -> list[ScheduledReminder]:
    """Reminders currently pending, soonest first."""
    try:
        return await maintenance_service.get_upcoming_reminders()
    except MaintenanceError as e:
        _raise_http(e)


@router.post("/properties/{property_id}/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
    property_id: str,
    request: NewTaskRequest,
    now: datetime = Depends(get_now),
) -> TaskMutationResult:
    """Create a task for a property."""
    data = request.model_dump(exclude_none=True)
    data["property_id"] = property_id
    try:
        return await maintenance_service.add_task(data=data, now=now)
    except MaintenanceError as e:
        _raise_http(e)


@router.post("/properties/{property_id}/templates/{template_key}", status_code=status.HTTP_201_CREATED)
async def create_task_from_template(
    property_id: str,
    template_key: str,
    request: TemplateTaskRequest | None = None,
    now: datetime = Depends(get_now),
) -> TaskMutationResult:
    """Create a task for a property from a built-in template."""
    request = request or TemplateTaskRequest()
    try:
        return await maintenance_service.add_task_from_template(
            property_id=property_id,
            template_key=template_key,
            now=now,
            assigned_worker_id=request.assigned_worker_id,
            asset_id=request.asset_id,
        )
    except MaintenanceError as e:
        _raise_http(e)


@router.patch("/tasks/{task_id}")
async def edit_task(
    task_id: str,
    updates: dict[str, Any] = Body(...),
    now: datetime = Depends(get_now),
) -> TaskMutationResult:
    """Partially update a task. Only the fields present in the body change."""
    try:
        return await maintenance_service.edit_task(task_id=task_id, updates=updates, now=now)
    except MaintenanceError as e:
        _raise_http(e)


@router.delete("/tasks/{task_id}")
async def delete_task(task_id: str, now: datetime = Depends(get_now)) -> TaskMutationResult:
    """Delete a task and its completion history."""
    try:
        return await maintenance_service.remove_task(task_id=task_id, now=now)
    except MaintenanceError as e:
        _raise_http(e)


@router.post("/tasks/{task_id}/complete")
async def complete_task(
    task_id: str,
    completion: CompletionCreate | None = None,
    now: datetime = Depends(get_now),
) -> CompletionResult:
    """Complete the current occurrence of a task.

    Send a ``completion_id`` to make retries safe: a repeated request with the
    same id never records a second completion.
    """
    try:
        return await maintenance_service.complete(task_id=task_id, now=now, completion=completion)
    except MaintenanceError as e:
        _raise_http(e)


@router.get("/tasks/{task_id}/history")
async def get_task_history(task_id: str) -> list[CompletionWithWorker]:
    """Completion history of a task, newest first."""
    try:
        return await maintenance_service.get_task_history(task_id=task_id)
    except MaintenanceError as e:
        _raise_http(e)


@router.get("/workers")
async def list_workers() -> list[Worker]:
    """All workers."""
    try:
        return await worker_service.list_workers()
    except MaintenanceError as e:
        _raise_http(e)


@router.post("/workers", status_code=status.HTTP_201_CREATED)
async def create_worker(worker: WorkerCreate) -> Worker:
    """Add a worker."""
    try:
        return await worker_service.create_worker(data=worker)
    except MaintenanceError as e:
        _raise_http(e)


@router.delete("/workers/{worker_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_worker(worker_id: str) -> None:
    """Delete a worker; tasks assigned to it become unassigned."""
    try:
        await worker_service.delete_worker(worker_id=worker_id)
    except MaintenanceError as e:
        _raise_http(e)


@router.get("/workers/{worker_id}/completions")
async def get_worker_history(worker_id: str) -> list[CompletionWithWorker]:
    """Completions done by a worker, newest first."""
    try:
        return await maintenance_service.get_worker_history(worker_id=worker_id)
    except MaintenanceError as e:
        _raise_http(e)
