"""Maintenance service: entry points used by the HTTP layer.

Every mutation here is followed by exactly one reminder reconciliation over
all active tasks, so callers never touch the reminder backend themselves. A
reconciliation failure after a successful mutation is logged and reported on
the returned object; the mutation is not rolled back, and the periodic
reconciliation job repairs the backend later.
"""

import logging
from datetime import datetime
from typing import Any

from src.core.config import constants
from src.core.date_math import days_until
from src.core.errors import MaintenanceError, TaskNotFoundError
from src.core.logging import log_with_context, span
from src.core.recurrence import describe_frequency
from src.core.reminder_scheduler import ReminderBackend
from src.domain.create_models import CompletionCreate, MaintenanceTaskCreate
from src.domain.maintenance import MaintenanceCompletion, MaintenanceTask, ScheduledReminder
from src.domain.update_models import MaintenanceTaskUpdate
from src.models.service_models import (
    CompletionResult,
    CompletionWithWorker,
    PropertyMaintenance,
    SyncReport,
    TaskMutationResult,
    TaskView,
)
from src.services import (
    completion_service,
    completion_workflow,
    reminder_sync,
    task_service,
    task_status,
    worker_service,
)


logger = logging.getLogger(__name__)


async def reconcile_all_reminders(*, now: datetime, backend: ReminderBackend | None = None) -> SyncReport:
    """Reconcile reminders against every active task of every property.

    Raises:
        ReminderBackendError: If the backend cannot be listed
        StoreFailureError: If the active tasks cannot be loaded
    """
    with span("maintenance_service.reconcile_all_reminders"):
        active_tasks = await task_service.get_active_tasks()
        return await reminder_sync.sync_reminders(active_tasks, now=now, backend=backend)


async def _sync_after_mutation(
    *, now: datetime, operation: str, backend: ReminderBackend | None = None
) -> SyncReport | None:
    """Reconcile after a mutation. Failures are logged, never raised."""
    try:
        report = await reconcile_all_reminders(now=now, backend=backend)
    except MaintenanceError as e:
        log_with_context(logger, "error", "Reminder sync failed after mutation", operation=operation, error=str(e))
        return None

    if report.has_failures:
        log_with_context(
            logger,
            "warning",
            "Reminder sync partially failed after mutation",
            operation=operation,
            failed_task_ids=report.failed_task_ids,
        )
    return report


async def _build_views(tasks: list[MaintenanceTask], now: datetime) -> list[TaskView]:
    latest: dict[str, MaintenanceCompletion] = {}
    for task in tasks:
        completion = await completion_service.get_latest_completion(task_id=task.id)
        if completion is not None:
            latest[task.id] = completion

    worker_ids = {task.assigned_worker_id for task in tasks if task.assigned_worker_id}
    worker_ids |= {completion.worker_id for completion in latest.values() if completion.worker_id}
    names = await worker_service.get_worker_names(worker_ids=worker_ids)

    views = []
    for task in tasks:
        completion = latest.get(task.id)
        views.append(
            TaskView(
                task=task,
                urgency=task_status.classify(task, now),
                days_until_due=days_until(task.next_due_date, now),
                frequency_label=describe_frequency(task.frequency),
                assigned_worker_name=names.get(task.assigned_worker_id) if task.assigned_worker_id else None,
                last_completed_date=completion.completed_date if completion else None,
                last_completion_worker_name=(
                    names.get(completion.worker_id) if completion and completion.worker_id else None
                ),
            )
        )
    return views


async def load_property_maintenance(
    *, property_id: str, now: datetime, backend: ReminderBackend | None = None
) -> PropertyMaintenance:
    """Load a property's tasks grouped by urgency, then reconcile reminders.

    Returns:
        PropertyMaintenance with groups in display order and urgency tallies
    """
    with span("maintenance_service.load_property_maintenance"):
        tasks = await task_service.get_tasks_by_property(property_id=property_id)
        views = await _build_views(tasks, now)
        views_by_id = {view.task.id: view for view in views}

        groups = {
            state: [views_by_id[task.id] for task in grouped]
            for state, grouped in task_status.group_by_urgency(tasks, now).items()
        }

        reminders = await _sync_after_mutation(now=now, operation="load_property_maintenance", backend=backend)
        return PropertyMaintenance(
            property_id=property_id,
            groups=groups,
            stats=task_status.summarize(tasks, now),
            reminders=reminders,
        )


async def add_task(
    *, data: MaintenanceTaskCreate | dict[str, Any], now: datetime, backend: ReminderBackend | None = None
) -> TaskMutationResult:
    """Create a task and schedule its reminder."""
    with span("maintenance_service.add_task"):
        task = await task_service.create_task(data=data, now=now)
        reminders = await _sync_after_mutation(now=now, operation="add_task", backend=backend)
        return TaskMutationResult(task=task, reminders=reminders)


async def add_task_from_template(
    *,
    property_id: str,
    template_key: str,
    now: datetime,
    assigned_worker_id: str | None = None,
    asset_id: str | None = None,
    backend: ReminderBackend | None = None,
) -> TaskMutationResult:
    """Create a task from a built-in template and schedule its reminder."""
    with span("maintenance_service.add_task_from_template"):
        task = await task_service.create_task_from_template(
            property_id=property_id,
            template_key=template_key,
            now=now,
            assigned_worker_id=assigned_worker_id,
            asset_id=asset_id,
        )
        reminders = await _sync_after_mutation(now=now, operation="add_task_from_template", backend=backend)
        return TaskMutationResult(task=task, reminders=reminders)


async def edit_task(
    *,
    task_id: str,
    updates: MaintenanceTaskUpdate | dict[str, Any],
    now: datetime,
    backend: ReminderBackend | None = None,
) -> TaskMutationResult:
    """Edit a task and move its reminder accordingly."""
    with span("maintenance_service.edit_task"):
        task = await task_service.update_task(task_id=task_id, updates=updates)
        reminders = await _sync_after_mutation(now=now, operation="edit_task", backend=backend)
        return TaskMutationResult(task=task, reminders=reminders)


async def remove_task(*, task_id: str, now: datetime, backend: ReminderBackend | None = None) -> TaskMutationResult:
    """Delete a task with its history and cancel its reminder."""
    with span("maintenance_service.remove_task"):
        await task_service.delete_task(task_id=task_id)
        reminders = await _sync_after_mutation(now=now, operation="remove_task", backend=backend)
        return TaskMutationResult(deleted_task_id=task_id, reminders=reminders)


async def complete(
    *,
    task_id: str,
    now: datetime,
    completion: CompletionCreate | None = None,
    backend: ReminderBackend | None = None,
) -> CompletionResult:
    """Complete a task, then move or cancel its reminder."""
    with span("maintenance_service.complete"):
        result = await completion_workflow.complete_task(task_id=task_id, now=now, completion=completion)
        result.reminders = await _sync_after_mutation(now=now, operation="complete", backend=backend)
        return result


async def _join_completions(completions: list[MaintenanceCompletion]) -> list[CompletionWithWorker]:
    worker_ids = {completion.worker_id for completion in completions if completion.worker_id}
    names = await worker_service.get_worker_names(worker_ids=worker_ids)

    titles: dict[str, str | None] = {}
    for task_id in {completion.task_id for completion in completions}:
        try:
            titles[task_id] = (await task_service.get_task_by_id(task_id=task_id)).title
        except TaskNotFoundError:
            titles[task_id] = None

    return [
        CompletionWithWorker(
            completion=completion,
            worker_name=names.get(completion.worker_id) if completion.worker_id else None,
            task_title=titles.get(completion.task_id),
        )
        for completion in completions
    ]


async def get_task_history(*, task_id: str) -> list[CompletionWithWorker]:
    """Completion history of a task, newest first.

    Raises:
        TaskNotFoundError: If the task does not exist
    """
    with span("maintenance_service.get_task_history"):
        await task_service.get_task_by_id(task_id=task_id)
        completions = await completion_service.get_completions_by_task(task_id=task_id)
        return await _join_completions(completions)


async def get_worker_history(*, worker_id: str) -> list[CompletionWithWorker]:
    """Completions done by a worker, newest first.

    Raises:
        WorkerNotFoundError: If the worker does not exist
    """
    with span("maintenance_service.get_worker_history"):
        await worker_service.get_worker_by_id(worker_id=worker_id)
        completions = await completion_service.get_completions_by_worker(worker_id=worker_id)
        return await _join_completions(completions)


async def get_upcoming_tasks(
    *, property_id: str, now: datetime, days: int = constants.UPCOMING_WINDOW_DAYS
) -> list[TaskView]:
    """Open tasks of a property due within ``days``, overdue first, as display views."""
    with span("maintenance_service.get_upcoming_tasks"):
        tasks = await task_service.get_upcoming_tasks(property_id=property_id, now=now, days=days)
        return await _build_views(tasks, now)


async def get_upcoming_reminders(*, backend: ReminderBackend | None = None) -> list[ScheduledReminder]:
    """Reminders currently pending in the backend, soonest first.

    Raises:
        ReminderBackendError: If the backend cannot be listed
    """
    with span("maintenance_service.get_upcoming_reminders"):
        return await reminder_sync.list_pending_reminders(backend=backend)
