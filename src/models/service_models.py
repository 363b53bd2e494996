"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from src.core.errors import SyncPartialFailureError
from src.domain.maintenance import MaintenanceCompletion, MaintenanceTask, UrgencyState


class MaintenanceStats(BaseModel):
    """Urgency tallies over a set of tasks."""

    overdue: int = 0
    due_soon: int = 0
    upcoming: int = 0
    completed: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.overdue + self.due_soon + self.upcoming + self.completed


class TaskView(BaseModel):
    """A task joined with its derived urgency and latest ledger entry, for display."""

    task: MaintenanceTask
    urgency: UrgencyState
    days_until_due: int
    frequency_label: str
    assigned_worker_name: str | None = None
    last_completed_date: datetime | None = None
    last_completion_worker_name: str | None = None


class CompletionWithWorker(BaseModel):
    """Completion ledger entry joined with worker name and task title."""

    completion: MaintenanceCompletion
    worker_name: str | None = None
    task_title: str | None = None


class SyncReport(BaseModel):
    """Outcome of one reminder reconciliation run."""

    scheduled: list[str] = Field(default_factory=list)
    rescheduled: list[str] = Field(default_factory=list)
    cancelled: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    skipped_past_due: list[str] = Field(default_factory=list)
    failed_task_ids: list[str] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_task_ids)

    @property
    def changed(self) -> bool:
        return bool(self.scheduled or self.rescheduled or self.cancelled)

    def raise_for_failures(self) -> None:
        """Raise SyncPartialFailureError if any schedule/cancel call failed."""
        if self.failed_task_ids:
            raise SyncPartialFailureError(list(self.failed_task_ids))


class PropertyMaintenance(BaseModel):
    """Maintenance overview for one property: grouped task views and urgency tallies."""

    property_id: str
    groups: dict[UrgencyState, list[TaskView]]
    stats: MaintenanceStats
    reminders: SyncReport | None = None


class CompletionResult(BaseModel):
    """Result of the completion workflow."""

    task: MaintenanceTask
    completion: MaintenanceCompletion
    is_terminal: bool = Field(..., description="True when a one-time task reached its final state")
    replayed: bool = Field(default=False, description="True when a retried completion had already been applied")
    reminders: SyncReport | None = None


class TaskMutationResult(BaseModel):
    """Result of a create/edit/delete followed by reminder reconciliation."""

    task: MaintenanceTask | None = None
    deleted_task_id: str | None = None
    reminders: SyncReport | None = None
