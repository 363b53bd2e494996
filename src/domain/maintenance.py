"""Maintenance domain models and enums."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Frequency(StrEnum):
    """How often a maintenance task recurs."""

    ONCE = "once"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUAL = "biannual"
    YEARLY = "yearly"


class UrgencyState(StrEnum):
    """Derived urgency of a task relative to a point in time. Never stored."""

    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    UPCOMING = "upcoming"
    COMPLETED = "completed"


# Display order for grouped task lists
URGENCY_ORDER: tuple[UrgencyState, ...] = (
    UrgencyState.OVERDUE,
    UrgencyState.DUE_SOON,
    UrgencyState.UPCOMING,
    UrgencyState.COMPLETED,
)


def _as_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class MaintenanceTask(BaseModel):
    """Maintenance task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    property_id: str = Field(..., description="Owning property ID")
    asset_id: str | None = Field(default=None, description="Optional asset the task relates to")
    assigned_worker_id: str | None = Field(default=None, description="Default worker for this task (weak reference)")
    title: str = Field(..., description="Task title (e.g., 'HVAC Filter Replacement')")
    description: str | None = Field(default=None, description="Detailed task description")
    frequency: Frequency = Field(..., description="Recurrence frequency")
    next_due_date: datetime = Field(..., description="Due date of the next (or only) occurrence")
    reminder_days_before: int = Field(..., ge=0, description="Days before the due date that the reminder fires")
    is_completed: bool = Field(default=False, description="True only once a one-time task has been completed")
    is_active: bool = Field(default=True, description="Inactive tasks stay stored but are hidden and not reminded")

    @field_validator("next_due_date", mode="after")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)

    @property
    def is_recurring(self) -> bool:
        return self.frequency != Frequency.ONCE


class MaintenanceCompletion(BaseModel):
    """Completion ledger entry. Immutable once recorded."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique completion ID (client-suppliable idempotency key)")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    task_id: str = Field(..., description="ID of the completed task")
    worker_id: str | None = Field(default=None, description="Worker who did the job")
    completed_date: datetime = Field(..., description="When the task was completed")
    due_date: datetime = Field(..., description="The task due date this completion resolved")
    notes: str | None = Field(default=None, description="Free-form notes")
    cost: float | None = Field(default=None, ge=0, description="Cost of the job")

    @field_validator("completed_date", "due_date", mode="after")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)


class Worker(BaseModel):
    """Worker (contractor/handyman) data transfer object."""

    id: str = Field(..., description="Unique worker ID from database")
    name: str = Field(..., description="Display name")
    phone: str | None = Field(default=None, description="Contact phone number")
    specialty: str | None = Field(default=None, description="Trade or specialty (e.g., 'plumber')")


class ScheduledReminder(BaseModel):
    """A reminder entry as held by the reminder backend."""

    task_id: str
    fire_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
