"""Pydantic models for creating records in database."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from src.domain.maintenance import Frequency


MAX_TITLE_LENGTH = 200


class MaintenanceTaskCreate(BaseModel):
    """Pydantic model for creating a maintenance task record."""

    property_id: str = Field(..., min_length=1, description="Owning property ID")
    title: str = Field(..., description="Task title")
    frequency: Frequency = Field(default=Frequency.ONCE, description="Recurrence frequency")
    next_due_date: datetime = Field(..., description="First due date")
    reminder_days_before: int = Field(default=3, description="Days before due date to remind")
    assigned_worker_id: str | None = Field(default=None, description="Default worker")
    asset_id: str | None = Field(default=None, description="Related asset")
    description: str | None = Field(default=None, description="Detailed description")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is non-empty after trimming."""
        v = v.strip()
        if not v:
            msg = "Task title must not be empty"
            raise ValueError(msg)
        if len(v) > MAX_TITLE_LENGTH:
            msg = f"Task title must be at most {MAX_TITLE_LENGTH} characters"
            raise ValueError(msg)
        return v

    @field_validator("reminder_days_before")
    @classmethod
    def validate_reminder_offset(cls, v: int) -> int:
        """Validate reminder offset is not negative."""
        if v < 0:
            msg = "Reminder offset must be zero or more days"
            raise ValueError(msg)
        return v

    @field_validator("next_due_date", mode="after")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return v.replace(tzinfo=UTC) if v.tzinfo is None else v


class CompletionCreate(BaseModel):
    """Input for completing a maintenance task.

    ``completion_id`` is an optional client-generated idempotency key: retrying a
    failed completion with the same id never records a second ledger row.
    """

    completion_id: str | None = Field(default=None, min_length=1, description="Idempotency key for the ledger row")
    worker_id: str | None = Field(default=None, description="Worker who did the job")
    notes: str | None = Field(default=None, description="Free-form notes")
    cost: float | None = Field(default=None, description="Cost of the job")

    @field_validator("cost")
    @classmethod
    def validate_cost(cls, v: float | None) -> float | None:
        """Validate cost is not negative."""
        if v is not None and v < 0:
            msg = "Cost must not be negative"
            raise ValueError(msg)
        return v

    @field_validator("notes")
    @classmethod
    def blank_notes_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class WorkerCreate(BaseModel):
    """Pydantic model for creating a worker record."""

    name: str = Field(..., description="Display name")
    phone: str | None = Field(default=None, description="Contact phone number")
    specialty: str | None = Field(default=None, description="Trade or specialty")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is non-empty after trimming."""
        v = v.strip()
        if not v:
            msg = "Worker name must not be empty"
            raise ValueError(msg)
        return v
