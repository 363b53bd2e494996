"""Update models for database operations."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from src.domain.create_models import MAX_TITLE_LENGTH
from src.domain.maintenance import Frequency


# Columns that may be cleared with an explicit null; every other field only accepts a value
NULLABLE_FIELDS = frozenset({"description", "assigned_worker_id", "asset_id"})


class MaintenanceTaskUpdate(BaseModel):
    """Partial update payload for a maintenance task. Unset fields are left alone.

    Completion state is not editable here: a task only becomes completed
    through the completion workflow, which also writes the ledger row.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    frequency: Frequency | None = None
    next_due_date: datetime | None = None
    reminder_days_before: int | None = None
    assigned_worker_id: str | None = None
    asset_id: str | None = None
    is_active: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate title is non-empty after trimming."""
        if v is None:
            return None
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
    def validate_reminder_offset(cls, v: int | None) -> int | None:
        """Validate reminder offset is not negative."""
        if v is not None and v < 0:
            msg = "Reminder offset must be zero or more days"
            raise ValueError(msg)
        return v

    @field_validator("next_due_date", mode="after")
    @classmethod
    def validate_timezone(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "MaintenanceTaskUpdate":
        """An explicit null is only allowed for optional columns."""
        cleared = sorted(name for name in self.model_fields_set - NULLABLE_FIELDS if getattr(self, name) is None)
        if cleared:
            msg = f"Fields cannot be cleared: {', '.join(cleared)}"
            raise ValueError(msg)
        return self

    def to_record(self) -> dict:
        """Fields explicitly set by the caller, ready for the store."""
        return self.model_dump(mode="json", exclude_unset=True)
