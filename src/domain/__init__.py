"""Domain models and DTOs."""

from src.domain.create_models import CompletionCreate, MaintenanceTaskCreate, WorkerCreate
from src.domain.maintenance import (
    URGENCY_ORDER,
    Frequency,
    MaintenanceCompletion,
    MaintenanceTask,
    ScheduledReminder,
    UrgencyState,
    Worker,
)
from src.domain.templates import MAINTENANCE_TEMPLATES, MaintenanceTemplate, get_template
from src.domain.update_models import MaintenanceTaskUpdate


__all__ = [
    "MAINTENANCE_TEMPLATES",
    "URGENCY_ORDER",
    "CompletionCreate",
    "Frequency",
    "MaintenanceCompletion",
    "MaintenanceTask",
    "MaintenanceTaskCreate",
    "MaintenanceTaskUpdate",
    "MaintenanceTemplate",
    "ScheduledReminder",
    "UrgencyState",
    "Worker",
    "WorkerCreate",
    "get_template",
]
