from src.services import (
    completion_service,
    completion_workflow,
    maintenance_service,
    reminder_sync,
    task_service,
    task_status,
    worker_service,
)


__all__ = [
    "completion_service",
    "completion_workflow",
    "maintenance_service",
    "reminder_sync",
    "task_service",
    "task_status",
    "worker_service",
]
