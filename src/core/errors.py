"""Maintenance error types and error classification utilities."""

from enum import Enum

from pydantic import BaseModel, ValidationError


class MaintenanceError(Exception):
    """Base class for errors raised by the maintenance engine."""


class TaskValidationError(MaintenanceError, ValueError):
    """Input rejected before any store call (empty title, negative offset, ...)."""


class TaskNotFoundError(MaintenanceError, KeyError):
    """Maintenance task id is absent from the task store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Maintenance task not found: {task_id}")
        self.task_id = task_id

    def __str__(self) -> str:
        return str(self.args[0])


class WorkerNotFoundError(MaintenanceError, KeyError):
    """Worker id is absent from the worker store."""

    def __init__(self, worker_id: str) -> None:
        super().__init__(f"Worker not found: {worker_id}")
        self.worker_id = worker_id

    def __str__(self) -> str:
        return str(self.args[0])


class TaskAlreadyCompletedError(MaintenanceError, ValueError):
    """A one-time task that already completed cannot be completed or reopened."""


class StoreFailureError(MaintenanceError, RuntimeError):
    """The persistence layer failed to carry out an operation."""


class CompletionNotRecordedError(StoreFailureError):
    """The ledger write failed; nothing was written, so the completion can be retried as is."""


class CompletionPartiallyAppliedError(StoreFailureError):
    """The ledger row exists but the task was not advanced.

    Retry the completion with the same ``completion_id``; the workflow then
    reuses the recorded row instead of writing a second one.
    """

    def __init__(self, message: str, *, task_id: str, completion_id: str) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.completion_id = completion_id


class ReminderBackendError(MaintenanceError):
    """The reminder backend could not be queried."""


class SyncPartialFailureError(MaintenanceError):
    """One or more schedule/cancel calls failed during reminder reconciliation."""

    def __init__(self, failed_task_ids: list[str]) -> None:
        super().__init__(f"Failed to reconcile reminders for {len(failed_task_ids)} task(s): {failed_task_ids}")
        self.failed_task_ids = failed_task_ids


def validation_message(error: ValidationError) -> str:
    """Readable text for a pydantic ValidationError.

    Messages raised by our own validators are used as written, without
    pydantic's "Value error, " prefix; other errors are prefixed with the field.
    """
    messages = []
    for detail in error.errors():
        if detail["type"] == "value_error":
            messages.append(str(detail["ctx"]["error"]))
        elif detail["loc"]:
            messages.append(f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}")
        else:
            messages.append(detail["msg"])
    return "; ".join(messages)


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Input errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_TASK_ALREADY_COMPLETED = "ERR_TASK_ALREADY_COMPLETED"

    # Lookup errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_WORKER_NOT_FOUND = "ERR_WORKER_NOT_FOUND"

    # Store errors
    ERR_COMPLETION_NOT_RECORDED = "ERR_COMPLETION_NOT_RECORDED"
    ERR_COMPLETION_PARTIALLY_APPLIED = "ERR_COMPLETION_PARTIALLY_APPLIED"
    ERR_STORE_FAILURE = "ERR_STORE_FAILURE"

    # Reminder errors
    ERR_REMINDER_SYNC_PARTIAL = "ERR_REMINDER_SYNC_PARTIAL"
    ERR_REMINDER_BACKEND = "ERR_REMINDER_BACKEND"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    http_status: int = 500
    retry_safe: bool = False
    completion_id: str | None = None


def classify_error_with_response(exception: Exception) -> ErrorResponse:  # noqa: PLR0911
    """Classify an error and return a structured response with recovery suggestions.

    Order matters: the more specific store errors are checked before their base class.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, TaskAlreadyCompletedError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_ALREADY_COMPLETED,
            message="This task is already completed.",
            suggestion="One-time tasks can only be completed once. Create a new task instead.",
            severity=ErrorSeverity.LOW,
            http_status=409,
        )

    if isinstance(exception, TaskValidationError):
        return ErrorResponse(
            code=ErrorCode.ERR_VALIDATION,
            message=str(exception),
            suggestion="Check the task title, due date and reminder offset and try again.",
            severity=ErrorSeverity.LOW,
            http_status=422,
        )

    if isinstance(exception, TaskNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_TASK_NOT_FOUND,
            message="I couldn't find that maintenance task.",
            suggestion="Reload the task list; it may have been deleted.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, WorkerNotFoundError):
        return ErrorResponse(
            code=ErrorCode.ERR_WORKER_NOT_FOUND,
            message="I couldn't find that worker.",
            suggestion="Reload the worker list; it may have been deleted.",
            severity=ErrorSeverity.LOW,
            http_status=404,
        )

    if isinstance(exception, CompletionNotRecordedError):
        return ErrorResponse(
            code=ErrorCode.ERR_COMPLETION_NOT_RECORDED,
            message="The completion could not be saved. Nothing was changed.",
            suggestion="Try completing the task again.",
            severity=ErrorSeverity.MEDIUM,
            http_status=503,
            retry_safe=True,
        )

    if isinstance(exception, CompletionPartiallyAppliedError):
        return ErrorResponse(
            code=ErrorCode.ERR_COMPLETION_PARTIALLY_APPLIED,
            message="The completion was recorded but the task schedule was not updated.",
            suggestion="Retry with the same completion id to finish updating the task.",
            severity=ErrorSeverity.HIGH,
            http_status=503,
            retry_safe=True,
            completion_id=exception.completion_id,
        )

    if isinstance(exception, StoreFailureError):
        return ErrorResponse(
            code=ErrorCode.ERR_STORE_FAILURE,
            message="The maintenance store is unavailable.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
            http_status=503,
        )

    if isinstance(exception, SyncPartialFailureError):
        return ErrorResponse(
            code=ErrorCode.ERR_REMINDER_SYNC_PARTIAL,
            message=f"Reminders for {len(exception.failed_task_ids)} task(s) could not be updated.",
            suggestion="Reminders are reconciled again automatically.",
            severity=ErrorSeverity.MEDIUM,
            http_status=502,
            retry_safe=True,
        )

    if isinstance(exception, ReminderBackendError):
        return ErrorResponse(
            code=ErrorCode.ERR_REMINDER_BACKEND,
            message="The reminder service is unavailable.",
            suggestion="Reminders are reconciled again automatically.",
            severity=ErrorSeverity.HIGH,
            http_status=502,
            retry_safe=True,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
    )
