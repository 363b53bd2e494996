"""Worker service: contractors and handymen who carry out maintenance."""

import logging
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.errors import StoreFailureError, TaskValidationError, WorkerNotFoundError, validation_message
from src.core.logging import span
from src.domain.create_models import WorkerCreate
from src.domain.maintenance import Worker


logger = logging.getLogger(__name__)

COLLECTION = "workers"


async def create_worker(*, data: WorkerCreate | dict[str, Any]) -> Worker:
    """Create a worker.

    Raises:
        TaskValidationError: If the name is empty
        StoreFailureError: If the store fails
    """
    with span("worker_service.create_worker"):
        if not isinstance(data, WorkerCreate):
            try:
                data = WorkerCreate(**data)
            except ValidationError as e:
                raise TaskValidationError(validation_message(e)) from e

        try:
            record = await db_client.create_record(collection=COLLECTION, data=data.model_dump())
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        logger.info("Created worker %s", record["id"], extra={"worker_id": record["id"]})
        return Worker(**record)


async def get_worker_by_id(*, worker_id: str) -> Worker:
    """Get worker by ID.

    Raises:
        WorkerNotFoundError: If the worker does not exist
        StoreFailureError: If the store fails
    """
    with span("worker_service.get_worker_by_id"):
        try:
            record = await db_client.get_record(collection=COLLECTION, record_id=worker_id)
        except db_client.RecordNotFoundError as e:
            raise WorkerNotFoundError(worker_id) from e
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e
        return Worker(**record)


async def get_worker_names(*, worker_ids: set[str]) -> dict[str, str]:
    """Resolve worker ids to display names. Unknown ids are left out."""
    with span("worker_service.get_worker_names"):
        names: dict[str, str] = {}
        for worker_id in worker_ids:
            try:
                worker = await get_worker_by_id(worker_id=worker_id)
            except WorkerNotFoundError:
                logger.debug("Worker %s referenced but missing", worker_id)
                continue
            names[worker_id] = worker.name
        return names


async def list_workers() -> list[Worker]:
    """All workers, sorted by name."""
    with span("worker_service.list_workers"):
        try:
            records = await db_client.list_all_records(collection=COLLECTION)
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e
        return sorted((Worker(**record) for record in records), key=lambda worker: worker.name.lower())


async def delete_worker(*, worker_id: str) -> None:
    """Delete a worker and unassign it from every maintenance task.

    Completion history keeps the worker id; lookups of it simply resolve to no name.

    Raises:
        WorkerNotFoundError: If the worker does not exist
        StoreFailureError: If the store fails
    """
    with span("worker_service.delete_worker"):
        await get_worker_by_id(worker_id=worker_id)

        try:
            assigned = await db_client.list_all_records(
                collection="maintenance_tasks",
                filter_query=f'assigned_worker_id = "{db_client.sanitize_param(worker_id)}"',
            )
            for task_record in assigned:
                await db_client.update_record(
                    collection="maintenance_tasks",
                    record_id=task_record["id"],
                    data={"assigned_worker_id": None},
                )

            await db_client.delete_record(collection=COLLECTION, record_id=worker_id)
        except db_client.RecordNotFoundError as e:
            raise WorkerNotFoundError(worker_id) from e
        except db_client.DatabaseError as e:
            raise StoreFailureError(str(e)) from e

        logger.info(
            "Deleted worker %s",
            worker_id,
            extra={"worker_id": worker_id, "tasks_unassigned": len(assigned)},
        )
