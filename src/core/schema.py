"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "workers",
    "maintenance_tasks",
    "maintenance_completions",
]


TABLE_SCHEMAS: dict[str, str] = {
    "workers": """
        CREATE TABLE IF NOT EXISTS workers (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            phone TEXT,
            specialty TEXT,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    "maintenance_tasks": """
        CREATE TABLE IF NOT EXISTS maintenance_tasks (
            id TEXT PRIMARY KEY,
            property_id TEXT NOT NULL,
            asset_id TEXT,
            assigned_worker_id TEXT REFERENCES workers(id) ON DELETE SET NULL,
            title TEXT NOT NULL,
            description TEXT,
            frequency TEXT NOT NULL,
            next_due_date TEXT NOT NULL,
            reminder_days_before INTEGER NOT NULL DEFAULT 3,
            is_completed INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER NOT NULL DEFAULT 1,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
    # Completions are append-only; task_id cascades so history follows task deletion
    "maintenance_completions": """
        CREATE TABLE IF NOT EXISTS maintenance_completions (
            id TEXT PRIMARY KEY,
            task_id TEXT NOT NULL REFERENCES maintenance_tasks(id) ON DELETE CASCADE,
            worker_id TEXT,
            completed_date TEXT NOT NULL,
            due_date TEXT NOT NULL,
            notes TEXT,
            cost REAL,
            created TEXT NOT NULL,
            updated TEXT NOT NULL
        )
    """,
}


INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_maintenance_property ON maintenance_tasks(property_id)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_due ON maintenance_tasks(next_due_date)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_worker ON maintenance_tasks(assigned_worker_id)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_completions_task ON maintenance_completions(task_id)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_completions_worker ON maintenance_completions(worker_id)",
    "CREATE INDEX IF NOT EXISTS idx_maintenance_completions_date ON maintenance_completions(completed_date)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(TABLE_SCHEMAS[collection])
    for index_sql in INDEXES:
        await conn.execute(index_sql)
    await conn.commit()

    logger.info("Database schema initialized", extra={"collections": COLLECTIONS})
