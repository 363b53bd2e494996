"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.scheduler_tracker import job_tracker


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncGenerator[str]:
    """A fresh SQLite database file with the schema applied.

    Points settings at a temporary file for the duration of the test and
    closes the cached connection afterwards.
    """
    db_path = str(tmp_path / "hearth_test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    try:
        yield db_path
    finally:
        await db_client.close_connection()


@pytest.fixture(autouse=True)
def reset_job_tracker():
    """Give every test an empty job history."""
    job_tracker.reset()
    yield
    job_tracker.reset()
