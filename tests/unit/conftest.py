"""Pytest configuration and fixtures for unit tests."""

from datetime import UTC, datetime

import pytest

from src.domain.create_models import MaintenanceTaskCreate
from src.domain.maintenance import Frequency
from tests.unit.mocks import FakeReminderBackend, InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.delete_records", in_memory_db.delete_records)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)

    return in_memory_db


@pytest.fixture
def fake_backend():
    """Provides a fresh FakeReminderBackend for each test."""
    return FakeReminderBackend()


@pytest.fixture
def patched_backend(monkeypatch, fake_backend):
    """Makes FakeReminderBackend the default reminder backend."""
    monkeypatch.setattr("src.services.reminder_sync.reminder_backend", fake_backend)
    return fake_backend


@pytest.fixture
def now() -> datetime:
    """Fixed clock used across maintenance tests."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def sample_task_data():
    """Returns sample task creation data for testing."""
    return {
        "property_id": "property-1",
        "title": "HVAC Filter Replacement",
        "description": "Replace the upstairs filter",
        "frequency": Frequency.MONTHLY,
        "next_due_date": datetime(2024, 3, 10, tzinfo=UTC),
        "reminder_days_before": 3,
    }


@pytest.fixture
def sample_task_create(sample_task_data) -> MaintenanceTaskCreate:
    """Returns a validated MaintenanceTaskCreate for testing."""
    return MaintenanceTaskCreate(**sample_task_data)

