"""Pytest configuration and fixtures for integration tests."""

from datetime import UTC, datetime

import pytest

from tests.unit.mocks import FakeReminderBackend


@pytest.fixture
def fake_backend() -> FakeReminderBackend:
    """Reminder backend that records calls instead of scheduling jobs."""
    return FakeReminderBackend()


@pytest.fixture
def now() -> datetime:
    """Fixed clock for integration flows."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=UTC)
