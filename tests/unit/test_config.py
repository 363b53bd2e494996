"""Tests for configuration validation."""

import pytest
from pydantic import ValidationError

from src.core.config import Constants, Settings


def test_defaults() -> None:
    """Test settings defaults when nothing is configured."""
    settings = Settings(_env_file=None)

    assert settings.default_reminder_days_before == 3
    assert settings.reminder_reconcile_interval_minutes == 60
    assert settings.enable_reminder_scheduler is True


def test_env_overrides(monkeypatch) -> None:
    """Test settings are read from environment variables."""
    monkeypatch.setenv("SQLITE_DB_PATH", "/tmp/hearth-test.db")
    monkeypatch.setenv("DEFAULT_REMINDER_DAYS_BEFORE", "7")
    monkeypatch.setenv("ENABLE_REMINDER_SCHEDULER", "false")

    settings = Settings(_env_file=None)

    assert settings.sqlite_db_path == "/tmp/hearth-test.db"
    assert settings.default_reminder_days_before == 7
    assert settings.enable_reminder_scheduler is False


def test_negative_default_reminder_offset_is_rejected() -> None:
    """Test a negative reminder offset fails validation."""
    with pytest.raises(ValidationError, match="default_reminder_days_before"):
        Settings(_env_file=None, default_reminder_days_before=-1)


def test_reconcile_interval_must_be_positive() -> None:
    """Test the reconciliation interval must be at least one minute."""
    with pytest.raises(ValidationError, match="reminder_reconcile_interval_minutes"):
        Settings(_env_file=None, reminder_reconcile_interval_minutes=0)


def test_reminder_job_prefix_is_not_a_periodic_job_id() -> None:
    """Test reminder job ids can never collide with the reconciliation job."""
    assert not Constants.RECONCILE_JOB_ID.startswith(Constants.REMINDER_JOB_PREFIX)
