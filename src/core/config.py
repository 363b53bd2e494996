"""Configuration management for hearth."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/hearth.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")

    # Maintenance Defaults
    default_reminder_days_before: int = Field(
        default=3, ge=0, description="Reminder offset (days before due) used when none is given"
    )

    # Reminder Reconciliation
    enable_reminder_scheduler: bool = Field(
        default=True, description="Start the reminder scheduler and periodic reconciliation on app startup"
    )
    reminder_reconcile_interval_minutes: int = Field(
        default=60, ge=1, description="How often the full reminder reconciliation job runs (in minutes)"
    )


# Application Constants
class Constants:
    """Application-wide constants."""

    # Reminder Scheduling
    REMINDER_JOB_PREFIX: str = "maintenance-"
    REMINDER_TITLE: str = "Maintenance Reminder"
    RECONCILE_JOB_ID: str = "reminder_reconciliation"

    # Job Retry
    JOB_MAX_RETRIES: int = 3
    JOB_RETRY_BASE_DELAY_SECONDS: float = 2.0
    JOB_CONSECUTIVE_FAILURE_THRESHOLD: int = 3  # Failures before a job lands in the dead letter queue

    # Job Tracker Configuration
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100  # Max items in dead letter queue
    TRACKER_ERROR_MAX_LENGTH: int = 500

    # Maintenance Views
    UPCOMING_WINDOW_DAYS: int = 30  # Default look-ahead for the upcoming task list

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries



def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
