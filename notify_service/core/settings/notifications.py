"""Notification pipeline settings.

Controls the delivery queue (attempt ceiling, backoff, concurrency) and the
reconciliation sweep for records that never reached the queue.

Environment variables use NOTIFY_ prefix.
Example: NOTIFY_MAX_ATTEMPTS=5, NOTIFY_CONCURRENCY=10
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationSettings(BaseSettings):
    """Delivery queue and reconciliation configuration."""

    # Queue retry policy
    max_attempts: int = Field(default=3, ge=1, le=20)
    """Delivery attempts per job before the queue marks it permanently failed."""

    backoff_base_seconds: float = Field(default=1.0, ge=0.0, le=3600.0)
    """Delay before the second attempt; doubles for every further attempt."""

    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    """Multiplier for exponential backoff (delay = base * multiplier^(attempt - 1))."""

    backoff_max_seconds: float = Field(default=300.0, ge=0.0)
    """Upper bound for a single backoff delay."""

    # Worker pool
    concurrency: int = Field(default=5, ge=1, le=100)
    """Jobs processed in parallel by one worker process."""

    claim_timeout_seconds: int = Field(default=120, ge=1, le=3600)
    """How long a worker holds a record while sending before another job may take it over."""

    # Reconciliation sweep
    reconcile_after_seconds: int = Field(default=300, ge=10)
    """Age after which a PENDING record without progress is re-enqueued."""

    reconcile_batch_size: int = Field(default=100, ge=1, le=10_000)
    """Maximum records re-enqueued by a single sweep."""

    # Read APIs
    in_app_inbox_limit: int = Field(default=50, ge=1, le=500)
    """Maximum in-app notifications returned to a user."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    def backoff_delay(self, attempts_made: int) -> float:
        """Seconds to wait before the next attempt after ``attempts_made`` failures."""
        exponent = max(attempts_made - 1, 0)
        delay = self.backoff_base_seconds * (self.backoff_multiplier**exponent)
        return min(delay, self.backoff_max_seconds)
