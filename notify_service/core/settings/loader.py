"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from notify_service.core.settings import get_notification_settings

    settings = get_notification_settings()

Testing:
    In tests, clear the cache to force reload:
    get_notification_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .channels import EmailChannelSettings, SmsChannelSettings
from .database import DatabaseSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .rabbit import RabbitSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings.

    Returns:
        Validated and frozen AppSettings instance.
    """
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    """Get cached RabbitMQ settings."""
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """Get cached notification pipeline settings."""
    return NotificationSettings()


@lru_cache(maxsize=1)
def get_email_channel_settings() -> EmailChannelSettings:
    """Get cached SMTP settings for the email channel."""
    return EmailChannelSettings()


@lru_cache(maxsize=1)
def get_sms_channel_settings() -> SmsChannelSettings:
    """Get cached Twilio settings for the SMS channel."""
    return SmsChannelSettings()


def clear_all_caches() -> None:
    """Clear every settings cache (used by tests that patch the environment)."""
    for loader in (
        get_app_settings,
        get_db_settings,
        get_logging_settings,
        get_rabbit_settings,
        get_notification_settings,
        get_email_channel_settings,
        get_sms_channel_settings,
    ):
        loader.cache_clear()
