"""Modular Pydantic Settings v2 configuration.

One settings class per domain, each read from environment variables with its
own prefix and cached by an LRU loader:

    from notify_service.core.settings import get_app_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .channels import EmailChannelSettings, SmsChannelSettings
from .database import DatabaseSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_email_channel_settings,
    get_logging_settings,
    get_notification_settings,
    get_rabbit_settings,
    get_sms_channel_settings,
)
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "EmailChannelSettings",
    "LoggingSettings",
    "NotificationSettings",
    "RabbitSettings",
    "SmsChannelSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_channel_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_rabbit_settings",
    "get_sms_channel_settings",
]
