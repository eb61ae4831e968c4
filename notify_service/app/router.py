"""Router registry and setup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from notify_service.core.settings import get_app_settings
from notify_service.features.events.router import router as events_router
from notify_service.features.metrics.router import router as metrics_router
from notify_service.features.notifications.router import (
    admin_router as notifications_admin_router,
)
from notify_service.features.users.router import router as users_router

if TYPE_CHECKING:
    from fastapi import FastAPI

    from notify_service.core.settings.app import AppSettings

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, app_settings: AppSettings | None = None) -> None:
    """Register all feature routers with the application.

    Args:
        app: FastAPI application instance.
        app_settings: Optional application settings override for the API prefix.
    """
    app_settings = app_settings or get_app_settings()
    api_prefix = app_settings.api_prefix

    # Metrics endpoint (no prefix - accessible at /metrics)
    if app_settings.metrics_enabled:
        app.include_router(metrics_router, tags=["observability"])

    app.include_router(events_router, prefix=api_prefix, tags=["events"])
    app.include_router(users_router, prefix=api_prefix, tags=["users"])
    app.include_router(
        notifications_admin_router, prefix=api_prefix, tags=["notifications-admin"]
    )

    logger.info("Routers configured", extra={"api_prefix": api_prefix})
