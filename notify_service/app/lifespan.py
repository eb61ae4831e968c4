"""Application lifespan management.

Startup Order:
1. Core (logging, application info metric)
2. Database (connectivity check, table creation, optional seed)
3. Delivery queue (Taskiq broker when RabbitMQ is configured, otherwise
   the in-process worker pool)

Shutdown Order: Reverse of startup
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from notify_service.core.settings import (
    get_app_settings,
    get_logging_settings,
    get_notification_settings,
)
from notify_service.infra.logging.config import setup_logging
from notify_service.infra.metrics.prometheus import application_info

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_core() -> None:
    app_settings = get_app_settings()

    setup_logging(log_settings=get_logging_settings(), force=True)
    logger.info(
        "Application starting",
        extra={"service": app_settings.service_name, "environment": app_settings.environment},
    )

    application_info.info(
        {
            "version": app_settings.version,
            "service": app_settings.service_name,
            "environment": app_settings.environment,
        }
    )


async def _startup_database() -> None:
    from notify_service.infra.database import get_async_session, init_database

    await init_database()

    if get_app_settings().seed_on_startup:
        from notify_service.features.notifications.seed import seed_defaults

        async with get_async_session() as session:
            await seed_defaults(session)


async def _startup_queue() -> None:
    from notify_service.features.notifications.queue import (
        InProcessNotificationQueue,
        get_notification_queue,
    )
    from notify_service.infra.tasks.broker import start_taskiq

    await start_taskiq()

    queue = get_notification_queue()
    if isinstance(queue, InProcessNotificationQueue):
        await queue.start()
        logger.info(
            "In-process delivery queue started",
            extra={"concurrency": get_notification_settings().concurrency},
        )


async def _shutdown_queue() -> None:
    from notify_service.features.notifications.queue import (
        InProcessNotificationQueue,
        get_notification_queue,
    )
    from notify_service.infra.tasks.broker import stop_taskiq

    queue = get_notification_queue()
    if isinstance(queue, InProcessNotificationQueue):
        await queue.stop()

    await stop_taskiq()


async def _shutdown_database() -> None:
    from notify_service.infra.database import close_database

    await close_database()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the service's infrastructure.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    await _startup_core()
    await _startup_database()
    await _startup_queue()

    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Application shutting down")
        await _shutdown_queue()
        await _shutdown_database()
        logger.info("Application shutdown complete")
