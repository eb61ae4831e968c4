"""Taskiq broker configuration for notification delivery.

Delivery jobs travel over RabbitMQ through taskiq-aio-pika when
``RABBIT_AMQP_URI`` is set. Without it ``broker`` stays None and the service
delivers through the in-process asyncio queue instead.

Run a worker with the same concurrency ceiling as the in-process queue:

    taskiq worker notify_service.infra.tasks.broker:broker --max-async-tasks 5

Middleware Stack
================
1. NotificationRetryMiddleware (outermost) - attempt ceiling, backoff, terminal failure
2. MetricsMiddleware - records every attempt, including retries

Task Discovery
==============
Task modules are imported at the bottom of this file so the worker process,
which imports this module, registers every task.
"""

from __future__ import annotations

import logging

from taskiq_aio_pika import AioPikaBroker

from notify_service.core.settings import get_notification_settings, get_rabbit_settings
from notify_service.infra.logging.config import setup_logging

logger = logging.getLogger(__name__)

rabbit_settings = get_rabbit_settings()
notification_settings = get_notification_settings()

setup_logging()

broker: AioPikaBroker | None = None

if rabbit_settings.is_configured:
    from notify_service.infra.tasks.middleware import (
        MetricsMiddleware,
        NotificationRetryMiddleware,
    )

    queue_name = rabbit_settings.get_prefixed_queue(rabbit_settings.delivery_queue)

    # Middleware order matters: retry first so metrics see re-kicked attempts
    broker = AioPikaBroker(
        url=rabbit_settings.get_url(),
        queue_name=queue_name,
        declare_exchange=True,
        declare_queues=True,
    ).with_middlewares(
        NotificationRetryMiddleware(notification_settings),
        MetricsMiddleware(),
    )

    logger.info(
        "Taskiq delivery broker configured",
        extra={
            "queue": queue_name,
            "max_attempts": notification_settings.max_attempts,
            "middlewares": ["NotificationRetryMiddleware", "MetricsMiddleware"],
        },
    )
else:
    logger.info("RabbitMQ not configured - using the in-process delivery queue")


async def start_taskiq() -> None:
    """Start the broker for enqueueing from the API process.

    Raises:
        ConnectionError: If unable to connect to RabbitMQ.
    """
    if broker is None:
        logger.debug("Taskiq broker not configured, skipping startup")
        return

    logger.info("Starting Taskiq broker")
    try:
        await broker.startup()
        logger.info("Taskiq broker started successfully")
    except Exception as e:
        logger.exception("Failed to start Taskiq broker", extra={"error": str(e)})
        raise


async def stop_taskiq() -> None:
    if broker is None:
        logger.debug("Taskiq broker not configured, skipping shutdown")
        return

    logger.info("Stopping Taskiq broker")
    try:
        await broker.shutdown()
        logger.info("Taskiq broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping Taskiq broker", extra={"error": str(e)})


# Register task modules with the broker
if broker is not None:
    import notify_service.workers.notifications.tasks  # noqa: F401
