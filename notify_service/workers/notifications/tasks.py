"""Notification task definitions.

This module provides:
- Delivery of a single notification job (retried by NotificationRetryMiddleware)
- The reconciliation sweep, kicked on demand or by an external scheduler
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from taskiq import Context, TaskiqDepends

from notify_service.features.notifications.queue import NotificationJob
from notify_service.features.notifications.reconcile import get_notification_reconciler
from notify_service.features.notifications.worker import get_notification_worker
from notify_service.infra.tasks.broker import broker
from notify_service.infra.tasks.middleware import attempt_number

logger = logging.getLogger(__name__)


if broker is not None:

    @broker.task(retry_on_error=True, notification_job=True)
    async def deliver_notification_task(
        payload: dict[str, Any],
        context: Annotated[Context, TaskiqDepends()],
    ) -> None:
        """Deliver one notification job.

        Raising marks the attempt failed; the retry middleware re-kicks the
        task with backoff until the attempt ceiling is reached.

        Example:
            await deliver_notification_task.kicker().with_task_id(job.job_id).kiq(job.to_payload())
        """
        job = NotificationJob.from_payload(payload)
        attempt = attempt_number(context.message)
        logger.debug(
            "Delivering notification job",
            extra={"notification_id": job.job_id, "channel": job.channel, "attempt": attempt},
        )
        await get_notification_worker().handle(job, attempt)

    @broker.task()
    async def reconcile_notifications_task(
        older_than_seconds: int | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Re-enqueue PENDING and RETRIED notifications that stopped making progress.

        Returns:
            Dictionary with scanned, requeued and failed counts.
        """
        result = await get_notification_reconciler().sweep(
            older_than_seconds=older_than_seconds,
            limit=limit,
        )
        return {
            "scanned": result.scanned,
            "requeued": len(result.requeued),
            "failed": len(result.failed),
        }
