"""Delivery worker: runs one queue job against its channel sender.

The worker is the queue's job handler. Each attempt first claims the record
with a lease, so two jobs for one notification never send at the same time.
Every outcome goes through ``NotificationRepository.update_status`` in its own
short transaction, and failures are re-raised so the queue counts the attempt.
"""

from __future__ import annotations

from collections.abc import Callable
import time
from typing import TYPE_CHECKING

from notify_service.core.settings import get_notification_settings
from notify_service.features.notifications.channels import ChannelRegistry, get_channel_registry
from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.exceptions import (
    DeliveryError,
    InvalidStatusTransitionError,
    NotificationNotFoundError,
    UnknownChannelError,
)
from notify_service.features.notifications.metrics import (
    deliveries_total,
    delivery_duration_seconds,
)
from notify_service.features.notifications.repository import (
    NotificationRepository,
    get_notification_repository,
)
from notify_service.infra.database import get_async_session
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from notify_service.core.settings import NotificationSettings
    from notify_service.features.notifications.queue import NotificationJob

SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]


class NotificationWorker:
    """Delivers queued notification jobs.

    Outcomes per attempt:
        - record already SENT/DELIVERED: stale duplicate, completes without sending
        - record claimed by another running job: duplicate, completes without sending
        - no sender for the channel: record FAILED, ``UnknownChannelError`` raised
        - sender returns False: record FAILED, ``DeliveryError`` raised
        - sender raises: record FAILED, the exception propagates
        - sender returns True: record SENT
    """

    def __init__(
        self,
        registry: ChannelRegistry | None = None,
        session_factory: SessionFactory | None = None,
        repository: NotificationRepository | None = None,
        settings: NotificationSettings | None = None,
    ) -> None:
        self._registry = registry or get_channel_registry()
        self._session_factory = session_factory or get_async_session
        self._repository = repository or get_notification_repository()
        self._settings = settings or get_notification_settings()
        self._logger = get_logger(__name__)

    async def handle(self, job: NotificationJob, attempt: int = 1) -> None:
        """Deliver ``job``; raising tells the queue the attempt failed."""
        log = self._logger.bind(
            notification_id=job.job_id, channel=job.channel, attempt=attempt
        )

        async with self._session_factory() as session:
            claimed = await self._repository.claim(
                session,
                job.notification_id,
                lease_seconds=self._settings.claim_timeout_seconds,
            )
            await session.commit()
            if not claimed:
                notification = await self._repository.get(session, job.notification_id)
                if notification is None:
                    log.warning(f"Notification {job.job_id} no longer exists; dropping job")
                elif notification.status.is_delivered():
                    log.info(
                        f"Notification {job.job_id} already {notification.status.value}; skipping duplicate job"
                    )
                else:
                    log.info(
                        f"Notification {job.job_id} is being sent by another job; skipping duplicate job"
                    )
                return

        sender = self._registry.get(job.channel)
        if sender is None:
            error = UnknownChannelError(job.channel)
            deliveries_total.labels(channel=job.channel, outcome="no_sender").inc()
            await self._record_failure(job, str(error))
            raise error

        start_time = time.perf_counter()
        try:
            sent = await sender.send(job.notification_id, job.recipient, job.subject, job.body)
        except Exception as exc:
            deliveries_total.labels(channel=job.channel, outcome="error").inc()
            log.exception(f"Sender raised for notification {job.job_id}: {exc}")
            await self._record_failure(job, f"Sender error: {exc}")
            raise
        finally:
            delivery_duration_seconds.labels(channel=job.channel).observe(
                time.perf_counter() - start_time
            )

        if not sent:
            reason = f"Failed to send notification via {job.channel}"
            deliveries_total.labels(channel=job.channel, outcome="failed").inc()
            await self._record_failure(job, reason)
            raise DeliveryError(job.notification_id, job.channel, reason)

        deliveries_total.labels(channel=job.channel, outcome="sent").inc()
        await self._record_status(job, NotificationStatus.SENT)
        log.info(f"Notification {job.job_id} sent via {job.channel}")

    async def _record_failure(self, job: NotificationJob, reason: str) -> None:
        await self._record_status(job, NotificationStatus.FAILED, reason)

    async def _record_status(
        self,
        job: NotificationJob,
        status: NotificationStatus,
        error_details: str | None = None,
    ) -> None:
        async with self._session_factory() as session:
            try:
                await self._repository.update_status(
                    session, job.notification_id, status, error_details
                )
            except (InvalidStatusTransitionError, NotificationNotFoundError) as exc:
                await session.rollback()
                self._logger.warning(
                    f"Could not record {status.value} for notification {job.job_id}: {exc}",
                    extra={"notification_id": job.job_id, "status": status.value},
                )
                return
            await session.commit()


_worker: NotificationWorker | None = None


def get_notification_worker() -> NotificationWorker:
    global _worker
    if _worker is None:
        _worker = NotificationWorker()
    return _worker
