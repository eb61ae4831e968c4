"""Administrative retry of FAILED notifications.

The only path that brings a FAILED record back into the queue. The stored
subject and body are reused as-is; nothing is re-rendered.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING
from uuid import UUID

from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.exceptions import (
    InvalidNotificationStateError,
    NotificationNotFoundError,
)
from notify_service.features.notifications.metrics import admin_retries_total
from notify_service.features.notifications.queue import (
    NotificationJob,
    NotificationQueue,
    get_notification_queue,
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

    from notify_service.features.notifications.models import Notification

SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]

RETRY_NOTE = "Retrying by admin request"


class RetryController:
    """Re-arms a FAILED record as RETRIED and submits a fresh job."""

    def __init__(
        self,
        queue: NotificationQueue | None = None,
        session_factory: SessionFactory | None = None,
        repository: NotificationRepository | None = None,
    ) -> None:
        self._queue = queue
        self._session_factory = session_factory or get_async_session
        self._repository = repository or get_notification_repository()
        self._logger = get_logger(__name__)

    @property
    def queue(self) -> NotificationQueue:
        if self._queue is None:
            self._queue = get_notification_queue()
        return self._queue

    async def retry(self, notification_id: UUID) -> Notification:
        """Retry a FAILED notification.

        Raises:
            NotificationNotFoundError: If no record exists for ``notification_id``
            InvalidNotificationStateError: If the record is not FAILED; nothing changes
        """
        async with self._session_factory() as session:
            notification = await self._repository.get_for_update(session, notification_id)
            if notification is None:
                admin_retries_total.labels(outcome="not_found").inc()
                raise NotificationNotFoundError(notification_id)
            if notification.status is not NotificationStatus.FAILED:
                admin_retries_total.labels(outcome="invalid_state").inc()
                raise InvalidNotificationStateError(notification_id, notification.status)

            notification = await self._repository.update_status(
                session, notification_id, NotificationStatus.RETRIED, RETRY_NOTE
            )
            await session.commit()

        job = NotificationJob(
            notification_id=notification.id,
            channel=notification.channel,
            recipient=notification.recipient,
            subject=notification.subject,
            body=notification.body,
            retries=notification.retries_count,
        )
        await self.queue.enqueue(job)
        admin_retries_total.labels(outcome="accepted").inc()

        self._logger.info(
            f"Notification {notification_id} re-queued by admin request",
            extra={
                "notification_id": str(notification_id),
                "channel": notification.channel,
                "retries_count": notification.retries_count,
            },
        )
        return notification


_controller: RetryController | None = None


def get_retry_controller() -> RetryController:
    global _controller
    if _controller is None:
        _controller = RetryController()
    return _controller
