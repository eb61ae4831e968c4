"""Reconciliation sweep for records that never reached the queue.

A record whose create committed but whose enqueue failed stays PENDING with
no job behind it. The sweep finds PENDING and RETRIED records that have not
changed for ``NOTIFY_RECONCILE_AFTER_SECONDS`` and enqueues them again.
Enqueue is idempotent per notification id, so records that do have a live job
are not delivered twice.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from notify_service.core.settings import get_notification_settings
from notify_service.features.notifications.metrics import reconciled_total
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

    from notify_service.core.settings import NotificationSettings

SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]


@dataclass(slots=True)
class ReconcileResult:
    scanned: int = 0
    requeued: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)


class NotificationReconciler:
    """Re-enqueues stale records still awaiting a delivery outcome."""

    def __init__(
        self,
        queue: NotificationQueue | None = None,
        session_factory: SessionFactory | None = None,
        repository: NotificationRepository | None = None,
        settings: NotificationSettings | None = None,
    ) -> None:
        self._queue = queue
        self._session_factory = session_factory or get_async_session
        self._repository = repository or get_notification_repository()
        self._settings = settings or get_notification_settings()
        self._logger = get_logger(__name__)

    @property
    def queue(self) -> NotificationQueue:
        if self._queue is None:
            self._queue = get_notification_queue()
        return self._queue

    async def sweep(
        self,
        *,
        older_than_seconds: int | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> ReconcileResult:
        """Run one sweep and return what was re-enqueued."""
        age = older_than_seconds if older_than_seconds is not None else self._settings.reconcile_after_seconds
        cutoff = (now or datetime.now(UTC)) - timedelta(seconds=age)
        batch = limit or self._settings.reconcile_batch_size

        async with self._session_factory() as session:
            stale = await self._repository.list_stale(session, older_than=cutoff, limit=batch)

        result = ReconcileResult(scanned=len(stale))
        for notification in stale:
            job = NotificationJob(
                notification_id=notification.id,
                channel=notification.channel,
                recipient=notification.recipient,
                subject=notification.subject,
                body=notification.body,
                retries=notification.retries_count,
            )
            try:
                await self.queue.enqueue(job)
            except Exception as exc:
                result.failed.append(notification.id)
                self._logger.exception(
                    f"Reconciliation could not enqueue notification {notification.id}: {exc}",
                    extra={"notification_id": str(notification.id)},
                )
                continue
            result.requeued.append(notification.id)

        if result.requeued:
            reconciled_total.inc(len(result.requeued))
        self._logger.info(
            f"Reconciliation sweep re-enqueued {len(result.requeued)} of {result.scanned} stale notification(s)",
            extra={
                "cutoff": cutoff.isoformat(),
                "requeued": len(result.requeued),
                "failed": len(result.failed),
            },
        )
        return result


_reconciler: NotificationReconciler | None = None


def get_notification_reconciler() -> NotificationReconciler:
    global _reconciler
    if _reconciler is None:
        _reconciler = NotificationReconciler()
    return _reconciler
