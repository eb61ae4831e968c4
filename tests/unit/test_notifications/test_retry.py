"""Unit tests for the administrative retry controller."""

from __future__ import annotations

from uuid import uuid4

import pytest

from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.exceptions import (
    InvalidNotificationStateError,
    NotificationNotFoundError,
)
from notify_service.features.notifications.repository import get_notification_repository
from notify_service.features.notifications.retry import RETRY_NOTE, RetryController


@pytest.fixture
def controller(session_factory, recording_queue) -> RetryController:
    return RetryController(recording_queue, session_factory)


async def reload(session_factory, notification_id):
    async with session_factory() as session:
        return await get_notification_repository().get(session, notification_id)


class TestRetry:
    async def test_failed_record_is_rearmed_and_enqueued(
        self, controller, recording_queue, make_notification, session_factory
    ) -> None:
        notification = await make_notification(
            status=NotificationStatus.FAILED, error_details="provider down", retries_count=3
        )

        result = await controller.retry(notification.id)

        assert result.status is NotificationStatus.RETRIED
        stored = await reload(session_factory, notification.id)
        assert stored.status is NotificationStatus.RETRIED
        assert stored.error_details == RETRY_NOTE
        assert stored.retries_count == 3

        [job] = recording_queue.jobs
        assert job.notification_id == notification.id
        assert job.channel == notification.channel
        assert job.recipient == notification.recipient
        assert job.subject == notification.subject
        assert job.body == notification.body
        assert job.retries == 3

    async def test_unknown_id_raises_not_found(self, controller, recording_queue) -> None:
        with pytest.raises(NotificationNotFoundError):
            await controller.retry(uuid4())

        assert recording_queue.jobs == []

    @pytest.mark.parametrize(
        "status",
        [
            NotificationStatus.PENDING,
            NotificationStatus.SENT,
            NotificationStatus.DELIVERED,
            NotificationStatus.RETRIED,
        ],
    )
    async def test_non_failed_record_is_rejected_unchanged(
        self, status, controller, recording_queue, make_notification, session_factory
    ) -> None:
        notification = await make_notification(status=status)

        with pytest.raises(InvalidNotificationStateError) as exc_info:
            await controller.retry(notification.id)

        assert exc_info.value.status is status
        assert exc_info.value.status_code == 409
        stored = await reload(session_factory, notification.id)
        assert stored.status is status
        assert recording_queue.jobs == []

    async def test_second_retry_is_rejected(self, controller, make_notification) -> None:
        notification = await make_notification(status=NotificationStatus.FAILED)

        await controller.retry(notification.id)

        with pytest.raises(InvalidNotificationStateError):
            await controller.retry(notification.id)
