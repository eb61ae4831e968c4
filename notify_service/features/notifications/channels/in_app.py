"""In-app channel sender.

The notification record itself is the inbox entry; the user's client reads
SENT in-app records through the users API. Delivery therefore always succeeds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.features.notifications.enums import NotificationChannel
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID


class InAppSender:
    channel = NotificationChannel.IN_APP

    def __init__(self) -> None:
        self._logger = get_logger(__name__, channel=self.channel.value)

    async def send(
        self,
        notification_id: UUID,
        recipient: str,
        subject: str | None,
        body: str,
    ) -> bool:
        self._logger.info(
            f"In-app notification {notification_id} available to user {recipient}",
            extra={"notification_id": str(notification_id), "user_id": recipient},
        )
        return True
