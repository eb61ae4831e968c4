"""Base protocol for channel senders."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from uuid import UUID

    from notify_service.features.notifications.enums import NotificationChannel


class ChannelSender(Protocol):
    """Protocol for channel-specific senders.

    Each channel (email, sms, in_app) implements this protocol so the worker
    can deliver a job without knowing the provider behind it.

    ``send`` returns False for expected failures (bad recipient, provider
    error, missing configuration). Raised exceptions are reserved for
    programming faults; the worker treats both as a failed attempt.
    """

    channel: NotificationChannel

    async def send(
        self,
        notification_id: UUID,
        recipient: str,
        subject: str | None,
        body: str,
    ) -> bool:
        """Deliver one rendered notification.

        Args:
            notification_id: Record the delivery belongs to (for logging)
            recipient: Channel address (email, phone number or user id)
            subject: Rendered subject, None for channels without one
            body: Rendered body

        Returns:
            True when the provider accepted the message
        """
        ...
