"""Notification domain errors.

The two administrative errors subclass the HTTP application exceptions so the
API layer can surface them without translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.core.exceptions import ConflictException, NotFoundException

if TYPE_CHECKING:
    from uuid import UUID

    from notify_service.features.notifications.enums import NotificationStatus


class NotificationNotFoundError(NotFoundException):
    """No notification record exists for the requested id."""

    def __init__(self, notification_id: UUID | str) -> None:
        self.notification_id = str(notification_id)
        super().__init__(
            detail=f'Notification with ID "{notification_id}" not found.',
            type="notification-not-found",
            extra={"notification_id": self.notification_id},
        )


class InvalidNotificationStateError(ConflictException):
    """An administrative operation is not allowed in the record's current status."""

    def __init__(
        self,
        notification_id: UUID | str,
        status: NotificationStatus,
    ) -> None:
        self.notification_id = str(notification_id)
        self.status = status
        super().__init__(
            detail=(
                f"Notification {notification_id} is in {status.value} status; "
                "only FAILED notifications can be retried."
            ),
            type="invalid-notification-state",
            extra={"notification_id": self.notification_id, "status": status.value},
        )


class InvalidStatusTransitionError(Exception):
    """The store refused a status change that the state machine does not allow."""

    def __init__(
        self,
        notification_id: UUID | str,
        from_status: NotificationStatus,
        to_status: NotificationStatus,
    ) -> None:
        self.notification_id = str(notification_id)
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition for notification {notification_id}: "
            f"{from_status.value} -> {to_status.value}"
        )


class UnknownChannelError(Exception):
    """A channel key is not part of the enumerated channel set or has no sender."""

    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"No sender found for channel: {channel}")


class DeliveryError(Exception):
    """A channel sender reported failure; raised so the queue schedules a re-attempt."""

    def __init__(self, notification_id: UUID | str, channel: str, reason: str) -> None:
        self.notification_id = str(notification_id)
        self.channel = channel
        self.reason = reason
        super().__init__(reason)


__all__ = [
    "DeliveryError",
    "InvalidNotificationStateError",
    "InvalidStatusTransitionError",
    "NotificationNotFoundError",
    "UnknownChannelError",
]
