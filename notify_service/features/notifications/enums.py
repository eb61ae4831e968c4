"""Notification enumerations and the record status state machine.

State Machine:
    PENDING ─┬→ SENT ──→ DELIVERED
             │    ↑
             └→ FAILED ──→ RETRIED ─┬→ SENT
                 ↑  │  ↺            └→ FAILED
                 │  └→ SENT
                 └── queue re-attempts of the same job

Channels:
    email, sms, in_app. Adding a channel means adding an enum member, a
    recipient route and a sender.
"""

from __future__ import annotations

import enum


class NotificationStatus(str, enum.Enum):
    """Lifecycle status of a notification record.

    States:
        PENDING: Created and handed to the queue, no delivery outcome yet
        SENT: Channel sender accepted the message
        FAILED: Last delivery attempt failed
        DELIVERED: Delivery receipt confirmed (reserved for receipt-capable channels)
        RETRIED: Administrator re-armed a FAILED record; a fresh job is queued

    Transition Rules:
        - PENDING → SENT | FAILED: first delivery outcome
        - FAILED → SENT | FAILED: queue-level re-attempt of the same job
        - FAILED → RETRIED: administrative retry only
        - RETRIED → SENT | FAILED: outcome of the re-armed job
        - SENT → DELIVERED: delivery receipt
    """

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    DELIVERED = "DELIVERED"
    RETRIED = "RETRIED"

    @classmethod
    def awaiting_delivery_states(cls) -> set[NotificationStatus]:
        """States in which a queued job is expected to produce an outcome."""
        return {cls.PENDING, cls.RETRIED}

    @classmethod
    def delivered_states(cls) -> set[NotificationStatus]:
        """States in which the message has already left the service."""
        return {cls.SENT, cls.DELIVERED}

    def is_delivered(self) -> bool:
        return self in self.delivered_states()


class NotificationChannel(str, enum.Enum):
    """Delivery medium of a notification."""

    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"

    @classmethod
    def parse(cls, value: str) -> NotificationChannel | None:
        """Return the channel for ``value`` or None when it is not a known channel."""
        try:
            return cls(value)
        except ValueError:
            return None


# Valid state transitions (from_state -> set of valid to_states)
VALID_TRANSITIONS: dict[NotificationStatus, set[NotificationStatus]] = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {
        NotificationStatus.RETRIED,
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
    },
    NotificationStatus.RETRIED: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: {NotificationStatus.DELIVERED},
    NotificationStatus.DELIVERED: set(),  # Terminal state
}


def is_valid_transition(
    from_status: NotificationStatus, to_status: NotificationStatus
) -> bool:
    """Check if a status transition is valid.

    Args:
        from_status: Current record status
        to_status: Desired new status

    Returns:
        True if the transition is allowed, False otherwise
    """
    return to_status in VALID_TRANSITIONS.get(from_status, set())


__all__ = [
    "VALID_TRANSITIONS",
    "NotificationChannel",
    "NotificationStatus",
    "is_valid_transition",
]
