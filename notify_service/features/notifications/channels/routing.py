"""Per-channel recipient routing.

Each channel has one static entry describing where its recipient address
comes from. Adding a channel means adding an entry here, not a branch in the
dispatch pipeline.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from notify_service.features.notifications.enums import NotificationChannel

RecipientExtractor = Callable[[str, Mapping[str, Any]], Any]


@dataclass(frozen=True, slots=True)
class ChannelRoute:
    """Recipient source for one channel.

    Attributes:
        channel: Channel the route applies to
        recipient_source: Human-readable origin of the address (for logs)
        extract: ``(user_id, payload) -> raw recipient``
    """

    channel: NotificationChannel
    recipient_source: str
    extract: RecipientExtractor

    def recipient(self, user_id: str, payload: Mapping[str, Any]) -> str | None:
        """Resolve the address, or None when the payload does not carry one."""
        value = self.extract(user_id, payload)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


CHANNEL_ROUTES: dict[NotificationChannel, ChannelRoute] = {
    NotificationChannel.EMAIL: ChannelRoute(
        channel=NotificationChannel.EMAIL,
        recipient_source="payload.email",
        extract=lambda _user_id, payload: payload.get("email"),
    ),
    NotificationChannel.SMS: ChannelRoute(
        channel=NotificationChannel.SMS,
        recipient_source="payload.phoneNumber",
        extract=lambda _user_id, payload: payload.get("phoneNumber"),
    ),
    NotificationChannel.IN_APP: ChannelRoute(
        channel=NotificationChannel.IN_APP,
        recipient_source="userId",
        extract=lambda user_id, _payload: user_id,
    ),
}


def get_route(channel: str | NotificationChannel) -> ChannelRoute | None:
    """Route for ``channel``, or None for keys outside the channel set."""
    parsed = NotificationChannel.parse(channel) if isinstance(channel, str) else channel
    if parsed is None:
        return None
    return CHANNEL_ROUTES.get(parsed)
