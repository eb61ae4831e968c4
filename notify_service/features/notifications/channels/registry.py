"""Channel sender registry.

The registry is keyed by the ``NotificationChannel`` enum and built once at
startup. Unknown channel keys are rejected when a sender is registered, so the
only lookup miss left at dispatch time is a known channel with no sender.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from notify_service.features.notifications.enums import NotificationChannel
from notify_service.features.notifications.exceptions import UnknownChannelError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from notify_service.features.notifications.channels.base import ChannelSender


class ChannelRegistry:
    """Capability map: channel -> sender."""

    def __init__(self) -> None:
        self._senders: dict[NotificationChannel, ChannelSender] = {}

    def register(self, channel: str | NotificationChannel, sender: ChannelSender) -> None:
        """Register ``sender`` for ``channel``.

        Raises:
            UnknownChannelError: If ``channel`` is not a member of NotificationChannel
        """
        key = NotificationChannel.parse(channel) if isinstance(channel, str) else channel
        if key is None:
            raise UnknownChannelError(str(channel))
        self._senders[key] = sender

    def get(self, channel: str | NotificationChannel) -> ChannelSender | None:
        key = NotificationChannel.parse(channel) if isinstance(channel, str) else channel
        if key is None:
            return None
        return self._senders.get(key)

    def channels(self) -> list[NotificationChannel]:
        return list(self._senders)

    def __contains__(self, channel: object) -> bool:
        if isinstance(channel, str):
            return self.get(channel) is not None
        return False

    def __iter__(self) -> Iterator[NotificationChannel]:
        return iter(self._senders)

    def __len__(self) -> int:
        return len(self._senders)


def build_default_registry() -> ChannelRegistry:
    """Registry with the production sender for every channel."""
    from notify_service.features.notifications.channels.email import EmailSender
    from notify_service.features.notifications.channels.in_app import InAppSender
    from notify_service.features.notifications.channels.sms import SmsSender

    registry = ChannelRegistry()
    for sender in (EmailSender(), SmsSender(), InAppSender()):
        registry.register(sender.channel, sender)
    return registry


_registry: ChannelRegistry | None = None


def get_channel_registry() -> ChannelRegistry:
    """Get the process-wide channel registry, building it on first use."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry


def reset_channel_registry() -> None:
    global _registry
    _registry = None
