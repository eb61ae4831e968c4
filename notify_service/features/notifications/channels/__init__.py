"""Notification delivery channels (email, sms, in_app)."""

from .base import ChannelSender
from .email import EmailSender
from .in_app import InAppSender
from .registry import (
    ChannelRegistry,
    build_default_registry,
    get_channel_registry,
    reset_channel_registry,
)
from .routing import CHANNEL_ROUTES, ChannelRoute, get_route
from .sms import SmsSender

__all__ = [
    "CHANNEL_ROUTES",
    "ChannelRegistry",
    "ChannelRoute",
    "ChannelSender",
    "EmailSender",
    "InAppSender",
    "SmsSender",
    "build_default_registry",
    "get_channel_registry",
    "get_route",
    "reset_channel_registry",
]
