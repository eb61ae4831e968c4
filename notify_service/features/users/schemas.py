"""Schemas for user notification preferences."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from notify_service.core.schemas import CustomBase
from notify_service.features.notifications.enums import NotificationChannel


def _check_channels(switches: dict[str, bool]) -> dict[str, bool]:
    unknown = sorted(key for key in switches if NotificationChannel.parse(key) is None)
    if unknown:
        msg = f"Unknown channel(s): {', '.join(unknown)}"
        raise ValueError(msg)
    return switches


class UpdateUserPreferencesRequest(CustomBase):
    """Partial update; each supplied section is merged into the stored one."""

    global_: dict[str, bool] | None = Field(
        default=None,
        alias="global",
        description="Channel switches applied to every event type",
        examples=[{"email": True, "sms": False, "in_app": True}],
    )
    notification_types: dict[str, dict[str, bool]] | None = Field(
        default=None,
        description="Per event type channel switches",
        examples=[{"order.shipped": {"email": True, "sms": False}}],
    )

    @field_validator("global_")
    @classmethod
    def validate_global(cls, value: dict[str, bool] | None) -> dict[str, bool] | None:
        return _check_channels(value) if value is not None else None

    @field_validator("notification_types")
    @classmethod
    def validate_notification_types(
        cls, value: dict[str, dict[str, bool]] | None
    ) -> dict[str, dict[str, bool]] | None:
        if value is None:
            return None
        return {event_type: _check_channels(switches) for event_type, switches in value.items()}


class UserPreferencesResponse(CustomBase):
    user_id: str
    preferences: dict[str, Any]
