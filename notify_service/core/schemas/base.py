"""Base schema classes for API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CustomBase(BaseModel):
    """Base model with common configuration for all schemas.

    Fields are declared in snake_case and exposed in camelCase, which is the
    wire format event producers and admin clients use (``eventType``,
    ``userId``, ``retriesCount``).

    Example:
        class NotificationResponse(CustomBase):
            event_type: str       # serialized as "eventType"
            retries_count: int    # serialized as "retriesCount"
    """

    model_config = ConfigDict(
        # Allow creation from ORM models (SQLAlchemy)
        from_attributes=True,
        # Use enum values instead of names
        use_enum_values=True,
        # Accept both "event_type" and "eventType" on input
        alias_generator=to_camel,
        populate_by_name=True,
        # Silently drop unexpected data
        extra="ignore",
    )
