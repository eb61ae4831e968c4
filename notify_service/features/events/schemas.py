"""Schemas for event ingestion."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from notify_service.core.schemas import CustomBase


class ReceiveEventRequest(CustomBase):
    """An event published by another service."""

    event_type: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Type of the event",
        examples=["order.created"],
    )
    payload: dict[str, Any] = Field(
        ...,
        description="Event data; must carry userId, may carry email and phoneNumber",
        examples=[
            {
                "userId": "d7e9f8a0-b1c2-3d4e-5f6a-7b8c9d0e1f2a",
                "orderId": "ORD-001-XYZ",
                "userName": "Alice",
                "email": "alice@example.com",
                "phoneNumber": "+1234567890",
                "totalAmount": 99.99,
            }
        ],
    )


class EventAcceptedResponse(CustomBase):
    message: str = "Event received and processing initiated."
