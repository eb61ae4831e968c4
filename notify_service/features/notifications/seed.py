"""Default event mappings and templates.

Inserted at startup when ``APP_SEED_ON_STARTUP`` is set and no mapping exists
yet, so a fresh deployment can dispatch the stock events immediately.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from notify_service.features.notifications.models import (
    EventNotificationMapping,
    NotificationTemplate,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "event_type": "order.created",
        "channel": "email",
        "subject_template": "Your Order {{ orderId }} is Confirmed!",
        "body_template": (
            "Hi {{ userName }}, your order {{ orderId }} has been successfully placed. "
            "Total: ${{ totalAmount }}."
        ),
    },
    {
        "event_type": "order.created",
        "channel": "in_app",
        "body_template": "Your order {{ orderId }} for ${{ totalAmount }} is confirmed.",
    },
    {
        "event_type": "invoice.paid",
        "channel": "sms",
        "body_template": "Invoice {{ invoiceId }} for ${{ amount }} paid. Thanks!",
    },
    {
        "event_type": "invoice.paid",
        "channel": "in_app",
        "body_template": "Your invoice {{ invoiceId }} has been paid successfully.",
    },
    {
        "event_type": "password.reset_request",
        "channel": "email",
        "subject_template": "Password Reset Request",
        "body_template": (
            "Hello {{ userName }}, you requested a password reset. Click here: {{ resetLink }}"
        ),
    },
]

DEFAULT_MAPPINGS: dict[str, list[str]] = {
    "order.created": ["email", "in_app"],
    "invoice.paid": ["sms", "in_app"],
    "password.reset_request": ["email"],
}


async def seed_defaults(session: AsyncSession) -> bool:
    """Insert the default templates and mappings if no mapping exists.

    Returns:
        True when data was inserted
    """
    existing = await session.scalar(select(func.count()).select_from(EventNotificationMapping))
    if existing:
        logger.debug("Event mappings already present; skipping seed", extra={"count": existing})
        return False

    templates = [NotificationTemplate(**data) for data in DEFAULT_TEMPLATES]
    session.add_all(templates)
    await session.flush()

    by_key = {(t.event_type, t.channel): t for t in templates}
    for event_type, channels in DEFAULT_MAPPINGS.items():
        session.add(
            EventNotificationMapping(
                event_type=event_type,
                default_channels=channels,
                template_refs={
                    channel: str(by_key[(event_type, channel)].id) for channel in channels
                },
                rules={},
            )
        )
    await session.commit()

    logger.info(
        "Seeded default notification templates and event mappings",
        extra={"templates": len(templates), "mappings": len(DEFAULT_MAPPINGS)},
    )
    return True
