"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from notify_service.core.database import UUIDv7TimestampedBase
from notify_service.features.notifications.enums import NotificationStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.sql.type_api import TypeEngine


# JSONB in PostgreSQL, plain JSON in SQLite
JSONDocument = JSONB().with_variant(JSON(), "sqlite")


class StringArray(TypeDecorator):
    """Cross-database type for string arrays.

    Uses native ARRAY in PostgreSQL, JSON text in SQLite/other databases.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(String(50)))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> Any:
        if value is None:
            return value
        if dialect.name == "postgresql":
            return list(value)
        return json.dumps(list(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> list[str]:
        if value is None:
            return []
        if dialect.name == "postgresql":
            return list(value)
        return json.loads(value) if value else []


class NotificationTemplate(UUIDv7TimestampedBase):
    """Subject/body template for one (event type, channel) pair.

    Templates use ``{{ dotted.path }}`` interpolation against the event payload.
    ``subject_template`` is optional because SMS and in-app messages have no subject.
    """

    __tablename__ = "notification_templates"

    event_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Event type this template renders (e.g., order.created)",
    )
    channel: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Delivery channel: email, sms, in_app",
    )
    subject_template: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Subject template (channels with a subject concept only)",
    )
    body_template: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Body template",
    )

    __table_args__ = (
        UniqueConstraint("event_type", "channel", name="uq_notification_templates_event_channel"),
    )

    def __repr__(self) -> str:
        return f"<NotificationTemplate(event_type={self.event_type!r}, channel={self.channel!r})>"


class EventNotificationMapping(UUIDv7TimestampedBase):
    """Static association of an event type to its default channels and templates.

    ``template_refs`` maps a channel key to the id of its NotificationTemplate.
    ``rules`` is a free-form bag reserved for prioritization/debounce settings and
    is not interpreted by the dispatch pipeline.
    """

    __tablename__ = "event_notification_mappings"

    event_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Exact event type key (e.g., order.created)",
    )
    default_channels: Mapped[list[str]] = mapped_column(
        StringArray(),
        nullable=False,
        default=list,
        comment="Channels notified when the user has no opt-out",
    )
    template_refs: Mapped[dict[str, str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Channel -> notification template id",
    )
    rules: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Reserved rule bag (priority, debounce); not interpreted",
    )

    def __repr__(self) -> str:
        return f"<EventNotificationMapping(event_type={self.event_type!r}, channels={self.default_channels!r})>"


class UserPreference(UUIDv7TimestampedBase):
    """Per-user opt-out document.

    Shape: ``{"global": {channel: bool}, "notificationTypes": {event_type: {channel: bool}}}``.
    Only an explicit ``false`` disables a channel; missing keys mean enabled.
    """

    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="User the preferences belong to",
    )
    preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=lambda: {"global": {}, "notificationTypes": {}},
        comment="Global and per-event-type channel switches",
    )

    def __repr__(self) -> str:
        return f"<UserPreference(user_id={self.user_id!r})>"


class Notification(UUIDv7TimestampedBase):
    """One notification to one user on one channel, and its delivery lifecycle.

    The body is rendered before the record is created, so it is always present.
    The channel never changes; retries resend on the same channel to the stored
    recipient.
    """

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Addressee of the notification",
    )
    event_type: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Originating event type",
    )
    correlation_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Id from the originating service (correlationId, orderId or invoiceId)",
    )
    channel: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Delivery channel",
    )
    recipient: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Resolved address: email, phone number or user id",
    )
    status: Mapped[NotificationStatus] = mapped_column(
        Enum(
            NotificationStatus,
            name="notification_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=NotificationStatus.PENDING,
        index=True,
        comment="PENDING, SENT, FAILED, DELIVERED or RETRIED",
    )
    subject: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Rendered subject",
    )
    body: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Rendered body",
    )
    sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the channel accepted the message",
    )
    failed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the last failure was recorded",
    )
    error_details: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Reason for the last failure or admin retry note",
    )
    retries_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of recorded FAILED transitions (never decreases)",
    )
    claimed_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Lease held by the worker currently sending this record",
    )

    __table_args__ = (
        Index("ix_notifications_user_channel_status", "user_id", "channel", "status"),
        Index("ix_notifications_status_updated", "status", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, channel={self.channel!r}, "
            f"status={self.status.value if self.status else None})>"
        )
