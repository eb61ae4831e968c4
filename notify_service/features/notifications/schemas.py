"""Pydantic schemas for the notifications feature (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from notify_service.core.schemas import CustomBase
from notify_service.features.notifications.enums import NotificationStatus


class NotificationResponse(CustomBase):
    """A notification record as returned by the admin and inbox APIs."""

    id: UUID
    user_id: str
    event_type: str
    correlation_id: str | None = None
    channel: str
    recipient: str
    status: NotificationStatus
    subject: str | None = None
    body: str
    sent_at: datetime | None = None
    failed_at: datetime | None = None
    error_details: str | None = None
    retries_count: int = 0
    created_at: datetime
    updated_at: datetime


class MessageResponse(CustomBase):
    message: str = Field(..., examples=["Notification retry initiated."])


class ReconcileRequest(CustomBase):
    """Optional overrides for one reconciliation sweep."""

    older_than_seconds: int | None = Field(default=None, ge=0)
    limit: int | None = Field(default=None, ge=1, le=10_000)


class ReconcileResponse(CustomBase):
    scanned: int
    requeued: list[UUID] = Field(default_factory=list)
    failed: list[UUID] = Field(default_factory=list)
