"""Event dispatch pipeline.

Turns one incoming event into zero or more PENDING notification records and
their delivery jobs:

    mapping lookup → preference filter → per channel:
        route recipient + template → render → persist (commit) → enqueue

Channels are independent. A failure while preparing, persisting or enqueueing
one channel is logged and the remaining channels still run. A failed mapping or
preference lookup is logged and ends the dispatch. Nothing is raised to the
caller, which has already answered "accepted".
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import UUID

from notify_service.features.notifications.channels import get_route
from notify_service.features.notifications.metrics import (
    channels_skipped_total,
    events_received_total,
    notifications_created_total,
)
from notify_service.features.notifications.preferences import effective_channels
from notify_service.features.notifications.queue import (
    NotificationJob,
    NotificationQueue,
    get_notification_queue,
)
from notify_service.features.notifications.repository import (
    EventMappingRepository,
    NotificationRepository,
    UserPreferenceRepository,
    get_event_mapping_repository,
    get_notification_repository,
    get_user_preference_repository,
)
from notify_service.features.notifications.templates import (
    TemplateRenderer,
    TemplateRenderError,
    get_template_renderer,
)
from notify_service.infra.database import get_async_session
from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from notify_service.features.notifications.repository import ResolvedMapping

SessionFactory = Callable[[], "AbstractAsyncContextManager[AsyncSession]"]

# Payload keys tried in order for the record's correlation id
CORRELATION_KEYS = ("correlationId", "orderId", "invoiceId")


def extract_correlation_id(payload: Mapping[str, Any]) -> str | None:
    for key in CORRELATION_KEYS:
        value = payload.get(key)
        if value is not None and value != "":
            return str(value)
    return None


@dataclass(slots=True)
class DispatchResult:
    """What one dispatch produced. Informational; callers may ignore it."""

    event_type: str
    created: list[UUID] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    orphaned: list[UUID] = field(default_factory=list)


class DispatchPipeline:
    """Orchestrates mapping resolution, filtering, rendering, persistence and enqueue."""

    def __init__(
        self,
        queue: NotificationQueue | None = None,
        session_factory: SessionFactory | None = None,
        *,
        notifications: NotificationRepository | None = None,
        mappings: EventMappingRepository | None = None,
        preferences: UserPreferenceRepository | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self._queue = queue
        self._session_factory = session_factory or get_async_session
        self._notifications = notifications or get_notification_repository()
        self._mappings = mappings or get_event_mapping_repository()
        self._preferences = preferences or get_user_preference_repository()
        self._renderer = renderer or get_template_renderer()
        self._logger = get_logger(__name__)

    @property
    def queue(self) -> NotificationQueue:
        if self._queue is None:
            self._queue = get_notification_queue()
        return self._queue

    async def dispatch(self, event_type: str, payload: Mapping[str, Any]) -> DispatchResult:
        """Process one event. Failures are logged, never raised."""
        result = DispatchResult(event_type=event_type)
        log = self._logger.bind(event_type=event_type)

        user_id = payload.get("userId")
        if user_id is None or user_id == "":
            log.warning(f"Event {event_type} has no userId; dropping")
            events_received_total.labels(event_type=event_type, outcome="no_user").inc()
            return result
        user_id = str(user_id)
        log = log.bind(user_id=user_id)

        try:
            async with self._session_factory() as session:
                mapping = await self._mappings.resolve(session, event_type)
                if mapping is None:
                    log.info(f"No mapping found for event type {event_type}; nothing to notify")
                    events_received_total.labels(event_type=event_type, outcome="unmapped").inc()
                    return result

                document = await self._preferences.get_document(session, user_id)
        except Exception as exc:
            log.exception(f"Could not resolve {event_type} for user {user_id}: {exc}")
            events_received_total.labels(event_type=event_type, outcome="error").inc()
            return result

        channels = effective_channels(mapping.default_channels, document, event_type)
        for channel in mapping.default_channels:
            if channel not in channels and channel not in result.skipped:
                result.skipped[channel] = "opted_out"
                channels_skipped_total.labels(channel=channel, reason="opted_out").inc()
                log.info(f"User {user_id} opted out of {channel} for {event_type}")

        events_received_total.labels(event_type=event_type, outcome="dispatched").inc()
        correlation_id = extract_correlation_id(payload)

        for channel in channels:
            await self._dispatch_channel(
                result,
                mapping=mapping,
                channel=channel,
                user_id=user_id,
                payload=payload,
                correlation_id=correlation_id,
            )

        log.info(
            f"Dispatched {event_type}: {len(result.created)} notification(s) created",
            extra={"created": len(result.created), "skipped": result.skipped},
        )
        return result

    def _skip(self, result: DispatchResult, channel: str, reason: str, message: str) -> None:
        result.skipped[channel] = reason
        channels_skipped_total.labels(channel=channel, reason=reason).inc()
        self._logger.warning(
            message,
            extra={"event_type": result.event_type, "channel": channel, "reason": reason},
        )

    async def _dispatch_channel(
        self,
        result: DispatchResult,
        *,
        mapping: ResolvedMapping,
        channel: str,
        user_id: str,
        payload: Mapping[str, Any],
        correlation_id: str | None,
    ) -> None:
        event_type = mapping.event_type

        route = get_route(channel)
        if route is None:
            self._skip(result, channel, "unknown_channel", f"No route for channel {channel}")
            return

        template = mapping.template_for(channel)
        if template is None:
            self._skip(
                result,
                channel,
                "no_template",
                f"No template configured for {event_type} on {channel}",
            )
            return

        recipient = route.recipient(user_id, payload)
        if recipient is None:
            self._skip(
                result,
                channel,
                "no_recipient",
                f"No recipient for {channel} ({route.recipient_source}) in {event_type} payload",
            )
            return

        try:
            subject, body = self._renderer.render_notification(template, payload)
        except TemplateRenderError as exc:
            self._skip(result, channel, "render_error", f"Could not render {exc.template_name}: {exc}")
            return

        try:
            async with self._session_factory() as session:
                notification = await self._notifications.create_notification(
                    session,
                    user_id=user_id,
                    event_type=event_type,
                    channel=route.channel,
                    recipient=recipient,
                    subject=subject,
                    body=body,
                    correlation_id=correlation_id,
                )
                await session.commit()
        except Exception as exc:
            result.skipped[channel] = "persist_error"
            self._logger.exception(
                f"Failed to persist {channel} notification for {event_type}: {exc}",
                extra={"event_type": event_type, "channel": channel, "user_id": user_id},
            )
            return

        result.created.append(notification.id)
        notifications_created_total.labels(event_type=event_type, channel=channel).inc()

        job = NotificationJob(
            notification_id=notification.id,
            channel=notification.channel,
            recipient=recipient,
            subject=subject,
            body=body,
            retries=notification.retries_count,
        )
        try:
            await self.queue.enqueue(job)
        except Exception as exc:
            # The record stays PENDING until the reconciliation sweep picks it up
            result.orphaned.append(notification.id)
            self._logger.exception(
                f"Failed to enqueue notification {notification.id}; record left PENDING: {exc}",
                extra={
                    "notification_id": str(notification.id),
                    "event_type": event_type,
                    "channel": channel,
                },
            )
            return

        self._logger.info(
            f"Notification {notification.id} queued for {channel}",
            extra={"notification_id": str(notification.id), "channel": channel},
        )


_pipeline: DispatchPipeline | None = None


def get_dispatch_pipeline() -> DispatchPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = DispatchPipeline()
    return _pipeline


async def dispatch(event_type: str, payload: Mapping[str, Any]) -> None:
    """Entry point for event ingestion: run the shared pipeline, discard the result."""
    await get_dispatch_pipeline().dispatch(event_type, payload)
