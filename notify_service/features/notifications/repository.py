"""Repositories for the notifications feature.

- NotificationRepository: the notification store (create, get, update_status, query)
- EventMappingRepository: event type -> default channels + templates
- NotificationTemplateRepository: template lookups
- UserPreferenceRepository: per-user preference documents

Repositories flush but never commit; the caller owns the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import and_, or_, select, update

from notify_service.core.database import BaseRepository
from notify_service.features.notifications.enums import (
    NotificationChannel,
    NotificationStatus,
    is_valid_transition,
)
from notify_service.features.notifications.exceptions import (
    InvalidStatusTransitionError,
    NotificationNotFoundError,
)
from notify_service.features.notifications.models import (
    EventNotificationMapping,
    Notification,
    NotificationTemplate,
    UserPreference,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(slots=True, frozen=True)
class NotificationFilters:
    """Optional filters for the admin notification listing."""

    status: NotificationStatus | None = None
    event_type: str | None = None
    channel: str | None = None
    user_id: str | None = None
    correlation_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    def conditions(self) -> list[Any]:
        conditions: list[Any] = []
        if self.status is not None:
            conditions.append(Notification.status == self.status)
        if self.event_type:
            conditions.append(Notification.event_type == self.event_type)
        if self.channel:
            conditions.append(Notification.channel == self.channel)
        if self.user_id:
            conditions.append(Notification.user_id == self.user_id)
        if self.correlation_id:
            conditions.append(Notification.correlation_id == self.correlation_id)
        if self.start_date is not None:
            conditions.append(Notification.created_at >= self.start_date)
        if self.end_date is not None:
            conditions.append(Notification.created_at <= self.end_date)
        return conditions


@dataclass(slots=True, frozen=True)
class ResolvedMapping:
    """An event mapping with its per-channel templates loaded."""

    event_type: str
    default_channels: list[str]
    templates: dict[str, NotificationTemplate] = field(default_factory=dict)
    rules: dict[str, Any] = field(default_factory=dict)

    def template_for(self, channel: str) -> NotificationTemplate | None:
        return self.templates.get(channel)


class NotificationRepository(BaseRepository[Notification]):
    """Notification store.

    The only component allowed to mutate notification records. Status changes
    go through ``update_status`` which locks the row, checks the transition
    against the state machine and applies the timestamp/counter side effects.
    """

    def __init__(self) -> None:
        super().__init__(Notification)

    async def create_notification(
        self,
        session: AsyncSession,
        *,
        user_id: str,
        event_type: str,
        channel: NotificationChannel | str,
        recipient: str,
        body: str,
        subject: str | None = None,
        correlation_id: str | None = None,
    ) -> Notification:
        """Persist a new PENDING notification."""
        notification = Notification(
            user_id=user_id,
            event_type=event_type,
            correlation_id=correlation_id,
            channel=NotificationChannel(channel).value,
            recipient=recipient,
            subject=subject,
            body=body,
            status=NotificationStatus.PENDING,
            retries_count=0,
        )
        return await self.create(session, notification)

    async def get_for_update(
        self, session: AsyncSession, notification_id: UUID
    ) -> Notification | None:
        """Load a record with a row lock so concurrent status writers serialize."""
        stmt = (
            select(Notification)
            .where(Notification.id == notification_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status(
        self,
        session: AsyncSession,
        notification_id: UUID,
        status: NotificationStatus,
        error_details: str | None = None,
    ) -> Notification:
        """Move a record to ``status`` and apply the transition's side effects.

        - SENT/DELIVERED: set sent_at, clear failed_at and error_details
        - FAILED: set failed_at and error_details, increment retries_count by one
        - RETRIED: record ``error_details`` as the retry note

        Any delivery claim on the record is released.

        Raises:
            NotificationNotFoundError: If the record does not exist
            InvalidStatusTransitionError: If the state machine forbids the change
        """
        notification = await self.get_for_update(session, notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)

        current = notification.status
        if not is_valid_transition(current, status):
            raise InvalidStatusTransitionError(notification_id, current, status)

        now = datetime.now(UTC)
        if status in NotificationStatus.delivered_states():
            notification.sent_at = now
            notification.failed_at = None
            notification.error_details = None
        elif status is NotificationStatus.FAILED:
            notification.failed_at = now
            notification.error_details = error_details or "Delivery failed"
            notification.retries_count = (notification.retries_count or 0) + 1
        elif status is NotificationStatus.RETRIED:
            notification.error_details = error_details
        notification.status = status
        notification.claimed_until = None
        notification.updated_at = now

        await session.flush()

        self._logger.debug(
            lambda: f"db.update_status: Notification({notification_id}) {current.value} -> {status.value}, retries={notification.retries_count}"
        )
        return notification

    async def claim(
        self,
        session: AsyncSession,
        notification_id: UUID,
        *,
        lease_seconds: float,
        now: datetime | None = None,
    ) -> bool:
        """Take the record for one delivery attempt.

        A single conditional UPDATE: succeeds only when the record is not yet
        delivered and no other attempt holds an unexpired claim. The claim is
        released by the next ``update_status``.

        Returns:
            True if this caller now holds the record
        """
        now = now or datetime.now(UTC)
        stmt = (
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.status.not_in(list(NotificationStatus.delivered_states())),
                or_(Notification.claimed_until.is_(None), Notification.claimed_until < now),
            )
            .values(claimed_until=now + timedelta(seconds=lease_seconds))
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        claimed = result.rowcount == 1

        self._logger.debug(
            lambda: f"db.claim: Notification({notification_id}) -> {'claimed' if claimed else 'unavailable'}"
        )
        return claimed

    async def query(
        self,
        session: AsyncSession,
        filters: NotificationFilters | None = None,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> Sequence[Notification]:
        """Filtered listing, newest first."""
        stmt = select(Notification)
        conditions = filters.conditions() if filters else []
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = (
            stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._logger.debug(
            lambda: f"db.query: Notification({filters}, limit={limit}, offset={offset}) -> {len(items)} items"
        )
        return items

    async def list_in_app_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        limit: int = 50,
    ) -> Sequence[Notification]:
        """A user's delivered in-app notifications, newest first."""
        stmt = (
            select(Notification)
            .where(
                and_(
                    Notification.user_id == user_id,
                    Notification.channel == NotificationChannel.IN_APP.value,
                    Notification.status == NotificationStatus.SENT,
                )
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def list_stale(
        self,
        session: AsyncSession,
        *,
        older_than: datetime,
        limit: int = 100,
    ) -> Sequence[Notification]:
        """Records still awaiting delivery whose last update is before ``older_than``."""
        stmt = (
            select(Notification)
            .where(
                and_(
                    Notification.status.in_(list(NotificationStatus.awaiting_delivery_states())),
                    Notification.updated_at < older_than,
                )
            )
            .order_by(Notification.updated_at.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._logger.debug(
            lambda: f"db.list_stale: Notification(older_than={older_than.isoformat()}) -> {len(items)} items"
        )
        return items


class NotificationTemplateRepository(BaseRepository[NotificationTemplate]):
    """Repository for notification templates."""

    def __init__(self) -> None:
        super().__init__(NotificationTemplate)

    async def get_many(
        self, session: AsyncSession, template_ids: Sequence[UUID]
    ) -> dict[UUID, NotificationTemplate]:
        if not template_ids:
            return {}
        stmt = select(NotificationTemplate).where(NotificationTemplate.id.in_(template_ids))
        result = await session.execute(stmt)
        return {template.id: template for template in result.scalars().all()}


class EventMappingRepository(BaseRepository[EventNotificationMapping]):
    """Mapping resolver: exact event type lookups, read-mostly."""

    def __init__(self, template_repository: NotificationTemplateRepository | None = None) -> None:
        super().__init__(EventNotificationMapping)
        self._templates = template_repository or get_notification_template_repository()

    async def get_by_event_type(
        self, session: AsyncSession, event_type: str
    ) -> EventNotificationMapping | None:
        return await self.get_by(session, EventNotificationMapping.event_type, event_type)

    async def resolve(self, session: AsyncSession, event_type: str) -> ResolvedMapping | None:
        """Resolve an event type to its default channels and per-channel templates.

        Returns None for unmapped event types. Template references that are
        malformed or point at missing templates are left out of ``templates``.
        """
        mapping = await self.get_by_event_type(session, event_type)
        if mapping is None:
            return None

        refs: dict[str, UUID] = {}
        for channel, raw_id in (mapping.template_refs or {}).items():
            try:
                refs[channel] = UUID(str(raw_id))
            except ValueError:
                self._logger.warning(
                    "Ignoring malformed template reference",
                    extra={"event_type": event_type, "channel": channel, "template_id": raw_id},
                )

        loaded = await self._templates.get_many(session, list(refs.values()))
        templates = {
            channel: loaded[template_id]
            for channel, template_id in refs.items()
            if template_id in loaded
        }

        self._logger.debug(
            lambda: f"db.resolve: {event_type} -> channels={mapping.default_channels}, templates={sorted(templates)}"
        )
        return ResolvedMapping(
            event_type=mapping.event_type,
            default_channels=list(mapping.default_channels or []),
            templates=templates,
            rules=dict(mapping.rules or {}),
        )


class UserPreferenceRepository(BaseRepository[UserPreference]):
    """Repository for user preference documents."""

    def __init__(self) -> None:
        super().__init__(UserPreference)

    async def get_for_user(self, session: AsyncSession, user_id: str) -> UserPreference | None:
        return await self.get_by(session, UserPreference.user_id, user_id)

    async def get_document(self, session: AsyncSession, user_id: str) -> dict[str, Any] | None:
        """Return the user's preference document, or None when none was saved."""
        preference = await self.get_for_user(session, user_id)
        return dict(preference.preferences) if preference is not None else None

    async def save_document(
        self, session: AsyncSession, user_id: str, document: dict[str, Any]
    ) -> UserPreference:
        """Create or replace a user's preference document."""
        preference = await self.get_for_user(session, user_id)
        if preference is None:
            return await self.create(
                session, UserPreference(user_id=user_id, preferences=document)
            )
        preference.preferences = document
        await session.flush()
        return preference


# Singleton instances
_notification_repository: NotificationRepository | None = None
_template_repository: NotificationTemplateRepository | None = None
_mapping_repository: EventMappingRepository | None = None
_preference_repository: UserPreferenceRepository | None = None


def get_notification_repository() -> NotificationRepository:
    global _notification_repository
    if _notification_repository is None:
        _notification_repository = NotificationRepository()
    return _notification_repository


def get_notification_template_repository() -> NotificationTemplateRepository:
    global _template_repository
    if _template_repository is None:
        _template_repository = NotificationTemplateRepository()
    return _template_repository


def get_event_mapping_repository() -> EventMappingRepository:
    global _mapping_repository
    if _mapping_repository is None:
        _mapping_repository = EventMappingRepository()
    return _mapping_repository


def get_user_preference_repository() -> UserPreferenceRepository:
    global _preference_repository
    if _preference_repository is None:
        _preference_repository = UserPreferenceRepository()
    return _preference_repository
