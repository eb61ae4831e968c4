"""User preference and in-app inbox operations."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from notify_service.core.settings import get_notification_settings
from notify_service.features.notifications.preferences import (
    empty_preferences,
    merge_preferences,
)
from notify_service.features.notifications.repository import (
    NotificationRepository,
    UserPreferenceRepository,
    get_notification_repository,
    get_user_preference_repository,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from notify_service.features.notifications.models import Notification

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        preferences: UserPreferenceRepository | None = None,
        notifications: NotificationRepository | None = None,
    ) -> None:
        self._preferences = preferences or get_user_preference_repository()
        self._notifications = notifications or get_notification_repository()

    async def get_preferences(self, session: AsyncSession, user_id: str) -> dict[str, Any]:
        """Return the user's document, creating an empty one on first access."""
        document = await self._preferences.get_document(session, user_id)
        if document is None:
            document = empty_preferences()
            await self._preferences.save_document(session, user_id, document)
            await session.commit()
            logger.info(
                f"Created empty preferences for user {user_id}",
                extra={"user_id": user_id},
            )
        return document

    async def update_preferences(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        global_update: Mapping[str, Any] | None = None,
        event_types_update: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        current = await self._preferences.get_document(session, user_id)
        document = merge_preferences(current, global_update, event_types_update)
        await self._preferences.save_document(session, user_id, document)
        await session.commit()
        logger.info(
            f"Updated preferences for user {user_id}",
            extra={
                "user_id": user_id,
                "global_keys": sorted(global_update or {}),
                "event_types": sorted(event_types_update or {}),
            },
        )
        return document

    async def list_in_app(self, session: AsyncSession, user_id: str) -> Sequence[Notification]:
        limit = get_notification_settings().in_app_inbox_limit
        return await self._notifications.list_in_app_for_user(session, user_id, limit=limit)


_service: UserService | None = None


def get_user_service() -> UserService:
    global _service
    if _service is None:
        _service = UserService()
    return _service
