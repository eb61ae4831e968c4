"""User preference and inbox API.

- GET /users/{user_id}/preferences - Current document (created empty if missing)
- PUT /users/{user_id}/preferences - Merge global / per event type switches
- GET /users/{user_id}/notifications/in-app - Delivered in-app notifications
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from notify_service.features.notifications.dependencies import SessionDep
from notify_service.features.notifications.schemas import NotificationResponse
from notify_service.features.users.schemas import (
    UpdateUserPreferencesRequest,
    UserPreferencesResponse,
)
from notify_service.features.users.service import UserService, get_user_service

router = APIRouter(prefix="/users", tags=["users"])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]
UserIdPath = Annotated[str, Path(min_length=1, max_length=255)]


@router.get(
    "/{user_id}/preferences",
    response_model=UserPreferencesResponse,
    summary="Get notification preferences",
)
async def get_preferences(
    user_id: UserIdPath,
    session: SessionDep,
    service: UserServiceDep,
) -> UserPreferencesResponse:
    document = await service.get_preferences(session, user_id)
    return UserPreferencesResponse(user_id=user_id, preferences=document)


@router.put(
    "/{user_id}/preferences",
    response_model=UserPreferencesResponse,
    summary="Update notification preferences",
    description="""
Merge the supplied sections into the stored document. Keys inside `global`
are merged one by one; each event type under `notificationTypes` replaces
that event type's switches. Only an explicit `false` disables a channel.
""",
)
async def update_preferences(
    user_id: UserIdPath,
    payload: UpdateUserPreferencesRequest,
    session: SessionDep,
    service: UserServiceDep,
) -> UserPreferencesResponse:
    document = await service.update_preferences(
        session,
        user_id,
        global_update=payload.global_,
        event_types_update=payload.notification_types,
    )
    return UserPreferencesResponse(user_id=user_id, preferences=document)


@router.get(
    "/{user_id}/notifications/in-app",
    response_model=list[NotificationResponse],
    summary="List delivered in-app notifications",
)
async def list_in_app_notifications(
    user_id: UserIdPath,
    session: SessionDep,
    service: UserServiceDep,
) -> list[NotificationResponse]:
    notifications = await service.list_in_app(session, user_id)
    return [NotificationResponse.model_validate(item) for item in notifications]
