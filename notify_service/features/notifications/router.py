"""Admin API for notification records.

Admin Endpoints:
- GET /admin/notifications - Filtered listing, newest first
- GET /admin/notifications/{notification_id} - Single record
- POST /admin/notifications/{notification_id}/retry - Re-queue a FAILED record
- POST /admin/notifications/reconcile - Re-enqueue stale PENDING/RETRIED records
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from notify_service.features.notifications.dependencies import (
    NotificationRepositoryDep,
    ReconcilerDep,
    RetryControllerDep,
    SessionDep,
)
from notify_service.features.notifications.enums import NotificationStatus
from notify_service.features.notifications.exceptions import NotificationNotFoundError
from notify_service.features.notifications.repository import NotificationFilters
from notify_service.features.notifications.schemas import (
    MessageResponse,
    NotificationResponse,
    ReconcileRequest,
    ReconcileResponse,
)

logger = logging.getLogger(__name__)

admin_router = APIRouter(
    prefix="/admin/notifications",
    tags=["notifications-admin"],
)


@admin_router.get(
    "",
    response_model=list[NotificationResponse],
    summary="List notifications",
    description="""
List notification records, newest first.

**Query Parameters:**
- `status`: PENDING, SENT, FAILED, DELIVERED or RETRIED
- `eventType`, `channel`, `userId`, `correlationId`: exact matches
- `startDate` / `endDate`: ISO 8601 bounds on creation time
- `limit`: Maximum results (1-100, default: 10)
- `offset`: Pagination offset (default: 0)
""",
)
async def list_notifications(
    session: SessionDep,
    repository: NotificationRepositoryDep,
    status_filter: Annotated[
        NotificationStatus | None, Query(alias="status", description="Record status")
    ] = None,
    event_type: Annotated[str | None, Query(alias="eventType", max_length=255)] = None,
    channel: Annotated[str | None, Query(max_length=50)] = None,
    user_id: Annotated[str | None, Query(alias="userId", max_length=255)] = None,
    correlation_id: Annotated[
        str | None, Query(alias="correlationId", max_length=255)
    ] = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Maximum results")] = 10,
    offset: Annotated[int, Query(ge=0, description="Pagination offset")] = 0,
) -> list[NotificationResponse]:
    filters = NotificationFilters(
        status=status_filter,
        event_type=event_type,
        channel=channel,
        user_id=user_id,
        correlation_id=correlation_id,
        start_date=start_date,
        end_date=end_date,
    )
    notifications = await repository.query(session, filters, limit=limit, offset=offset)
    return [NotificationResponse.model_validate(item) for item in notifications]


@admin_router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Re-enqueue stale notifications",
    description="""
Find PENDING and RETRIED records that have not changed for longer than the
configured threshold and enqueue them again. Enqueue is idempotent per
notification id, so records with a live job are not delivered twice.
""",
)
async def reconcile_notifications(
    reconciler: ReconcilerDep,
    payload: Annotated[ReconcileRequest | None, Body()] = None,
) -> ReconcileResponse:
    payload = payload or ReconcileRequest()
    result = await reconciler.sweep(
        older_than_seconds=payload.older_than_seconds,
        limit=payload.limit,
    )
    return ReconcileResponse(
        scanned=result.scanned,
        requeued=result.requeued,
        failed=result.failed,
    )


@admin_router.get(
    "/{notification_id}",
    response_model=NotificationResponse,
    summary="Get notification",
    responses={404: {"description": "Notification not found"}},
)
async def get_notification(
    notification_id: UUID,
    session: SessionDep,
    repository: NotificationRepositoryDep,
) -> NotificationResponse:
    notification = await repository.get(session, notification_id)
    if notification is None:
        raise NotificationNotFoundError(notification_id)
    return NotificationResponse.model_validate(notification)


@admin_router.post(
    "/{notification_id}/retry",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry a failed notification",
    description="""
Re-queue a FAILED notification with its stored subject and body.

Only FAILED records can be retried; any other status is rejected with 409
and the record is left unchanged.
""",
    responses={
        404: {"description": "Notification not found"},
        409: {"description": "Notification is not in FAILED status"},
    },
)
async def retry_notification(
    notification_id: UUID,
    controller: RetryControllerDep,
) -> MessageResponse:
    await controller.retry(notification_id)
    logger.info(
        f"Admin retry accepted for notification {notification_id}",
        extra={"notification_id": str(notification_id)},
    )
    return MessageResponse(message="Notification retry initiated.")


__all__ = ["admin_router"]
