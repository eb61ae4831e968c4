"""Event ingestion API.

- POST /events/receive - Accept an event; dispatch runs after the response
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, status

from notify_service.features.events.schemas import EventAcceptedResponse, ReceiveEventRequest
from notify_service.features.notifications.dependencies import DispatchPipelineDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "/receive",
    response_model=EventAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Receive an event for notification processing",
    description="""
Accept an event from another service. The response is returned before any
notification is created; events without a userId or without a mapping are
dropped silently.
""",
)
async def receive_event(
    event: ReceiveEventRequest,
    background_tasks: BackgroundTasks,
    pipeline: DispatchPipelineDep,
) -> EventAcceptedResponse:
    logger.debug(
        f"Received incoming event: {event.event_type}",
        extra={"event_type": event.event_type},
    )
    background_tasks.add_task(pipeline.dispatch, event.event_type, event.payload)
    return EventAcceptedResponse()
