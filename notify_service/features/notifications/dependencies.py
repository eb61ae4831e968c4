"""FastAPI dependencies for the notifications feature.

Annotated aliases keep route signatures short and let tests swap any
collaborator through ``app.dependency_overrides``:

    app.dependency_overrides[get_retry_controller] = lambda: controller
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from notify_service.core.dependencies.database import get_db_session
from notify_service.features.notifications.pipeline import (
    DispatchPipeline,
    get_dispatch_pipeline,
)
from notify_service.features.notifications.reconcile import (
    NotificationReconciler,
    get_notification_reconciler,
)
from notify_service.features.notifications.repository import (
    NotificationRepository,
    UserPreferenceRepository,
    get_notification_repository,
    get_user_preference_repository,
)
from notify_service.features.notifications.retry import (
    RetryController,
    get_retry_controller,
)

# Database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]

NotificationRepositoryDep = Annotated[
    NotificationRepository, Depends(get_notification_repository)
]
UserPreferenceRepositoryDep = Annotated[
    UserPreferenceRepository, Depends(get_user_preference_repository)
]
DispatchPipelineDep = Annotated[DispatchPipeline, Depends(get_dispatch_pipeline)]
RetryControllerDep = Annotated[RetryController, Depends(get_retry_controller)]
ReconcilerDep = Annotated[NotificationReconciler, Depends(get_notification_reconciler)]

__all__ = [
    "DispatchPipelineDep",
    "NotificationRepositoryDep",
    "ReconcilerDep",
    "RetryControllerDep",
    "SessionDep",
    "UserPreferenceRepositoryDep",
]
