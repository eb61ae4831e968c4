"""Event-to-notification dispatch.

Incoming events are resolved to per-user, per-channel notification records,
rendered, persisted as PENDING and handed to the delivery queue. Workers send
through the channel senders and move records to SENT or FAILED; admins may
retry FAILED records.
"""

from .enums import NotificationChannel, NotificationStatus
from .pipeline import DispatchPipeline, dispatch, get_dispatch_pipeline
from .queue import (
    InProcessNotificationQueue,
    NotificationJob,
    NotificationQueue,
    TaskiqNotificationQueue,
    get_notification_queue,
)
from .reconcile import NotificationReconciler, get_notification_reconciler
from .retry import RetryController, get_retry_controller
from .worker import NotificationWorker, get_notification_worker

__all__ = [
    "DispatchPipeline",
    "InProcessNotificationQueue",
    "NotificationChannel",
    "NotificationJob",
    "NotificationQueue",
    "NotificationReconciler",
    "NotificationStatus",
    "NotificationWorker",
    "RetryController",
    "TaskiqNotificationQueue",
    "dispatch",
    "get_dispatch_pipeline",
    "get_notification_queue",
    "get_notification_reconciler",
    "get_notification_worker",
    "get_retry_controller",
]
