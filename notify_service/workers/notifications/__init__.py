"""Notification tasks.

This module provides:
- Delivery of one queued notification job per task
- The reconciliation sweep for orphaned PENDING records
"""

from __future__ import annotations

try:
    from .tasks import deliver_notification_task, reconcile_notifications_task
except ImportError:
    deliver_notification_task = None  # type: ignore[assignment]
    reconcile_notifications_task = None  # type: ignore[assignment]
    __all__: list[str] = []
else:
    __all__ = ["deliver_notification_task", "reconcile_notifications_task"]
