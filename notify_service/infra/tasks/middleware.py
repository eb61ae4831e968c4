"""Taskiq middleware for delivery retries and task metrics.

1. NotificationRetryMiddleware - Attempt ceiling, exponential backoff and the
   terminal failure event for tasks labelled ``retry_on_error``
2. MetricsMiddleware - Records Prometheus metrics for task executions

The middleware chain order matters: the retry middleware must come first so
metrics see every attempt, including re-kicked ones.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from taskiq import TaskiqMiddleware
from taskiq.exceptions import NoResultError
from taskiq.middlewares import SmartRetryMiddleware

from notify_service.core.settings import get_notification_settings
from notify_service.infra.metrics.prometheus import (
    taskiq_task_duration_seconds,
    taskiq_tasks_total,
)

if TYPE_CHECKING:
    from taskiq import TaskiqMessage, TaskiqResult

    from notify_service.core.settings import NotificationSettings

logger = logging.getLogger(__name__)

# Labels read by SmartRetryMiddleware: attempts already made (0 on the first
# run) and the per-task attempt ceiling
RETRIES_LABEL = "_retries"
MAX_ATTEMPTS_LABEL = "max_retries"


def _is_true(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() == "true"
    return bool(value)


def attempt_number(message: TaskiqMessage) -> int:
    """1-based attempt number of ``message``."""
    try:
        return int(message.labels.get(RETRIES_LABEL, 0)) + 1
    except (TypeError, ValueError):
        return 1


class NotificationRetryMiddleware(SmartRetryMiddleware):
    """taskiq's smart retry with the service backoff and a terminal failure event.

    Applies to tasks declared with ``retry_on_error=True``. Failed attempts are
    re-kicked under the same task id by the library, with the delay taken from
    ``NotificationSettings.backoff_delay`` (honoured by taskiq-aio-pika's delay
    queue). Once ``max_attempts`` attempts have failed the task is reported
    permanently failed; for tasks labelled ``notification_job`` the delivery job
    is rebuilt from the first argument and the queue's terminal failure handler
    is invoked.

    Example usage:
        broker = AioPikaBroker(...).with_middlewares(NotificationRetryMiddleware())

        @broker.task(retry_on_error=True, notification_job=True)
        async def deliver(payload: dict) -> None: ...
    """

    def __init__(self, settings: NotificationSettings | None = None) -> None:
        self._settings = settings or get_notification_settings()
        super().__init__(
            default_retry_count=self._settings.max_attempts,
            no_result_on_retry=True,
        )

    def make_delay(self, message: TaskiqMessage, retries: int) -> float:
        return self._settings.backoff_delay(retries)

    def _max_attempts(self, message: TaskiqMessage) -> int:
        try:
            return int(message.labels.get(MAX_ATTEMPTS_LABEL, self.default_retry_count))
        except (TypeError, ValueError):
            return self.default_retry_count

    async def on_error(
        self,
        message: TaskiqMessage,
        result: TaskiqResult[Any],
        exception: BaseException,
    ) -> None:
        """Let the library schedule the next attempt, then report exhausted tasks."""
        await super().on_error(message, result, exception)

        if isinstance(exception, NoResultError) or not self.is_retry_on_error(message):
            return
        if attempt_number(message) >= self._max_attempts(message):
            await self._on_exhausted(message, exception)

    async def _on_exhausted(self, message: TaskiqMessage, exception: BaseException) -> None:
        logger.error(
            "Task permanently failed after max attempts",
            extra={
                "task_id": message.task_id,
                "task_name": message.task_name,
                "attempts": attempt_number(message),
                "error_type": type(exception).__name__,
            },
        )
        if not _is_true(message.labels.get("notification_job")) or not message.args:
            return

        from notify_service.features.notifications.metrics import queue_terminal_failures_total
        from notify_service.features.notifications.queue import (
            NotificationJob,
            log_terminal_failure,
        )

        try:
            job = NotificationJob.from_payload(message.args[0])
        except (KeyError, TypeError, ValueError):
            logger.exception(
                "Could not rebuild notification job from exhausted task",
                extra={"task_id": message.task_id},
            )
            return
        queue_terminal_failures_total.labels(channel=job.channel).inc()
        await log_terminal_failure(job, exception)


class MetricsMiddleware(TaskiqMiddleware):
    """Middleware that records Prometheus metrics for task executions.

    Uses the service registry, so metrics are exposed on the FastAPI
    ``/metrics`` endpoint of any process that imports the broker.

    Metrics recorded:
    - taskiq_tasks_total: Counter with labels [task_name, status]
    - taskiq_task_duration_seconds: Histogram with labels [task_name]
    """

    def __init__(self) -> None:
        super().__init__()
        self._start_times: dict[str, float] = {}

    async def pre_execute(self, message: TaskiqMessage) -> TaskiqMessage:
        self._start_times[message.task_id] = time.perf_counter()
        return message

    async def post_execute(
        self,
        message: TaskiqMessage,
        result: TaskiqResult[Any],
    ) -> None:
        task_name = message.task_name
        start_time = self._start_times.pop(message.task_id, None)
        if start_time is not None:
            taskiq_task_duration_seconds.labels(task_name=task_name).observe(
                time.perf_counter() - start_time
            )

        if result.is_err:
            status = "retry" if isinstance(result.error, NoResultError) else "failure"
        else:
            status = "success"
        taskiq_tasks_total.labels(task_name=task_name, status=status).inc()
