"""Delivery job queue.

Jobs are keyed by notification id: enqueueing an id that already has live
state updates that state instead of creating a second delivery. The queue
owns attempt counting and backoff; the notification record is only touched
by the worker's handler.

Two implementations share the ``NotificationQueue`` protocol:

- ``InProcessNotificationQueue``: asyncio worker pool, used when no broker is
  configured and in tests.
- ``TaskiqNotificationQueue``: kicks ``deliver_notification_task`` on the
  RabbitMQ broker; ``NotificationRetryMiddleware`` applies the same attempt
  ceiling and backoff on the worker side.

Job lifecycle (in-process):
    WAITING → ACTIVE ─┬→ COMPLETED (removed)
                      ├→ DELAYED → WAITING   (attempts left, after backoff)
                      └→ FAILED  (terminal failure callback fired, removed)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import enum
import logging
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

from notify_service.core.settings import get_notification_settings
from notify_service.features.notifications.metrics import (
    queue_enqueued_total,
    queue_terminal_failures_total,
)

if TYPE_CHECKING:
    from notify_service.core.settings import NotificationSettings

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class NotificationJob:
    """Queue payload for one delivery of one notification record.

    Attributes:
        notification_id: Record id, also the job identity
        channel: Channel key the record was created for
        recipient: Channel address
        body: Rendered body
        subject: Rendered subject, if the channel has one
        retries: The record's ``retries_count`` when the job was enqueued
    """

    notification_id: UUID
    channel: str
    recipient: str
    body: str
    subject: str | None = None
    retries: int = 0

    @property
    def job_id(self) -> str:
        return str(self.notification_id)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe representation for broker transport."""
        return {
            "notification_id": str(self.notification_id),
            "channel": self.channel,
            "recipient": self.recipient,
            "subject": self.subject,
            "body": self.body,
            "retries": self.retries,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> NotificationJob:
        return cls(
            notification_id=UUID(str(payload["notification_id"])),
            channel=payload["channel"],
            recipient=payload["recipient"],
            subject=payload.get("subject"),
            body=payload["body"],
            retries=int(payload.get("retries") or 0),
        )


# (job, attempt number starting at 1) -> None; raising marks the attempt failed
JobHandler = Callable[[NotificationJob, int], Awaitable[None]]
TerminalFailureHandler = Callable[[NotificationJob, BaseException], Awaitable[None]]


class NotificationQueue(Protocol):
    """At-least-once delivery queue, idempotent per notification id."""

    async def enqueue(self, job: NotificationJob) -> None: ...


class JobState(str, enum.Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    DELAYED = "delayed"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def terminal_states(cls) -> set[JobState]:
        return {cls.COMPLETED, cls.FAILED}

    def is_terminal(self) -> bool:
        return self in self.terminal_states()


@dataclass(slots=True)
class _Entry:
    job: NotificationJob
    state: JobState = JobState.WAITING
    attempts_made: int = 0
    last_error: str | None = None
    timer: asyncio.TimerHandle | None = None


async def log_terminal_failure(job: NotificationJob, error: BaseException) -> None:
    logger.error(
        f"Notification job {job.job_id} permanently failed: {error}",
        extra={
            "notification_id": job.job_id,
            "channel": job.channel,
            "error": str(error),
        },
    )


class InProcessNotificationQueue:
    """asyncio delivery queue with bounded concurrency and exponential backoff.

    Example:
        queue = InProcessNotificationQueue(worker.handle)
        await queue.start()
        await queue.enqueue(job)
        await queue.join()
        await queue.stop()
    """

    def __init__(
        self,
        handler: JobHandler,
        settings: NotificationSettings | None = None,
        *,
        on_terminal_failure: TerminalFailureHandler | None = None,
        concurrency: int | None = None,
    ) -> None:
        self._handler = handler
        self._settings = settings or get_notification_settings()
        self._on_terminal_failure = on_terminal_failure or log_terminal_failure
        self._concurrency = concurrency or self._settings.concurrency
        self._entries: dict[str, _Entry] = {}
        self._ready: asyncio.Queue[str] = asyncio.Queue()
        self._workers: list[asyncio.Task[None]] = []
        self._unfinished = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def max_attempts(self) -> int:
        return self._settings.max_attempts

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    def get_job_state(self, notification_id: UUID | str) -> JobState | None:
        """State of the job for ``notification_id``; finished jobs are forgotten."""
        entry = self._entries.get(str(notification_id))
        return entry.state if entry else None

    def get_attempts_made(self, notification_id: UUID | str) -> int:
        entry = self._entries.get(str(notification_id))
        return entry.attempts_made if entry else 0

    async def enqueue(self, job: NotificationJob) -> None:
        """Add or update the job for ``job.notification_id``.

        - no live entry (none, completed or failed): a fresh job is queued
        - waiting: payload replaced, keeps its place in line
        - delayed: payload replaced, attempts reset, queued immediately
        - active: ignored, the running attempt owns the id
        """
        job_id = job.job_id
        entry = self._entries.get(job_id)

        if entry is None or entry.state.is_terminal():
            self._entries[job_id] = _Entry(job=job)
            self._mark_unfinished()
            self._ready.put_nowait(job_id)
            queue_enqueued_total.labels(channel=job.channel).inc()
            logger.debug(f"Queued notification job {job_id}", extra={"notification_id": job_id})
            return

        if entry.state is JobState.WAITING:
            entry.job = job
            logger.debug(
                f"Replaced waiting notification job {job_id}",
                extra={"notification_id": job_id},
            )
            return

        if entry.state is JobState.DELAYED:
            if entry.timer is not None:
                entry.timer.cancel()
                entry.timer = None
            entry.job = job
            entry.attempts_made = 0
            entry.state = JobState.WAITING
            self._ready.put_nowait(job_id)
            logger.debug(
                f"Re-armed delayed notification job {job_id}",
                extra={"notification_id": job_id},
            )
            return

        logger.info(
            f"Notification job {job_id} is already running; enqueue ignored",
            extra={"notification_id": job_id},
        )

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._run(), name=f"notification-worker-{index}")
            for index in range(self._concurrency)
        ]
        logger.info(
            "Notification queue started",
            extra={"concurrency": self._concurrency, "max_attempts": self.max_attempts},
        )

    async def stop(self) -> None:
        """Cancel workers and pending backoff timers. Unfinished jobs are dropped."""
        for entry in self._entries.values():
            if entry.timer is not None:
                entry.timer.cancel()
                entry.timer = None
        workers, self._workers = self._workers, []
        for task in workers:
            task.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        logger.info("Notification queue stopped")

    async def join(self, timeout: float | None = None) -> None:
        """Wait until every queued job has completed or permanently failed."""
        await asyncio.wait_for(self._idle.wait(), timeout)

    def _mark_unfinished(self) -> None:
        self._unfinished += 1
        self._idle.clear()

    def _mark_finished(self) -> None:
        self._unfinished -= 1
        if self._unfinished <= 0:
            self._unfinished = 0
            self._idle.set()

    async def _run(self) -> None:
        while True:
            job_id = await self._ready.get()
            try:
                entry = self._entries.get(job_id)
                # Stale wakeups for replaced or re-armed entries
                if entry is None or entry.state is not JobState.WAITING:
                    continue
                await self._process(job_id, entry)
            finally:
                self._ready.task_done()

    async def _process(self, job_id: str, entry: _Entry) -> None:
        entry.state = JobState.ACTIVE
        entry.attempts_made += 1
        attempt = entry.attempts_made
        job = entry.job

        try:
            await self._handler(job, attempt)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            entry.last_error = str(exc)
            if attempt < self.max_attempts:
                delay = self._settings.backoff_delay(attempt)
                entry.state = JobState.DELAYED
                entry.timer = asyncio.get_running_loop().call_later(
                    delay, self._release_delayed, job_id
                )
                logger.warning(
                    f"Notification job {job_id} attempt {attempt}/{self.max_attempts} failed; "
                    f"retrying in {delay:.2f}s",
                    extra={"notification_id": job_id, "attempt": attempt, "error": str(exc)},
                )
                return

            entry.state = JobState.FAILED
            queue_terminal_failures_total.labels(channel=job.channel).inc()
            try:
                await self._on_terminal_failure(job, exc)
            except Exception:
                logger.exception(
                    f"Terminal failure handler raised for notification job {job_id}",
                    extra={"notification_id": job_id},
                )
            finally:
                # A fresh job may have replaced the entry while the handler ran
                if self._entries.get(job_id) is entry:
                    del self._entries[job_id]
                self._mark_finished()
            return

        entry.state = JobState.COMPLETED
        self._entries.pop(job_id, None)
        self._mark_finished()
        logger.debug(
            f"Notification job {job_id} completed on attempt {attempt}",
            extra={"notification_id": job_id, "attempt": attempt},
        )

    def _release_delayed(self, job_id: str) -> None:
        entry = self._entries.get(job_id)
        if entry is None or entry.state is not JobState.DELAYED:
            return
        entry.timer = None
        entry.state = JobState.WAITING
        self._ready.put_nowait(job_id)


class TaskiqNotificationQueue:
    """Broker-backed queue: one Taskiq message per job, task id = notification id.

    RabbitMQ does not deduplicate by task id, so a duplicate kick results in a
    second message. The worker claims the record before sending and drops jobs
    whose record is delivered or held by another running attempt.
    """

    async def enqueue(self, job: NotificationJob) -> None:
        from notify_service.workers.notifications import deliver_notification_task

        if deliver_notification_task is None:
            msg = "Taskiq broker is not configured"
            raise RuntimeError(msg)

        await (
            deliver_notification_task.kicker()
            .with_task_id(job.job_id)
            .kiq(job.to_payload())
        )
        queue_enqueued_total.labels(channel=job.channel).inc()
        logger.debug(
            f"Kicked delivery task for notification {job.job_id}",
            extra={"notification_id": job.job_id},
        )


_queue: NotificationQueue | None = None


def get_notification_queue() -> NotificationQueue:
    """Get the process-wide delivery queue.

    Uses Taskiq when the RabbitMQ broker is configured, otherwise an
    in-process queue driving the default notification worker.
    """
    global _queue
    if _queue is None:
        from notify_service.infra.tasks.broker import broker

        if broker is not None:
            _queue = TaskiqNotificationQueue()
        else:
            from notify_service.features.notifications.worker import get_notification_worker

            _queue = InProcessNotificationQueue(get_notification_worker().handle)
    return _queue


def set_notification_queue(queue: NotificationQueue | None) -> None:
    """Replace the process-wide queue (tests, custom wiring)."""
    global _queue
    _queue = queue
