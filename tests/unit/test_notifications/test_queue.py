"""Unit tests for the in-process delivery queue."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from notify_service.core.settings import NotificationSettings
from notify_service.features.notifications.queue import (
    InProcessNotificationQueue,
    JobState,
    NotificationJob,
)


def make_job(notification_id: UUID | None = None, body: str = "hello") -> NotificationJob:
    return NotificationJob(
        notification_id=notification_id or uuid4(),
        channel="email",
        recipient="ana@example.com",
        subject="Subject",
        body=body,
    )


@pytest.fixture
def settings() -> NotificationSettings:
    return NotificationSettings(max_attempts=3, backoff_base_seconds=0.01, concurrency=5)


async def wait_for_state(queue: InProcessNotificationQueue, job: NotificationJob, state: JobState) -> None:
    for _ in range(200):
        if queue.get_job_state(job.notification_id) is state:
            return
        await asyncio.sleep(0.005)
    pytest.fail(f"job never reached {state}")


class TestNotificationJob:
    def test_payload_round_trip(self) -> None:
        job = make_job()

        restored = NotificationJob.from_payload(job.to_payload())

        assert restored == job

    def test_payload_is_json_safe(self) -> None:
        payload = make_job().to_payload()

        assert isinstance(payload["notification_id"], str)
        assert payload["retries"] == 0


class TestInProcessQueue:
    async def test_runs_job_once_on_success(self, settings) -> None:
        handler = AsyncMock()
        queue = InProcessNotificationQueue(handler, settings)
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        handler.assert_awaited_once_with(job, 1)
        assert queue.get_job_state(job.notification_id) is None

    async def test_retries_until_success(self, settings) -> None:
        handler = AsyncMock(side_effect=[RuntimeError("1"), RuntimeError("2"), None])
        on_terminal = AsyncMock()
        queue = InProcessNotificationQueue(handler, settings, on_terminal_failure=on_terminal)
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        assert [c.args[1] for c in handler.await_args_list] == [1, 2, 3]
        on_terminal.assert_not_awaited()

    async def test_terminal_failure_after_max_attempts(self, settings) -> None:
        error = RuntimeError("provider down")
        handler = AsyncMock(side_effect=error)
        on_terminal = AsyncMock()
        queue = InProcessNotificationQueue(handler, settings, on_terminal_failure=on_terminal)
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        assert handler.await_count == 3
        on_terminal.assert_awaited_once_with(job, error)
        assert queue.get_job_state(job.notification_id) is None

    async def test_terminal_handler_error_is_contained(self, settings) -> None:
        handler = AsyncMock(side_effect=RuntimeError("down"))
        on_terminal = AsyncMock(side_effect=ValueError("handler bug"))
        queue = InProcessNotificationQueue(handler, settings, on_terminal_failure=on_terminal)
        await queue.start()

        await queue.enqueue(make_job())
        await queue.join(timeout=2)
        await queue.stop()

        on_terminal.assert_awaited_once()

    async def test_failed_jobs_are_not_retained(self) -> None:
        settings = NotificationSettings(max_attempts=1, concurrency=5)
        handler = AsyncMock(side_effect=RuntimeError("smtp not configured"))
        on_terminal = AsyncMock()
        queue = InProcessNotificationQueue(handler, settings, on_terminal_failure=on_terminal)
        jobs = [make_job() for _ in range(50)]
        await queue.start()

        for job in jobs:
            await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        assert on_terminal.await_count == 50
        assert all(queue.get_job_state(job.notification_id) is None for job in jobs)
        assert queue._entries == {}

    async def test_job_enqueued_during_terminal_handler_survives(self, settings) -> None:
        handler = AsyncMock(
            side_effect=[RuntimeError("a"), RuntimeError("b"), RuntimeError("c"), None]
        )
        job = make_job()
        queue: InProcessNotificationQueue

        async def requeue_on_failure(failed: NotificationJob, error: BaseException) -> None:
            await queue.enqueue(failed)

        queue = InProcessNotificationQueue(
            handler, settings, on_terminal_failure=requeue_on_failure
        )
        await queue.start()

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        assert handler.await_count == 4
        assert handler.await_args_list[-1].args[1] == 1

    async def test_duplicate_enqueue_while_waiting_runs_once(self, settings) -> None:
        handler = AsyncMock()
        queue = InProcessNotificationQueue(handler, settings)
        notification_id = uuid4()
        first = make_job(notification_id, body="first")
        second = make_job(notification_id, body="second")

        await queue.enqueue(first)
        await queue.enqueue(second)
        await queue.start()
        await queue.join(timeout=2)
        await queue.stop()

        handler.assert_awaited_once_with(second, 1)

    async def test_enqueue_while_delayed_rearms_job(self) -> None:
        settings = NotificationSettings(max_attempts=3, backoff_base_seconds=30.0)
        handler = AsyncMock(side_effect=[RuntimeError("first"), None])
        queue = InProcessNotificationQueue(handler, settings)
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await wait_for_state(queue, job, JobState.DELAYED)
        assert queue.get_attempts_made(job.notification_id) == 1

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        # Re-armed job starts counting attempts again and skips the 30s backoff
        assert [c.args[1] for c in handler.await_args_list] == [1, 1]

    async def test_enqueue_while_active_is_ignored(self, settings) -> None:
        started = asyncio.Event()
        release = asyncio.Event()
        calls = 0

        async def handler(job: NotificationJob, attempt: int) -> None:
            nonlocal calls
            calls += 1
            started.set()
            await release.wait()

        queue = InProcessNotificationQueue(handler, settings)
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await started.wait()
        await queue.enqueue(job)
        release.set()
        await queue.join(timeout=2)
        await queue.stop()

        assert calls == 1

    async def test_new_job_after_terminal_failure(self, settings) -> None:
        handler = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), RuntimeError("c"), None])
        queue = InProcessNotificationQueue(handler, settings, on_terminal_failure=AsyncMock())
        job = make_job()
        await queue.start()

        await queue.enqueue(job)
        await queue.join(timeout=2)
        assert handler.await_count == 3

        await queue.enqueue(job)
        await queue.join(timeout=2)
        await queue.stop()

        assert handler.await_count == 4
        assert handler.await_args_list[-1].args[1] == 1
        assert queue.get_job_state(job.notification_id) is None

    async def test_concurrency_is_bounded(self, settings) -> None:
        active = 0
        peak = 0

        async def handler(job: NotificationJob, attempt: int) -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1

        queue = InProcessNotificationQueue(handler, settings)
        await queue.start()

        for _ in range(12):
            await queue.enqueue(make_job())
        await queue.join(timeout=5)
        await queue.stop()

        assert peak == 5

    async def test_start_is_idempotent_and_stop_clears_workers(self, settings) -> None:
        queue = InProcessNotificationQueue(AsyncMock(), settings)

        await queue.start()
        await queue.start()
        assert queue.is_running

        await queue.stop()
        assert not queue.is_running

    def test_defaults_come_from_settings(self, settings) -> None:
        queue = InProcessNotificationQueue(AsyncMock(), settings)

        assert queue.max_attempts == 3


class TestBackoff:
    def test_exponential_delays(self) -> None:
        settings = NotificationSettings(backoff_base_seconds=1.0, backoff_multiplier=2.0)

        assert settings.backoff_delay(1) == 1.0
        assert settings.backoff_delay(2) == 2.0
        assert settings.backoff_delay(3) == 4.0

    def test_delay_is_capped(self) -> None:
        settings = NotificationSettings(backoff_base_seconds=10.0, backoff_max_seconds=15.0)

        assert settings.backoff_delay(5) == 15.0

    def test_default_policy(self) -> None:
        settings = NotificationSettings()

        assert settings.max_attempts == 3
        assert settings.concurrency == 5
