"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings that keep tests off external infrastructure
    - Database Fixtures: in-memory SQLite engine, sessions and a session factory
    - Notification Fixtures: recording queue, fake senders, seeded mappings
    - Application Fixtures: FastAPI app wired to the test database, HTTP client
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("LOG_JSON_LOGS", "false")
os.environ.setdefault("EMAIL_SMTP_HOST", "")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """In-memory SQLite engine with every table created.

    StaticPool keeps a single connection so all sessions see the same database.
    """
    from notify_service.core.database import Base

    # Register models on Base.metadata
    import notify_service.features.notifications.models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def session_factory(
    session_maker: async_sessionmaker[AsyncSession],
) -> Callable[[], Any]:
    """Drop-in replacement for ``get_async_session`` bound to the test engine."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    return factory


@pytest.fixture
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session


# ============================================================================
# Notification Fixtures
# ============================================================================


class RecordingQueue:
    """Queue double that records every enqueued job."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.jobs: list[Any] = []
        self._fail_for = fail_for or set()

    async def enqueue(self, job: Any) -> None:
        if job.channel in self._fail_for:
            msg = f"queue unavailable for {job.channel}"
            raise ConnectionError(msg)
        self.jobs.append(job)

    def ids(self) -> list[UUID]:
        return [job.notification_id for job in self.jobs]


class FakeSender:
    """Channel sender double returning a scripted outcome."""

    def __init__(
        self, channel: Any, outcome: bool | Exception = True, delay: float = 0.0
    ) -> None:
        self.channel = channel
        self.outcome = outcome
        self.delay = delay
        self.calls: list[tuple[UUID, str, str | None, str]] = []

    async def send(
        self,
        notification_id: UUID,
        recipient: str,
        subject: str | None,
        body: str,
    ) -> bool:
        self.calls.append((notification_id, recipient, subject, body))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


@pytest.fixture
def recording_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
async def seeded(db_session: AsyncSession) -> AsyncSession:
    """Database populated with the default event mappings and templates."""
    from notify_service.features.notifications.seed import seed_defaults

    await seed_defaults(db_session)
    return db_session


@pytest.fixture
def make_notification(session_factory: Callable[[], Any]) -> Callable[..., Any]:
    """Factory persisting a notification, optionally forced into a status."""
    from notify_service.features.notifications.repository import get_notification_repository

    async def _make(
        status: Any = None,
        *,
        error_details: str | None = None,
        retries_count: int | None = None,
        **overrides: Any,
    ) -> Any:
        fields: dict[str, Any] = {
            "user_id": "user-1",
            "event_type": "order.created",
            "channel": "email",
            "recipient": "ana@example.com",
            "subject": "Your Order 42 is Confirmed!",
            "body": "Hi Ana, your order 42 has been successfully placed.",
            "correlation_id": "42",
        }
        fields.update(overrides)
        async with session_factory() as session:
            notification = await get_notification_repository().create_notification(
                session, **fields
            )
            if status is not None:
                notification.status = status
            if error_details is not None:
                notification.error_details = error_details
            if retries_count is not None:
                notification.retries_count = retries_count
            await session.flush()
            await session.commit()
        return notification

    return _make


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(session_factory: Callable[[], Any], recording_queue: RecordingQueue):
    """FastAPI application wired to the test database and a recording queue.

    The lifespan is not run by ASGITransport, so no engine, broker or worker
    pool from the process-wide configuration is started.
    """
    from notify_service.app.main import create_app
    from notify_service.core.dependencies.database import get_db_session
    from notify_service.features.notifications.pipeline import (
        DispatchPipeline,
        get_dispatch_pipeline,
    )
    from notify_service.features.notifications.reconcile import (
        NotificationReconciler,
        get_notification_reconciler,
    )
    from notify_service.features.notifications.retry import (
        RetryController,
        get_retry_controller,
    )

    application = create_app()

    async def override_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    pipeline = DispatchPipeline(recording_queue, session_factory)
    controller = RetryController(recording_queue, session_factory)
    reconciler = NotificationReconciler(recording_queue, session_factory)

    application.dependency_overrides[get_db_session] = override_session
    application.dependency_overrides[get_dispatch_pipeline] = lambda: pipeline
    application.dependency_overrides[get_retry_controller] = lambda: controller
    application.dependency_overrides[get_notification_reconciler] = lambda: reconciler
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the test application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
