"""Database engine and session management.

PostgreSQL is reached through psycopg3 (``postgresql+psycopg://``); when no URL
is configured the service falls back to a local SQLite file via aiosqlite.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from notify_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()


def _engine_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": db_settings.echo or app_settings.debug}
    if not db_settings.is_sqlite:
        kwargs.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_pre_ping=True,
        )
    return kwargs


engine = create_async_engine(db_settings.get_sqlalchemy_url(), **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Notification))
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database() -> None:
    """Verify connectivity and create missing tables.

    Raises:
        Exception: Re-raised when the database cannot be reached.
    """
    from notify_service.core.database import Base

    # Register models on Base.metadata
    import notify_service.features.notifications.models  # noqa: F401

    db_url = engine.url.render_as_string(hide_password=True)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if db_settings.create_tables:
                await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database connection established successfully",
            extra={"url": db_url},
        )
    except Exception as e:
        logger.error(
            "Failed to connect to database",
            extra={"url": db_url, "error": str(e)},
        )
        raise


async def close_database() -> None:
    """Dispose of the engine's connection pool."""
    logger.info("Closing database connection")

    try:
        await engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})


__all__ = [
    "AsyncSessionLocal",
    "close_database",
    "engine",
    "get_async_session",
    "init_database",
]
