"""Generic repository base for the service's SQLAlchemy models.

Feature repositories subclass ``BaseRepository`` and add their own queries.
Sessions are passed explicitly and repositories flush but never commit, so
the caller decides where a transaction ends:

    async with get_async_session() as session:
        notification = await repo.create_notification(session, ...)
        await session.commit()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import select

from notify_service.infra.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Primary-key and single-attribute lookups plus inserts for one model."""

    __slots__ = ("model", "_logger")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = get_logger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Load by primary key, or None."""
        instance = await session.get(self.model, id)

        self._logger.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """Load the single row whose ``attr`` equals ``value``.

        Only meant for unique columns such as ``EventNotificationMapping.event_type``.
        """
        stmt = select(self.model).where(attr == value)
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self._logger.debug(
            lambda: f"db.get_by: {self.model.__name__}.{attr.key}={value!r} -> {'found' if instance else 'not found'}"
        )
        return instance

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Add, flush and refresh so generated columns are populated."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        self._logger.debug(
            lambda: f"db.create: {self.model.__name__}(id={getattr(instance, 'id', None)})"
        )
        return instance


__all__ = ["BaseRepository"]
