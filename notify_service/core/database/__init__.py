"""Database foundation: declarative base, mixins and the generic repository."""

from __future__ import annotations

from .base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDv7PKMixin,
    UUIDv7TimestampedBase,
    generate_uuid7,
)
from .repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "TimestampMixin",
    "UUIDv7PKMixin",
    "UUIDv7TimestampedBase",
    "generate_uuid7",
]
