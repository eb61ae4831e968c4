"""Event ingestion feature."""

from .router import router

__all__ = ["router"]
