"""User preferences and in-app inbox feature."""

from .router import router

__all__ = ["router"]
