"""FastAPI dependencies shared across features."""

from .database import get_db_session

__all__ = ["get_db_session"]
