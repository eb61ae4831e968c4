"""Structured logging: dictConfig setup, JSON formatter and context-bound loggers."""

from __future__ import annotations

from .config import configure_logging, setup_logging, shutdown
from .context import (
    ContextBoundLogger,
    ContextInjectingFilter,
    clear_log_context,
    get_logger,
    set_log_context,
)
from .formatters import JSONFormatter

__all__ = [
    "ContextBoundLogger",
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
