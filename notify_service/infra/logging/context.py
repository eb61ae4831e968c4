"""Log context for the service.

Two ways to attach fields to log records:

- task-scoped: ``set_log_context(request_id=...)`` stores fields in a
  contextvar; ``ContextInjectingFilter`` copies them onto every record
  produced by the same asyncio task (request, queue job, Taskiq task).
- logger-scoped: ``get_logger(__name__).bind(notification_id=...)`` returns an
  adapter that adds the bound fields to its own records only.

The adapter also accepts callables as messages and only calls them when the
level is enabled, for debug lines that are costly to format:

    logger.debug(lambda: f"Rendered body: {body!r}")
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the log context of the current task."""
    _log_context.set({**_log_context.get(), **kwargs})


def clear_log_context() -> None:
    _log_context.set({})


class ContextInjectingFilter(logging.Filter):
    """Copy the task's log context onto each record without overwriting record attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class ContextBoundLogger(logging.LoggerAdapter):
    """Logger adapter with bound fields and lazily evaluated messages.

    Example:
        log = get_logger(__name__).bind(notification_id=job.job_id, channel=job.channel)
        log.info("Sending")
        log.debug(lambda: f"Payload: {job.to_payload()}")
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, context)

    def bind(self, **context: Any) -> ContextBoundLogger:
        return ContextBoundLogger(self.logger, **{**self.extra, **context})

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if not self.isEnabledFor(level):
            return
        if callable(msg):
            msg = msg()
        super().log(level, msg, *args, **kwargs)


def get_logger(name: str, **context: Any) -> ContextBoundLogger:
    """Logger for ``name`` with ``context`` bound to every record."""
    return ContextBoundLogger(logging.getLogger(name), **context)
