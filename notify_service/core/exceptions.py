"""HTTP-facing application errors.

Raised anywhere below the routers and turned into RFC 7807 responses by
``app.exception_handlers.app_exception_handler``. Feature errors subclass the
status-specific classes here and set their own ``type`` and ``extra``.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class AppException(Exception):
    """Base error carrying everything a Problem Details body needs.

    Attributes:
        status_code: HTTP status code for the response.
        detail: Human-readable explanation of this occurrence.
        type: Problem type identifier, e.g. ``notification-not-found``.
        title: Short summary of the problem type; derived from the status code when omitted.
        instance: URI of the occurrence; the handler falls back to the request path.
        extra: Additional members merged into the response body.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or _status_phrase(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class NotFoundException(AppException):
    """The addressed resource does not exist (404)."""

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=HTTPStatus.NOT_FOUND.value,
            detail=detail,
            type=type,
            title="Not Found",
            instance=instance,
            extra=extra,
        )


class ConflictException(AppException):
    """The request is valid but the resource's current state forbids it (409)."""

    def __init__(
        self,
        detail: str,
        type: str = "conflict",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            status_code=HTTPStatus.CONFLICT.value,
            detail=detail,
            type=type,
            title="Conflict",
            instance=instance,
            extra=extra,
        )


__all__ = ["AppException", "ConflictException", "NotFoundException"]
