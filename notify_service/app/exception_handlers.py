"""Exception handlers rendering every error as RFC 7807 Problem Details.

- AppException (NotificationNotFoundError, InvalidNotificationStateError, ...)
  keeps its status, type and extra members.
- RequestValidationError becomes 422 with one entry per invalid field.
- Anything else becomes an opaque 500; the traceback only goes to the log.

Every body carries ``request_id`` when RequestIDMiddleware assigned one.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notify_service.core.exceptions import AppException
from notify_service.core.schemas.problem_details import (
    ProblemDetail,
    ValidationError,
    ValidationProblemDetail,
)

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem_response(
    request: Request,
    problem: ProblemDetail,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    body = problem.model_dump(exclude_none=True)
    if extra:
        body.update(extra)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return JSONResponse(
        status_code=problem.status,
        content=body,
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        f"{exc.type}: {exc.detail}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
            **exc.extra,
        },
    )
    problem = ProblemDetail(
        type=exc.type,
        title=exc.title,
        status=exc.status_code,
        detail=exc.detail,
        instance=exc.instance or request.url.path,
    )
    return _problem_response(request, problem, exc.extra)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """422 with the dotted location, message and (scalar) input of each error."""
    errors = [
        ValidationError(
            field=".".join(str(part) for part in error["loc"]),
            message=error["msg"],
            type=error["type"],
            value=error.get("input") if isinstance(error.get("input"), str | int | float | bool) else None,
        )
        for error in exc.errors()
    ]
    logger.info(
        f"Rejected {request.method} {request.url.path}: {len(errors)} invalid field(s)",
        extra={"fields": [error.field for error in errors]},
    )
    problem = ValidationProblemDetail(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Request validation failed for {len(errors)} field(s)",
        instance=request.url.path,
        errors=errors,
    )
    return _problem_response(request, problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        extra={"path": request.url.path, "method": request.method},
    )
    problem = ProblemDetail(
        type="internal-error",
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        instance=request.url.path,
    )
    return _problem_response(request, problem)


def configure_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
