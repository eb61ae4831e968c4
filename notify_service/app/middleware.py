"""Middleware configuration for FastAPI application.

Order (outermost first):
1. RequestIDMiddleware - request id in state, log context and response header
2. MetricsMiddleware - HTTP request counters and latency histogram
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

from opentelemetry import trace
from starlette.datastructures import MutableHeaders
from starlette.middleware.base import BaseHTTPMiddleware

from notify_service.core.settings import get_app_settings
from notify_service.infra.logging.context import clear_log_context, set_log_context
from notify_service.infra.metrics.prometheus import (
    http_request_duration_seconds,
    http_requests_total,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import FastAPI, Request, Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestIDMiddleware:
    """Add a unique request id to every HTTP request.

    The id is taken from the X-Request-ID header or generated as a UUID4,
    stored in ``request.state.request_id``, added to the logging context for
    the duration of the request and echoed in the response headers.

    Pure ASGI so the logging context is set in the same task as the handler.
    """

    header_name = "x-request-id"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        header_bytes = headers.get(self.header_name.encode("latin-1"))
        request_id = header_bytes.decode("latin-1") if header_bytes else str(uuid.uuid4())

        scope.setdefault("state", {})["request_id"] = request_id
        set_log_context(request_id=request_id)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).append(self.header_name, request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            clear_log_context()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collect HTTP request metrics, linked to traces via exemplars when available.

    Uses route path templates as the endpoint label to keep cardinality low,
    e.g. "/api/v1/admin/notifications/{notification_id}".
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Process-Time"] = str(time.perf_counter() - start_time)
            return response  # type: ignore[no-any-return]
        finally:
            duration = time.perf_counter() - start_time
            endpoint = request.url.path
            route = request.scope.get("route")
            if route is not None and hasattr(route, "path"):
                endpoint = route.path

            exemplar = None
            span_context = trace.get_current_span().get_span_context()
            if span_context.is_valid:
                exemplar = {"trace_id": format(span_context.trace_id, "032x")}

            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                duration, exemplar=exemplar
            )
            http_requests_total.labels(
                method=method, endpoint=endpoint, status=status_code
            ).inc(exemplar=exemplar)


def configure_middleware(app: FastAPI) -> None:
    """Configure middleware for the application.

    Starlette runs the last added middleware first, so the request id
    middleware is added last to wrap everything else.
    """
    app_settings = get_app_settings()

    if app_settings.metrics_enabled:
        app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.info(
        "Middleware configured",
        extra={"metrics_enabled": app_settings.metrics_enabled},
    )
