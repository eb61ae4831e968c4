"""Prometheus metrics endpoint.

Exposes the service registry for scraping:

    scrape_configs:
      - job_name: 'notify-service'
        metrics_path: '/metrics'
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from notify_service.infra.metrics.prometheus import REGISTRY

router = APIRouter(tags=["observability"])


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics.

    Includes HTTP request metrics and the notification pipeline counters
    (events, created records, deliveries, queue failures, retries).
    """
    data = generate_latest(REGISTRY)
    return Response(
        content=data,
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
