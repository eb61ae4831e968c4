"""Metrics infrastructure for Prometheus monitoring."""

from __future__ import annotations

from prometheus_client import generate_latest

from notify_service.infra.metrics.prometheus import (
    DEFAULT_LATENCY_BUCKETS,
    DELIVERY_LATENCY_BUCKETS,
    REGISTRY,
    application_info,
    http_request_duration_seconds,
    http_requests_total,
    taskiq_task_duration_seconds,
    taskiq_tasks_total,
)

__all__ = [
    "DEFAULT_LATENCY_BUCKETS",
    "DELIVERY_LATENCY_BUCKETS",
    "REGISTRY",
    "application_info",
    "generate_latest",
    "http_request_duration_seconds",
    "http_requests_total",
    "taskiq_task_duration_seconds",
    "taskiq_tasks_total",
]
