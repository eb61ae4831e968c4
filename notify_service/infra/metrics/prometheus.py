"""Prometheus registry and shared bucket layouts."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Histogram, Info

# Custom registry so tests and multiple app instances never collide on the default one
REGISTRY = CollectorRegistry()

# Covers response times from 1ms to 10s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)

# Provider calls are slower; 10ms to 60s
DELIVERY_LATENCY_BUCKETS = (
    0.01,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
)

# HTTP metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

application_info = Info(
    "application",
    "Application version and environment",
    registry=REGISTRY,
)

# Taskiq metrics
taskiq_tasks_total = Counter(
    "taskiq_tasks_total",
    "Taskiq task executions by outcome",
    ["task_name", "status"],
    registry=REGISTRY,
)

taskiq_task_duration_seconds = Histogram(
    "taskiq_task_duration_seconds",
    "Taskiq task execution time in seconds",
    ["task_name"],
    buckets=DELIVERY_LATENCY_BUCKETS,
    registry=REGISTRY,
)
