"""Prometheus metrics for the notification pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

from notify_service.infra.metrics.prometheus import DELIVERY_LATENCY_BUCKETS, REGISTRY

events_received_total = Counter(
    "notify_events_received_total",
    "Events handed to the dispatch pipeline",
    ["event_type", "outcome"],
    registry=REGISTRY,
)

notifications_created_total = Counter(
    "notify_notifications_created_total",
    "Notification records created",
    ["event_type", "channel"],
    registry=REGISTRY,
)

channels_skipped_total = Counter(
    "notify_channels_skipped_total",
    "Channels skipped during dispatch",
    ["channel", "reason"],
    registry=REGISTRY,
)

deliveries_total = Counter(
    "notify_deliveries_total",
    "Delivery attempts by channel and outcome",
    ["channel", "outcome"],
    registry=REGISTRY,
)

delivery_duration_seconds = Histogram(
    "notify_delivery_duration_seconds",
    "Time spent in the channel sender",
    ["channel"],
    buckets=DELIVERY_LATENCY_BUCKETS,
    registry=REGISTRY,
)

queue_enqueued_total = Counter(
    "notify_queue_enqueued_total",
    "Jobs accepted by the delivery queue",
    ["channel"],
    registry=REGISTRY,
)

queue_terminal_failures_total = Counter(
    "notify_queue_terminal_failures_total",
    "Jobs that exhausted every queue attempt",
    ["channel"],
    registry=REGISTRY,
)

admin_retries_total = Counter(
    "notify_admin_retries_total",
    "Administrative retry requests by outcome",
    ["outcome"],
    registry=REGISTRY,
)

reconciled_total = Counter(
    "notify_reconciled_total",
    "Stale records re-enqueued by the reconciliation sweep",
    registry=REGISTRY,
)
