"""Prometheus metrics for the write-behind queue and the bulk loader."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

SYSTEM_INFO = Info("entity_sync", "Entity sync engine information")

# ---------------------------------------------------------------------------
# Queue metrics
# ---------------------------------------------------------------------------

TASKS_ENQUEUED = Counter(
    "entity_sync_tasks_enqueued_total",
    "Persistence tasks pushed onto the queue",
    ["collection", "kind"],
)

TASKS_EXECUTED = Counter(
    "entity_sync_tasks_executed_total",
    "Persistence tasks applied to the store",
    ["collection", "kind"],
)

TASK_FAILURES = Counter(
    "entity_sync_task_failures_total",
    "Persistence tasks that raised",
    ["collection", "kind"],
)

QUEUE_DEPTH = Gauge(
    "entity_sync_queue_depth",
    "Tasks waiting in the queue",
    ["queue"],
)

TASK_LATENCY = Histogram(
    "entity_sync_task_latency_seconds",
    "Store round-trip time per task",
    ["kind"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
)

# ---------------------------------------------------------------------------
# Loader metrics
# ---------------------------------------------------------------------------

DOCUMENTS_LOADED = Counter(
    "entity_sync_documents_loaded_total",
    "Documents hydrated into repositories",
    ["collection"],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus metrics HTTP server in a background thread."""
    SYSTEM_INFO.info({"version": "0.1.0"})
    start_http_server(port)


# ---------------------------------------------------------------------------
# Convenience helpers
# ---------------------------------------------------------------------------


def record_enqueued(collection: str, kind: str) -> None:
    TASKS_ENQUEUED.labels(collection=collection, kind=kind).inc()


def record_executed(collection: str, kind: str, seconds: float) -> None:
    TASKS_EXECUTED.labels(collection=collection, kind=kind).inc()
    TASK_LATENCY.labels(kind=kind).observe(seconds)


def record_failure(collection: str, kind: str) -> None:
    TASK_FAILURES.labels(collection=collection, kind=kind).inc()


def update_queue_depth(queue: str, depth: int) -> None:
    QUEUE_DEPTH.labels(queue=queue).set(depth)


def record_documents_loaded(collection: str, count: int) -> None:
    DOCUMENTS_LOADED.labels(collection=collection).inc(count)
