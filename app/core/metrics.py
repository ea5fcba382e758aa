"""
Prometheus metrics for the tournament API.

Metrics exposed:
- Upstream tournament API request counters and latency
- Sync operation outcome counters
- Records upserted per entity type
- Scheduler status gauge
"""
from prometheus_client import Counter, Gauge, Histogram

# Upstream API Metrics
upstream_requests_total = Counter(
    "upstream_requests_total",
    "Total requests sent to the upstream tournament API",
    ["endpoint", "outcome"]
)

upstream_request_duration_seconds = Histogram(
    "upstream_request_duration_seconds",
    "Upstream tournament API latency in seconds",
    ["endpoint"]
)

# Sync Metrics
sync_operations_total = Counter(
    "sync_operations_total",
    "Sync operations by outcome",
    ["operation", "outcome"]
)

sync_records_upserted_total = Counter(
    "sync_records_upserted_total",
    "Rows written by sync operations",
    ["entity", "action"]
)

# Scheduler Metrics
scheduler_running = Gauge(
    "scheduler_running",
    "Whether the full-sync scheduler is running (1) or not (0)"
)


def record_upstream_request(endpoint: str, outcome: str, duration: float) -> None:
    """Record one upstream call; outcome is 'success', 'http_error' or 'transport_error'."""
    upstream_requests_total.labels(endpoint=endpoint, outcome=outcome).inc()
    upstream_request_duration_seconds.labels(endpoint=endpoint).observe(duration)


def record_sync_result(operation: str, success: bool) -> None:
    """Record the outcome of a sync operation."""
    sync_operations_total.labels(
        operation=operation,
        outcome="success" if success else "failure"
    ).inc()


def record_upsert(entity: str, created: bool) -> None:
    """Record a single construct-then-merge write."""
    sync_records_upserted_total.labels(
        entity=entity,
        action="created" if created else "updated"
    ).inc()


def update_scheduler_metrics() -> None:
    """Refresh the scheduler gauge from the live scheduler."""
    from app.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    scheduler_running.set(1 if scheduler is not None and scheduler.running else 0)
