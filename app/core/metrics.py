"""Prometheus metric inventory.

Every metric the service exports is defined here; the owning module
imports it and increments/observes at the point of action.  Scraped
from GET /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Each progress write is two or three store round-trips, so the
    # interesting range sits between 10ms and 1s.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application metrics
# ---------------------------------------------------------------------------

PROGRESS_MUTATIONS = Counter(
    "progress_mutations_total",
    "Progress read-modify-write operations by sequence and operation",
    ["sequence", "operation"],  # operation: append|update|delete
)

AUTH_EVENTS = Counter(
    "auth_events_total",
    "Authentication events by kind and result",
    ["event", "result"],  # event: register|login|password; result: ok|rejected
)
