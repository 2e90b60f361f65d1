"""Prometheus metrics shared by the HTTP layer and the generation pipeline."""

from prometheus_client import Counter, Gauge, Histogram

# HTTP metrics
REQUESTS_TOTAL = Counter(
    "contentgen_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "contentgen_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

REQUEST_SECONDS = Histogram(
    "contentgen_http_request_duration_seconds",
    "Time spent handling HTTP requests",
    labelnames=["path"],
)

RATE_LIMITED_TOTAL = Counter(
    "contentgen_rate_limited_total",
    "Requests rejected by the rate limiter",
    labelnames=["scope"],
)

# Pipeline metrics
BATCHES_STARTED = Counter(
    "contentgen_batches_started_total",
    "Batches dispatched, including retry rounds",
    labelnames=["provider", "kind"],
)

BATCHES_FINISHED = Counter(
    "contentgen_batches_finished_total",
    "Batches that reached a terminal status",
    labelnames=["status"],
)

ACTIVE_BATCHES = Gauge(
    "contentgen_active_batches",
    "Number of batches currently being processed",
)

ITEMS_PROCESSED = Counter(
    "contentgen_items_processed_total",
    "Content items processed",
    labelnames=["provider", "status"],
)

GENERATION_SECONDS = Histogram(
    "contentgen_generation_seconds",
    "Time spent waiting for the provider per item",
    labelnames=["provider"],
    buckets=(1, 2.5, 5, 10, 20, 30, 60, 90, 120, 180),
)

EXPORT_FAILURES = Counter(
    "contentgen_export_failures_total",
    "Best-effort document exports that failed",
)
