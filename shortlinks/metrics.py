"""Prometheus metrics shared by the core components.

HTTP-level metrics (request counts, latencies per route) come from
prometheus-fastapi-instrumentator in main.py; these counters cover what the
HTTP layer cannot see: index and counter side effects, and corruption.
"""

from prometheus_client import Counter, Histogram

__all__ = [
    "ADMIN_OPERATIONS_TOTAL",
    "REDIRECT_RESOLUTIONS_TOTAL",
    "REDIRECT_RESOLUTION_DURATION",
    "INDEX_WRITES_TOTAL",
    "SIDE_EFFECT_FAILURES_TOTAL",
    "CORRUPTED_RECORDS_TOTAL",
]

ADMIN_OPERATIONS_TOTAL = Counter(
    "shortlinks_admin_operations_total",
    "Total admin mutations on redirect records",
    ["operation", "status"],
)

REDIRECT_RESOLUTIONS_TOTAL = Counter(
    "shortlinks_redirect_resolutions_total",
    "Total public redirect resolutions",
    ["status"],
)
REDIRECT_RESOLUTION_DURATION = Histogram(
    "shortlinks_redirect_resolution_duration_seconds",
    "Time taken to resolve a redirect (excluding the click increment)",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)

INDEX_WRITES_TOTAL = Counter(
    "shortlinks_index_writes_total",
    "Index partition rewrites",
    ["operation"],
)

# Logged and not raised to the caller.
SIDE_EFFECT_FAILURES_TOTAL = Counter(
    "shortlinks_side_effect_failures_total",
    "Failed best-effort writes to click counters or index partitions",
    ["component", "operation"],
)

CORRUPTED_RECORDS_TOTAL = Counter(
    "shortlinks_corrupted_records_total",
    "Stored values that failed to parse",
    ["namespace"],
)
