# src/tracking/metrics.py — v1
"""Prometheus metrics for cache behaviour, computation latency and tokens.

Exposed through the default registry; scraping and dashboards are the
embedding service's concern.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# -- Cache traffic --
CACHE_REQUESTS = Counter(
    "depcontext_cache_requests_total",
    "Cache lookups by namespace and outcome (hit, miss, coalesced, expired)",
    ["namespace", "outcome"],
)

# -- Computation --
COMPUTE_DURATION = Histogram(
    "depcontext_compute_duration_seconds",
    "Duration of validation/aggregation computations behind the cache",
    ["namespace"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

COMPUTE_ERRORS = Counter(
    "depcontext_compute_errors_total",
    "Failed computations behind the cache",
    ["namespace"],
)

INFLIGHT_COMPUTATIONS = Gauge(
    "depcontext_inflight_computations",
    "Computations currently in flight",
    ["namespace"],
)

# -- Tokens --
AGGREGATED_TOKENS = Histogram(
    "depcontext_aggregated_context_tokens",
    "Total tokens per aggregated context",
    buckets=(0, 250, 500, 1000, 1500, 2000, 2500, 3000, 3500, 5000),
)

# -- Housekeeping --
INVALIDATED_ENTRIES = Counter(
    "depcontext_cache_invalidated_entries_total",
    "Entries removed by invalidation",
    ["namespace"],
)

REAPED_ENTRIES = Counter(
    "depcontext_cache_reaped_entries_total",
    "Expired entries removed by the reaper",
    ["namespace"],
)

REAPER_FAILURES = Counter(
    "depcontext_cache_reaper_failures_total",
    "Reaper sweeps that raised",
    ["namespace"],
)
