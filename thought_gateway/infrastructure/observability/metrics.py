"""Prometheus metrics for bank builds, credit usage, entitlement events and generation latency"""

from prometheus_client import Counter, Histogram

# Bank metrics
filter_mode_counter = Counter(
    "thought_filter_mode_total",
    "Generated batches by word-filter mode",
    ["mode"],  # strict | relax1 | relax2 | exhausted
)

bank_build_counter = Counter(
    "thought_bank_builds_total",
    "Daily bank build attempts by outcome",
    ["outcome"],  # built | exists | too_small | failed
)

bank_lookup_counter = Counter(
    "thought_bank_lookups_total",
    "Daily bank lookups by source",
    ["source"],  # today | latest-fallback | none
)

# Ledger metrics
credit_spend_counter = Counter(
    "credit_spend_total",
    "Credit spend attempts",
    ["pool", "outcome"],  # outcome: ok | limit_reached
)

credit_refund_failure_counter = Counter(
    "credit_refund_failures_total",
    "Compensating grants that failed after a paid action failed",
)

entitlement_event_counter = Counter(
    "entitlement_events_total",
    "Store notifications by outcome",
    ["outcome"],  # granted | duplicate | ignored
)

# Classification cache
fingerprint_cache_counter = Counter(
    "fingerprint_cache_lookups_total",
    "Classification cache lookups",
    ["result"],  # hit | miss
)

# Generation service metrics
generation_latency_histogram = Histogram(
    "generation_latency_seconds",
    "Generation service response time",
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0],
)

generation_failure_counter = Counter(
    "generation_failures_total",
    "Failed generation service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_spend(pool: str, ok: bool) -> None:
    """Record spend outcome so limit-reached rates are visible per pool"""
    credit_spend_counter.labels(pool=pool, outcome="ok" if ok else "limit_reached").inc()
