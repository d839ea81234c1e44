"""
Prometheus metrics for the SCM adapter.

Defines the metrics emitted for provider calls, circuit breaker health and
webhook normalization outcomes.
"""

from prometheus_client import Counter, Gauge, Histogram

# ============================================================================
# Provider Call Metrics
# ============================================================================

scm_requests_total = Counter(
    "scm_adapter_requests_total",
    "Total provider API calls by outcome",
    labelnames=("scm_context", "caller", "outcome"),  # outcome: success/rejected/unavailable/error
)

scm_request_duration_seconds = Histogram(
    "scm_adapter_request_duration_seconds",
    "Time taken for provider API calls",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
    labelnames=("scm_context", "caller"),
)

scm_request_retry_total = Counter(
    "scm_adapter_request_retry_total",
    "Total provider API call retries",
    labelnames=("scm_context", "caller"),
)

# ============================================================================
# Circuit Breaker Metrics
# ============================================================================

breaker_state = Gauge(
    "scm_adapter_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    labelnames=("scm_context",),
)

breaker_rejections_total = Counter(
    "scm_adapter_breaker_rejections_total",
    "Total calls short-circuited by an open breaker",
    labelnames=("scm_context",),
)

breaker_transitions_total = Counter(
    "scm_adapter_breaker_transitions_total",
    "Total circuit breaker state transitions",
    labelnames=("scm_context", "to_state"),
)

# ============================================================================
# Webhook Metrics
# ============================================================================

webhook_received_total = Counter(
    "scm_adapter_webhook_received_total",
    "Total webhooks received",
    labelnames=("scm_context",),
)

webhook_normalized_total = Counter(
    "scm_adapter_webhook_normalized_total",
    "Total webhook normalization outcomes",
    labelnames=("scm_context", "result"),  # result: event/ignored/invalid
)

# ============================================================================
# Commit Status Metrics
# ============================================================================

commit_status_failures_total = Counter(
    "scm_adapter_commit_status_failures_total",
    "Total best-effort commit status updates that did not land",
    labelnames=("scm_context", "reason"),
)
