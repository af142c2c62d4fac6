"""Prometheus metrics for document store requests."""

from prometheus_client import Counter, Histogram

store_request_latency_ms = Histogram(
    "store_request_latency_ms",
    "Document store request latency in milliseconds",
    ["operation", "outcome"],
    buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 15000],
)

store_request_errors_total = Counter(
    "store_request_errors_total",
    "Total failed document store request attempts",
    ["operation", "reason"],
)

store_request_retries_total = Counter(
    "store_request_retries_total",
    "Total document store request retries",
    ["operation"],
)


class PrometheusRequestMetrics:
    """Prometheus-based request metrics implementation."""

    def record_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record one attempt's latency by outcome."""
        store_request_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)

    def inc_error(self, operation: str, reason: str) -> None:
        """Count a failed attempt by reason."""
        store_request_errors_total.labels(operation=operation, reason=reason).inc()

    def inc_retry(self, operation: str) -> None:
        """Count a retry after a transient failure."""
        store_request_retries_total.labels(operation=operation).inc()
