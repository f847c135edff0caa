"""Prometheus metrics for upstream calls and itinerary pipeline outcomes."""

from prometheus_client import Counter, Histogram

# Upstream (generation/edit service) metrics
upstream_latency_ms = Histogram(
    "upstream_latency_ms",
    "Itinerary server call latency in milliseconds",
    ["endpoint", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 5000, 15000, 60000, 120000, 300000],
)

upstream_errors_total = Counter(
    "upstream_errors_total",
    "Total itinerary server call errors",
    ["endpoint", "reason"],
)

# Pipeline outcomes
itineraries_generated_total = Counter(
    "itineraries_generated_total",
    "Total itinerary generations",
    ["mode", "outcome"],
)

itinerary_edits_total = Counter(
    "itinerary_edits_total",
    "Total itinerary edit patches",
    ["operation", "outcome"],
)


class PrometheusUpstreamMetrics:
    """Prometheus-based upstream metrics implementation."""

    def record_latency(self, endpoint: str, outcome: str, latency_ms: float) -> None:
        """Record upstream call latency."""
        upstream_latency_ms.labels(endpoint=endpoint, outcome=outcome).observe(latency_ms)

    def inc_error(self, endpoint: str, reason: str) -> None:
        """Increment error counter."""
        upstream_errors_total.labels(endpoint=endpoint, reason=reason).inc()


def record_generation(mode: str, outcome: str) -> None:
    """Count one generation attempt by mode ("single" or "stream") and outcome."""
    itineraries_generated_total.labels(mode=mode, outcome=outcome).inc()


def record_edit(operation: str, outcome: str) -> None:
    """Count one edit attempt by operation and outcome."""
    itinerary_edits_total.labels(operation=operation, outcome=outcome).inc()
