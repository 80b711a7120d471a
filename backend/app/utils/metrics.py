"""Prometheus metrics for itinerary lineage, feedback and generation."""

from prometheus_client import Counter, Histogram

versions_created_total = Counter(
    "versions_created_total",
    "Total itinerary versions created",
    ["source_type"],
)

conflicts_detected_total = Counter(
    "conflicts_detected_total",
    "Total comment conflicts found by detection scans",
)

cache_matches_total = Counter(
    "cache_matches_total",
    "Total cache matcher results",
    ["match_type"],
)

generation_failures_total = Counter(
    "generation_failures_total",
    "Total failed AI generation calls",
    ["operation", "reason"],
)

llm_latency_ms = Histogram(
    "llm_latency_ms",
    "AI collaborator call latency in milliseconds",
    ["operation", "outcome"],
    buckets=[100, 500, 1000, 2000, 5000, 10000, 30000, 60000, 120000],
)


class PrometheusRevisionMetrics:
    """Prometheus-based metrics implementation."""

    def inc_version(self, source_type: str) -> None:
        """Increment versions created counter."""
        versions_created_total.labels(source_type=source_type).inc()

    def inc_conflicts(self, count: int) -> None:
        """Add newly found conflicts."""
        if count > 0:
            conflicts_detected_total.inc(count)

    def inc_cache_match(self, match_type: str) -> None:
        """Increment cache match counter. ``none`` records a miss."""
        cache_matches_total.labels(match_type=match_type).inc()

    def inc_generation_failure(self, operation: str, reason: str) -> None:
        """Increment generation failure counter."""
        generation_failures_total.labels(operation=operation, reason=reason).inc()

    def record_llm_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record AI call latency."""
        llm_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)


metrics = PrometheusRevisionMetrics()
