"""
Shared metrics configuration for the CenterPoint Connect resilience layer.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, generate_latest
from typing import Dict, Any, Optional


class MetricsCollector:
    """Prometheus mirror of the resilience layer's counters.

    Each collector owns its registry unless one is supplied, so several
    pipelines (or tests) can coexist in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up the connect layer metrics."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.1.0"
        })

        self._metrics["upstream_requests_total"] = Counter(
            "upstream_requests_total",
            "Total upstream API requests",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["upstream_request_duration_seconds"] = Histogram(
            "upstream_request_duration_seconds",
            "Upstream API request duration in seconds",
            registry=self.registry
        )

        self._metrics["auth_events_total"] = Counter(
            "auth_events_total",
            "Total authentication events",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["cache_lookups_total"] = Counter(
            "cache_lookups_total",
            "Total response cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["batch_flushes_total"] = Counter(
            "batch_flushes_total",
            "Total batch flushes",
            ["trigger", "outcome"],
            registry=self.registry
        )

        self._metrics["batch_size"] = Histogram(
            "batch_size",
            "Number of requests per flushed batch",
            buckets=(1, 2, 5, 10, 20, 50, 100),
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

    def render(self) -> bytes:
        """Render the registry in Prometheus exposition format."""
        return generate_latest(self.registry)

    def record_upstream_request(self, success: bool, duration: float):
        """Record an upstream request outcome; duration is in seconds."""
        outcome = "success" if success else "failure"
        self._metrics["upstream_requests_total"].labels(outcome=outcome).inc()
        self._metrics["upstream_request_duration_seconds"].observe(duration)

    def record_auth(self, outcome: str):
        self._metrics["auth_events_total"].labels(outcome=outcome).inc()

    def record_cache_lookup(self, hit: bool):
        self._metrics["cache_lookups_total"].labels(result="hit" if hit else "miss").inc()

    def record_batch_flush(self, trigger: str, outcome: str, size: int):
        self._metrics["batch_flushes_total"].labels(trigger=trigger, outcome=outcome).inc()
        self._metrics["batch_size"].observe(size)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str):
        """Record error metrics."""
        self._metrics["errors_total"].labels(error_type=error_type).inc()

