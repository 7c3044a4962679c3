"""
Shared metrics configuration for the entity cache.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, start_http_server
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for cache operations."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # A private registry lets several caches live in one process
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""

        self._metrics["service_info"] = Info(
            "entity_cache_build",
            "Entity cache information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["cache_operations_total"] = Counter(
            "entity_cache_operations_total",
            "Total cache-assisted reads",
            ["entity", "outcome"],
            registry=self.registry
        )

        self._metrics["cache_operation_duration_seconds"] = Histogram(
            "entity_cache_operation_duration_seconds",
            "Cache-assisted read duration in seconds",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["cache_evictions_total"] = Counter(
            "entity_cache_evictions_total",
            "Total keys deleted by bulk eviction",
            ["scope", "status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "entity_cache_errors_total",
            "Total cache errors",
            ["error_type"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        start_http_server(port, registry=self.registry)

    def record_operation(self, entity: str, cache_hit: bool, duration: Optional[float]):
        """Record one cache-assisted read."""
        outcome = "hit" if cache_hit else "miss"
        with self._lock:
            self._metrics["cache_operations_total"].labels(entity=entity, outcome=outcome).inc()
            if duration is not None:
                self._metrics["cache_operation_duration_seconds"].labels(outcome=outcome).observe(duration)

    def record_eviction(self, scope: str, deleted: int, failed: int):
        """Record the outcome of a bulk eviction."""
        with self._lock:
            if deleted:
                self._metrics["cache_evictions_total"].labels(scope=scope, status="deleted").inc(deleted)
            if failed:
                self._metrics["cache_evictions_total"].labels(scope=scope, status="failed").inc(failed)

    def record_error(self, error_type: str):
        """Record error metrics."""
        self._metrics["errors_total"].labels(error_type=error_type).inc()

    def sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read back a sample value from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a cache instance."""
    return MetricsCollector(service_name, registry)
