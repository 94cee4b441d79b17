"""
Prometheus Metrics Collection for the Performance Toolkit

Exposes counters and gauges for the rolling metric store, the degradation
detector and the ephemeral cache. Each ``PerformanceContext`` owns its own
``CollectorRegistry`` so independent contexts (and test fixtures) never
collide on metric names in the global registry.
"""

import threading
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)


class PerformanceMetricsCollector:
    """
    Prometheus metrics collector for browser performance samples, alerts and cache usage.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = 'admin_panel'):
        """
        Initialize Prometheus metrics collector.

        Args:
            registry: Registry to register metrics on; a private one is created if omitted
            namespace: Prefix applied to every metric name
        """
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace
        self._lock = threading.Lock()

        self._init_sample_metrics()
        self._init_alert_metrics()
        self._init_cache_metrics()

    def _init_sample_metrics(self):
        """Initialize rolling metric store counters."""
        self.samples_recorded = Counter(
            'performance_samples_recorded_total',
            'Total number of performance samples recorded',
            ['metric'],
            namespace=self.namespace,
            registry=self.registry
        )

        self.latest_sample = Gauge(
            'performance_latest_sample',
            'Most recently recorded sample per metric',
            ['metric'],
            namespace=self.namespace,
            registry=self.registry
        )

    def _init_alert_metrics(self):
        """Initialize degradation detector counters."""
        self.alerts_emitted = Counter(
            'performance_alerts_total',
            'Total number of threshold breaches detected',
            ['metric'],
            namespace=self.namespace,
            registry=self.registry
        )

        self.alert_delivery_failures = Counter(
            'performance_alert_delivery_failures_total',
            'Total number of alert events the sink failed to deliver',
            ['metric'],
            namespace=self.namespace,
            registry=self.registry
        )

    def _init_cache_metrics(self):
        """Initialize ephemeral cache metrics."""
        self.cache_lookups = Counter(
            'cache_lookups_total',
            'Total number of cache lookups by result',
            ['result'],
            namespace=self.namespace,
            registry=self.registry
        )

        self.cache_entries = Gauge(
            'cache_entries',
            'Number of live cache entries at the last size check',
            namespace=self.namespace,
            registry=self.registry
        )

    def record_sample(self, metric: str, value: float) -> None:
        self.samples_recorded.labels(metric=metric).inc()
        self.latest_sample.labels(metric=metric).set(value)

    def record_alert(self, metric: str) -> None:
        self.alerts_emitted.labels(metric=metric).inc()

    def record_alert_delivery_failure(self, metric: str) -> None:
        self.alert_delivery_failures.labels(metric=metric).inc()

    def record_cache_lookup(self, hit: bool) -> None:
        self.cache_lookups.labels(result='hit' if hit else 'miss').inc()

    def update_cache_size(self, size: int) -> None:
        self.cache_entries.set(size)

    def get_sample_value(self, name: str, labels: Optional[dict] = None) -> Optional[float]:
        """
        Read back a single sample from the registry.

        Args:
            name: Full sample name without namespace, e.g. ``performance_alerts_total``
            labels: Label values identifying the sample
        """
        return self.registry.get_sample_value(f'{self.namespace}_{name}', labels or {})

    def generate_metrics_output(self) -> bytes:
        """
        Generate Prometheus exposition output for this registry.

        Returns:
            Metrics in the Prometheus text format
        """
        with self._lock:
            return generate_latest(self.registry)

    content_type = CONTENT_TYPE_LATEST


__all__ = [
    'PerformanceMetricsCollector'
]
