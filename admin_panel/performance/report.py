"""
Performance Report Assembly

Snapshots the rolling metric store and the ephemeral cache into a single
``PerformanceReport`` consumed by the admin dashboard.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from admin_panel.performance.cache import EphemeralCache
from admin_panel.performance.metric_store import MetricAggregate, RollingMetricStore


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    hit_rate: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'size': self.size,
            'hits': self.hits,
            'misses': self.misses,
            'hit_rate': self.hit_rate
        }


@dataclass(frozen=True)
class PerformanceReport:
    """
    Read-only snapshot of metric aggregates and cache statistics.
    """
    timestamp: datetime
    metrics: Dict[str, MetricAggregate] = field(default_factory=dict)
    cache_stats: CacheStats = field(default_factory=lambda: CacheStats(0, 0, 0, None))

    @property
    def cache_size(self) -> int:
        return self.cache_stats.size

    @property
    def cache_hit_rate(self) -> Optional[float]:
        return self.cache_stats.hit_rate

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to a JSON-ready dictionary."""
        return {
            'timestamp': self.timestamp.isoformat(),
            'metrics': {name: aggregate.to_dict() for name, aggregate in self.metrics.items()},
            'cache_stats': self.cache_stats.to_dict()
        }


class ReportAssembler:
    """
    Builds ``PerformanceReport`` snapshots on demand.

    The only mutation performed is the lazy expiry sweep triggered by the
    cache size query.
    """

    def __init__(
        self,
        store: RollingMetricStore,
        cache: EphemeralCache,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.store = store
        self.cache = cache
        self._clock = clock

    def build_report(self) -> PerformanceReport:
        stats = self.cache.stats()
        return PerformanceReport(
            timestamp=self._clock(),
            metrics=self.store.all_aggregates(),
            cache_stats=CacheStats(
                size=stats['size'],
                hits=stats['hits'],
                misses=stats['misses'],
                hit_rate=stats['hit_rate']
            )
        )


__all__ = [
    'CacheStats',
    'PerformanceReport',
    'ReportAssembler'
]
