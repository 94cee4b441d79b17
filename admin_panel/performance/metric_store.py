"""
Rolling Metric Store

Holds, per metric name, a bounded window of the most recent numeric samples
and computes aggregates on demand. Browser instrumentation feeds Core Web
Vitals (LCP, FID, CLS) into the store; the report assembler reads every
series back as ``MetricAggregate`` snapshots.
"""

import math
import numbers
import threading
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, List, Optional

from admin_panel.monitoring.logging import get_logger
from admin_panel.performance.exceptions import InvalidMetricValueError

logger = get_logger(__name__)

DEFAULT_MAX_SAMPLES = 100


@dataclass(frozen=True)
class MetricAggregate:
    """
    Aggregate view of a single metric's retained window.

    ``avg`` is computed over retained samples only; evicted samples are gone for good.
    """
    avg: float
    min: float
    max: float
    latest: float
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert aggregate to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_samples(cls, samples: List[float]) -> 'MetricAggregate':
        return cls(
            avg=math.fsum(samples) / len(samples),
            min=min(samples),
            max=max(samples),
            latest=samples[-1],
            sample_count=len(samples)
        )


def validate_sample(name: Any, value: Any) -> float:
    """
    Validate a metric sample and normalize it to ``float``.

    Raises:
        InvalidMetricValueError: blank name, or a value that is not a finite real number
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidMetricValueError("Metric name must be a non-empty string", name, value)

    # bool is an int subclass but never a meaningful sample
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidMetricValueError(
            f"Metric '{name}' requires a numeric sample, got {type(value).__name__}",
            name,
            value
        )

    sample = float(value)
    if not math.isfinite(sample):
        raise InvalidMetricValueError(f"Metric '{name}' received a non-finite sample", name, value)

    return sample


class RollingMetricStore:
    """
    Per-metric FIFO windows of recent samples.

    Series are created lazily on the first ``record`` for a name and live for
    the lifetime of the store.
    """

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES):
        if max_samples < 1:
            raise ValueError("max_samples must be at least 1")

        self.max_samples = max_samples
        self._series: Dict[str, Deque[float]] = {}
        self._lock = threading.RLock()

    def record(self, name: str, value: float) -> None:
        """
        Append a sample to the named series, evicting the oldest beyond ``max_samples``.

        Args:
            name: Metric identifier, e.g. ``"LCP"``
            value: Finite numeric sample

        Raises:
            InvalidMetricValueError: if the name or value is invalid
        """
        sample = validate_sample(name, value)

        with self._lock:
            series = self._series.get(name)
            if series is None:
                series = deque(maxlen=self.max_samples)
                self._series[name] = series
                logger.debug("Metric series created", metric=name, max_samples=self.max_samples)
            series.append(sample)

    def samples(self, name: str) -> List[float]:
        """Return a copy of the retained samples for ``name``, oldest first."""
        with self._lock:
            return list(self._series.get(name, ()))

    def aggregate(self, name: str) -> Optional[MetricAggregate]:
        """
        Aggregate the retained window of a metric.

        Returns:
            ``MetricAggregate`` or None when nothing has been recorded for ``name``
        """
        samples = self.samples(name)
        if not samples:
            return None
        return MetricAggregate.from_samples(samples)

    def all_aggregates(self) -> Dict[str, MetricAggregate]:
        """
        Aggregate every series from one consistent snapshot.

        Each series is copied under the lock first, so no aggregate is computed
        from a window mutated mid-computation.
        """
        with self._lock:
            snapshot = {name: list(series) for name, series in self._series.items()}

        return {
            name: MetricAggregate.from_samples(samples)
            for name, samples in snapshot.items()
            if samples
        }

    def metric_names(self) -> List[str]:
        with self._lock:
            return list(self._series)

    def clear(self) -> None:
        """Drop every series. Only used on teardown."""
        with self._lock:
            self._series.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._series)


__all__ = [
    'DEFAULT_MAX_SAMPLES',
    'MetricAggregate',
    'RollingMetricStore',
    'validate_sample'
]
