"""
Performance Context

Explicit service object wiring the rolling metric store, the degradation
detector, the ephemeral cache and the report assembler together. The Flask
application factory builds one context at startup and stores it on
``app.extensions['performance']``; tests build as many isolated contexts as
they need.

Background work is limited to two ``PeriodicTask`` threads started by
``start()``: the cache sweep and the report refresh. ``cleanup()`` stops both
and releases every resource the context holds.
"""

import json
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from admin_panel.monitoring.logging import get_logger
from admin_panel.monitoring.metrics import PerformanceMetricsCollector
from admin_panel.performance.cache import DEFAULT_TTL_SECONDS, EphemeralCache
from admin_panel.performance.detector import (
    AlertSink,
    AlertSinkMode,
    DegradationDetector,
    HTTPAlertSink,
    LoggingAlertSink,
)
from admin_panel.performance.metric_store import (
    DEFAULT_MAX_SAMPLES,
    MetricAggregate,
    RollingMetricStore,
    validate_sample,
)
from admin_panel.performance.report import PerformanceReport, ReportAssembler

logger = get_logger(__name__)

DEFAULT_SWEEP_INTERVAL = 60.0
DEFAULT_REPORT_REFRESH_INTERVAL = 30.0


class PeriodicTask:
    """
    Runs ``func`` every ``interval`` seconds on a daemon thread until stopped.

    Exceptions raised by ``func`` are logged and the schedule continues.
    """

    def __init__(self, name: str, interval: float, func: Callable[[], Any]):
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.name = name
        self.interval = float(interval)
        self.func = func
        self.runs = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=f'perf-{self.name}', daemon=True)
        self._thread.start()
        logger.debug("Periodic task started", task=self.name, interval=self.interval)

    def run_once(self) -> None:
        try:
            self.func()
        except Exception:
            logger.error("Periodic task failed", task=self.name, exc_info=True)
        finally:
            self.runs += 1

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.run_once()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)


def _parse_thresholds(raw: Any) -> Dict[str, float]:
    if not raw:
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        raise ValueError("PERFORMANCE_THRESHOLDS must be a mapping of metric name to threshold")
    return {str(name): float(value) for name, value in raw.items()}


class PerformanceContext:
    """
    Facade over the performance toolkit components.
    """

    def __init__(
        self,
        store: Optional[RollingMetricStore] = None,
        cache: Optional[EphemeralCache] = None,
        detector: Optional[DegradationDetector] = None,
        metrics: Optional[PerformanceMetricsCollector] = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        report_refresh_interval: Optional[float] = DEFAULT_REPORT_REFRESH_INTERVAL
    ):
        self.metrics = metrics if metrics is not None else PerformanceMetricsCollector()
        self.store = store if store is not None else RollingMetricStore()
        self.cache = cache if cache is not None else EphemeralCache(metrics=self.metrics)
        self.detector = detector if detector is not None else DegradationDetector(metrics=self.metrics)
        self.assembler = ReportAssembler(self.store, self.cache)

        self._tasks: List[PeriodicTask] = [
            PeriodicTask('cache-sweep', sweep_interval, self.cache.sweep)
        ]
        if report_refresh_interval:
            self._tasks.append(
                PeriodicTask('report-refresh', report_refresh_interval, self.refresh_report)
            )
        self._last_report: Optional[PerformanceReport] = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'PerformanceContext':
        """
        Build a context from a Flask-style configuration mapping.

        Args:
            config: Mapping with the PERFORMANCE_*, CACHE_*, REPORT_* and ALERT_* keys
        """
        metrics = PerformanceMetricsCollector()

        sink: AlertSink
        endpoint_url = config.get('ALERT_ENDPOINT_URL')
        if endpoint_url:
            sink = HTTPAlertSink(
                endpoint_url,
                timeout=float(config.get('ALERT_TIMEOUT', 5.0)),
                max_attempts=int(config.get('ALERT_MAX_ATTEMPTS', 3)),
                backoff=float(config.get('ALERT_RETRY_BACKOFF', 0.5))
            )
        else:
            sink = LoggingAlertSink()

        detector = DegradationDetector(
            thresholds=_parse_thresholds(config.get('PERFORMANCE_THRESHOLDS')),
            sink=sink,
            mode=AlertSinkMode.parse(config.get('ALERT_SINK', AlertSinkMode.DISABLED)),
            metrics=metrics
        )

        context = cls(
            store=RollingMetricStore(int(config.get('PERFORMANCE_MAX_SAMPLES', DEFAULT_MAX_SAMPLES))),
            cache=EphemeralCache(
                default_ttl=float(config.get('CACHE_DEFAULT_TTL', DEFAULT_TTL_SECONDS)),
                metrics=metrics
            ),
            detector=detector,
            metrics=metrics,
            sweep_interval=float(config.get('CACHE_SWEEP_INTERVAL', DEFAULT_SWEEP_INTERVAL)),
            report_refresh_interval=float(
                config.get('REPORT_REFRESH_INTERVAL', DEFAULT_REPORT_REFRESH_INTERVAL)
            )
        )

        logger.info(
            "Performance context configured",
            max_samples=context.store.max_samples,
            cache_default_ttl=context.cache.default_ttl,
            alert_sink=type(sink).__name__,
            alert_mode=detector.mode.value,
            thresholds=detector.thresholds
        )
        return context

    # Metrics

    def record(self, name: str, value: float) -> bool:
        """
        Record a sample and run degradation detection inline.

        Returns:
            True when the sample exceeded its threshold
        """
        sample = validate_sample(name, value)
        self.store.record(name, sample)
        self.metrics.record_sample(name, sample)
        return self.detector.check(name, sample)

    def aggregate(self, name: str) -> Optional[MetricAggregate]:
        return self.store.aggregate(name)

    def all_aggregates(self) -> Dict[str, MetricAggregate]:
        return self.store.all_aggregates()

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """
        Record the elapsed wall time of a block, in milliseconds, as a sample of ``name``.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000.0)

    def track_performance(self, name: str) -> Callable:
        """
        Decorator form of ``measure``.
        """
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs):
                with self.measure(name):
                    return func(*args, **kwargs)
            return wrapper
        return decorator

    # Cache

    def cache_set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self.cache.set(key, value, ttl)

    def cache_get(self, key: str, default: Any = None) -> Any:
        return self.cache.get(key, default)

    def cache_size(self) -> int:
        return self.cache.size()

    def cache_clear(self) -> None:
        self.cache.clear()

    # Reporting

    def build_report(self) -> PerformanceReport:
        return self.assembler.build_report()

    def refresh_report(self) -> PerformanceReport:
        report = self.build_report()
        self._last_report = report
        logger.debug(
            "Performance report refreshed",
            metrics=len(report.metrics),
            cache_size=report.cache_size
        )
        return report

    @property
    def last_report(self) -> Optional[PerformanceReport]:
        return self._last_report

    # Lifecycle

    @property
    def tasks(self) -> List[PeriodicTask]:
        return list(self._tasks)

    def start(self) -> None:
        for task in self._tasks:
            task.start()
        logger.info("Performance background tasks started", tasks=[task.name for task in self._tasks])

    def cleanup(self) -> None:
        """
        Stop background tasks and release every resource. Idempotent.
        """
        for task in self._tasks:
            task.stop()

        self.cache.clear()
        self.cache.reset_stats()
        self.store.clear()
        self.detector.clear()
        self.detector.close()
        self._last_report = None

        logger.info("Performance context cleaned up", cleaned_at=datetime.now(timezone.utc).isoformat())


__all__ = [
    'DEFAULT_SWEEP_INTERVAL',
    'DEFAULT_REPORT_REFRESH_INTERVAL',
    'PeriodicTask',
    'PerformanceContext'
]
