"""
Performance Toolkit Package

Rolling metric windows, fixed-threshold degradation detection, a TTL-bounded
ephemeral cache and on-demand performance reports for the admin panel.

Usage Example:
    >>> from admin_panel.performance import PerformanceContext
    >>> context = PerformanceContext()
    >>> context.record('LCP', 3100.0)
    True
    >>> context.build_report().metrics['LCP'].latest
    3100.0
"""

from .cache import DEFAULT_TTL_SECONDS, CacheEntry, EphemeralCache, structural_clone
from .context import PerformanceContext, PeriodicTask
from .detector import (
    DEFAULT_THRESHOLDS,
    AlertEvent,
    AlertSink,
    AlertSinkMode,
    DegradationDetector,
    HTTPAlertSink,
    LoggingAlertSink,
)
from .exceptions import (
    AlertDeliveryError,
    InvalidMetricValueError,
    PerformanceError,
    SerializationError,
)
from .metric_store import DEFAULT_MAX_SAMPLES, MetricAggregate, RollingMetricStore
from .report import CacheStats, PerformanceReport, ReportAssembler

__all__ = [
    # Context
    'PerformanceContext',
    'PeriodicTask',

    # Metric store
    'DEFAULT_MAX_SAMPLES',
    'MetricAggregate',
    'RollingMetricStore',

    # Detection
    'DEFAULT_THRESHOLDS',
    'AlertEvent',
    'AlertSink',
    'AlertSinkMode',
    'DegradationDetector',
    'HTTPAlertSink',
    'LoggingAlertSink',

    # Cache
    'DEFAULT_TTL_SECONDS',
    'CacheEntry',
    'EphemeralCache',
    'structural_clone',

    # Reporting
    'CacheStats',
    'PerformanceReport',
    'ReportAssembler',

    # Exceptions
    'PerformanceError',
    'SerializationError',
    'AlertDeliveryError',
    'InvalidMetricValueError'
]
