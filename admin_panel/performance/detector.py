"""
Degradation Detector

Compares each new sample against a static per-metric threshold table and,
on breach, emits an ``AlertEvent``. Detection runs inline with ``record`` so
the alert is observable before ``record`` returns; delivery to the sink is
best-effort and never propagates failures to the caller.

Default thresholds follow the Core Web Vitals "good" ceilings:

- LCP (Largest Contentful Paint): 2500 ms
- FID (First Input Delay): 100 ms
- CLS (Cumulative Layout Shift): 0.1
"""

import math
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Protocol

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from admin_panel.monitoring.logging import get_logger
from admin_panel.monitoring.metrics import PerformanceMetricsCollector
from admin_panel.performance.exceptions import AlertDeliveryError

logger = get_logger(__name__)

DEFAULT_THRESHOLDS: Dict[str, float] = {
    'LCP': 2500.0,
    'FID': 100.0,
    'CLS': 0.1,
}

RECENT_ALERTS_LIMIT = 50


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AlertSinkMode(Enum):
    """Whether alert events are delivered to the configured sink."""
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def parse(cls, value: Any) -> 'AlertSinkMode':
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.ENABLED if value else cls.DISABLED
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown alert sink mode: {value!r}") from None


@dataclass(frozen=True)
class AlertEvent:
    """A single threshold breach. Transient; never batched or de-duplicated."""
    metric_name: str
    value: float
    threshold: float
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metric_name': self.metric_name,
            'value': self.value,
            'threshold': self.threshold,
            'timestamp': self.timestamp.isoformat()
        }


class AlertSink(Protocol):
    """Destination for alert events."""

    def on_alert(self, event: AlertEvent) -> None:
        ...


class LoggingAlertSink:
    """Default sink: writes alert events to the structured log."""

    def __init__(self, logger_name: str = 'admin_panel.alerts'):
        self._logger = get_logger(logger_name)

    def on_alert(self, event: AlertEvent) -> None:
        self._logger.warning("Performance alert delivered", **event.to_dict())


class HTTPAlertSink:
    """
    Forwards alert events as JSON to an operator-supplied endpoint.

    Transport errors and non-2xx responses are retried with exponential
    backoff; once attempts are exhausted an ``AlertDeliveryError`` is raised.
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 5.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
        session: Optional[requests.Session] = None
    ):
        if not endpoint_url:
            raise ValueError("endpoint_url is required for HTTPAlertSink")

        self.endpoint_url = endpoint_url
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.backoff = backoff
        self._session = session or requests.Session()

    def _post(self, payload: Dict[str, Any]) -> None:
        response = self._session.post(self.endpoint_url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    def on_alert(self, event: AlertEvent) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            retry=retry_if_exception_type(requests.RequestException),
            reraise=True
        )
        try:
            retrying(self._post, event.to_dict())
        except requests.RequestException as exc:
            raise AlertDeliveryError(
                f"Failed to deliver alert for {event.metric_name} to {self.endpoint_url}",
                metric_name=event.metric_name,
                sink=type(self).__name__,
                cause=exc
            ) from exc

    def close(self) -> None:
        self._session.close()


class DegradationDetector:
    """
    Fixed-threshold degradation detection with pluggable alert delivery.
    """

    def __init__(
        self,
        thresholds: Optional[Mapping[str, float]] = None,
        sink: Optional[AlertSink] = None,
        mode: Any = AlertSinkMode.ENABLED,
        metrics: Optional[PerformanceMetricsCollector] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._thresholds: Dict[str, float] = dict(DEFAULT_THRESHOLDS)
        for name, threshold in (thresholds or {}).items():
            self.set_threshold(name, threshold)

        self.sink: AlertSink = sink if sink is not None else LoggingAlertSink()
        self.mode = AlertSinkMode.parse(mode)
        self.metrics = metrics
        self._clock = clock
        self._recent: Deque[AlertEvent] = deque(maxlen=RECENT_ALERTS_LIMIT)
        self._lock = threading.Lock()

    @property
    def thresholds(self) -> Dict[str, float]:
        return dict(self._thresholds)

    def set_threshold(self, name: str, threshold: float) -> None:
        threshold = float(threshold)
        if not math.isfinite(threshold):
            raise ValueError(f"Threshold for {name} must be finite")
        self._thresholds[name] = threshold

    def evaluate(self, name: str, value: float) -> bool:
        """
        Return True iff ``value`` exceeds the threshold for ``name``.

        Metrics without a threshold never exceed.
        """
        threshold = self._thresholds.get(name)
        if threshold is None:
            return False
        return value > threshold

    def check(self, name: str, value: float) -> bool:
        """
        Evaluate a sample and emit an alert on breach.

        The alert is emitted synchronously, before this method returns.

        Returns:
            True when the threshold was exceeded
        """
        if not self.evaluate(name, value):
            return False

        event = AlertEvent(
            metric_name=name,
            value=value,
            threshold=self._thresholds[name],
            timestamp=self._clock()
        )
        self._emit(event)
        return True

    def _emit(self, event: AlertEvent) -> None:
        with self._lock:
            self._recent.append(event)

        logger.warning(
            "Performance alert",
            metric=event.metric_name,
            value=event.value,
            threshold=event.threshold
        )
        if self.metrics is not None:
            self.metrics.record_alert(event.metric_name)

        if self.mode is AlertSinkMode.DISABLED:
            return

        try:
            self.sink.on_alert(event)
        except AlertDeliveryError as exc:
            self._delivery_failed(event, exc)
        except Exception as exc:
            self._delivery_failed(event, AlertDeliveryError(
                f"Alert sink raised while delivering {event.metric_name}",
                metric_name=event.metric_name,
                sink=type(self.sink).__name__,
                cause=exc
            ))

    def _delivery_failed(self, event: AlertEvent, error: AlertDeliveryError) -> None:
        logger.error(
            "Alert delivery failed",
            metric=event.metric_name,
            error_code=error.error_code,
            details=error.details
        )
        if self.metrics is not None:
            self.metrics.record_alert_delivery_failure(event.metric_name)

    def recent_alerts(self) -> List[AlertEvent]:
        """Most recent alert events, oldest first."""
        with self._lock:
            return list(self._recent)

    def clear(self) -> None:
        with self._lock:
            self._recent.clear()

    def close(self) -> None:
        close = getattr(self.sink, 'close', None)
        if callable(close):
            close()


__all__ = [
    'DEFAULT_THRESHOLDS',
    'AlertSinkMode',
    'AlertEvent',
    'AlertSink',
    'LoggingAlertSink',
    'HTTPAlertSink',
    'DegradationDetector'
]
