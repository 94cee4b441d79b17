"""
Performance toolkit exception classes.

Errors raised by the rolling metric store, the ephemeral cache and the
degradation detector. Every exception carries a stable ``error_code`` and a
``details`` mapping so Flask error handlers can render it as JSON.

Propagation rules:
- ``SerializationError`` and ``InvalidMetricValueError`` signal caller misuse
  and propagate to the caller.
- ``AlertDeliveryError`` is raised by alert sinks and is always caught and
  logged by the detector, never surfaced to ``record`` callers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class PerformanceError(Exception):
    """
    Base exception class for all performance toolkit errors.

    Attributes:
        message: Human-readable error description
        error_code: Standardized error code for monitoring and alerting
        details: Additional error context for debugging
        timestamp: Error occurrence timestamp for correlation with logs
    """

    def __init__(
        self,
        message: str,
        error_code: str = "PERFORMANCE_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON serialization in Flask error responses.

        Returns:
            Dictionary containing error information suitable for HTTP responses
        """
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class SerializationError(PerformanceError):
    """
    Raised when a cache value cannot be structurally cloned.

    Attributes:
        value_type: Name of the type that could not be cloned
        path: Location of the offending value inside the stored structure
    """

    def __init__(self, message: str, value_type: Optional[str] = None, path: str = "$"):
        super().__init__(
            message=message,
            error_code="SERIALIZATION_ERROR",
            details={"value_type": value_type, "path": path}
        )
        self.value_type = value_type
        self.path = path


class AlertDeliveryError(PerformanceError):
    """
    Raised when an alert sink fails to deliver an alert event.

    Attributes:
        metric_name: Metric whose alert could not be delivered
        sink: Name of the sink class that failed
        cause: Original exception raised by the transport
    """

    def __init__(
        self,
        message: str,
        metric_name: Optional[str] = None,
        sink: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        super().__init__(
            message=message,
            error_code="ALERT_DELIVERY_ERROR",
            details={
                "metric_name": metric_name,
                "sink": sink,
                "cause_type": type(cause).__name__ if cause else None,
                "cause_message": str(cause) if cause else None
            }
        )
        self.metric_name = metric_name
        self.sink = sink
        self.cause = cause


class InvalidMetricValueError(PerformanceError, ValueError):
    """Raised when a metric sample is not a finite number or its name is blank."""

    def __init__(self, message: str, metric_name: Any = None, value: Any = None):
        super().__init__(
            message=message,
            error_code="INVALID_METRIC_VALUE",
            details={"metric_name": metric_name, "value": repr(value)}
        )
        self.metric_name = metric_name
        self.value = value


__all__ = [
    'PerformanceError',
    'SerializationError',
    'AlertDeliveryError',
    'InvalidMetricValueError'
]
