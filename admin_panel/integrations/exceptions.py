"""
Custom exception classes for external service integration failures.

Integration calls never surface these to their callers: the integrations
manager raises them internally, logs their ``to_dict()`` form and converts
them into a failure return value or an ``error`` health status.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


class IntegrationError(Exception):
    """
    Base exception class for all external service integration failures.

    Attributes:
        service_name: Name of the external service that failed
        operation: Specific operation that was being performed
        error_code: Service-specific error code or HTTP status code
        error_context: Additional context information about the error
        timestamp: When the error occurred
    """

    def __init__(
        self,
        message: str,
        service_name: str,
        operation: str,
        error_code: Optional[Union[str, int]] = None,
        error_context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.service_name = service_name
        self.operation = operation
        self.error_code = error_code
        self.error_context = error_context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging and monitoring.
        """
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'service_name': self.service_name,
            'operation': self.operation,
            'error_code': self.error_code,
            'error_context': self.error_context,
            'timestamp': self.timestamp.isoformat()
        }

    def __str__(self) -> str:
        context_parts = [f"service={self.service_name}", f"operation={self.operation}"]
        if self.error_code:
            context_parts.append(f"code={self.error_code}")
        return f"{self.message} ({', '.join(context_parts)})"


class CollaboratorUnavailable(IntegrationError):
    """An upstream service is unconfigured, unreachable or answered with an error status."""

    def __init__(
        self,
        message: str,
        service_name: str,
        operation: str,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None
    ):
        error_context: Dict[str, Any] = {}
        if cause is not None:
            error_context['cause'] = str(cause)
            error_context['cause_type'] = type(cause).__name__
        super().__init__(
            message,
            service_name=service_name,
            operation=operation,
            error_code=status_code,
            error_context=error_context
        )
        self.status_code = status_code


class RateLimitExceeded(IntegrationError):
    """The local per-integration request budget is spent for the current window."""

    def __init__(self, service_name: str, operation: str, window: str, limit: int):
        super().__init__(
            f"Rate limit of {limit} requests per {window} reached",
            service_name=service_name,
            operation=operation,
            error_code='RATE_LIMIT_EXCEEDED',
            error_context={'window': window, 'limit': limit}
        )
        self.window = window
        self.limit = limit


__all__ = [
    'IntegrationError',
    'CollaboratorUnavailable',
    'RateLimitExceeded'
]
