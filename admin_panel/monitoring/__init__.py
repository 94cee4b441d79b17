"""
Monitoring Module Initialization

Structured logging and Prometheus metrics for the admin panel.

Key Features:
- structlog configuration with correlation ID propagation
- Per-context Prometheus registries for the performance toolkit
- ``init_monitoring`` hook for the Flask application factory
"""

from flask import Flask

from .logging import (
    CORRELATION_ID_HEADER,
    LoggingConfig,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    init_request_logging,
    set_correlation_id,
    setup_structured_logging,
)
from .metrics import PerformanceMetricsCollector


def init_monitoring(app: Flask) -> None:
    """
    Configure structured logging and per-request correlation tracking for ``app``.

    Args:
        app: Flask application instance
    """
    setup_structured_logging(app)
    init_request_logging(app)
    app.config.setdefault('MONITORING_INITIALIZED', True)


__all__ = [
    'init_monitoring',
    'setup_structured_logging',
    'init_request_logging',
    'get_logger',
    'get_correlation_id',
    'set_correlation_id',
    'clear_correlation_id',
    'LoggingConfig',
    'CORRELATION_ID_HEADER',
    'PerformanceMetricsCollector'
]
