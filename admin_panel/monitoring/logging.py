"""
Structured Logging Implementation using structlog

Configures structlog on top of the standard library ``logging`` module for the
admin panel. All toolkit modules obtain their logger through ``get_logger`` and
emit short event names with keyword context, e.g.::

    logger.warning("Performance alert", metric="LCP", value=3100.0)

Key Features:
- JSON output for log aggregation, console output for local development
- Correlation ID tracking per request via a ContextVar
- Environment-driven configuration (LOG_LEVEL, LOG_FORMAT)
- Flask request hooks that bind and clear the correlation ID
"""

import logging
import logging.config
import os
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Dict, Optional

import structlog
from flask import Flask, Response, request


# Correlation ID for the request currently being served
correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

CORRELATION_ID_HEADER = 'X-Correlation-ID'


class LoggingConfig:
    """
    Logging configuration resolved from the environment.
    """

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')  # json, console
    COLORED_CONSOLE_OUTPUT = os.getenv('COLORED_CONSOLE_OUTPUT', 'false').lower() == 'true'
    CORRELATION_ID_ENABLED = os.getenv('CORRELATION_ID_ENABLED', 'true').lower() == 'true'
    APPLICATION_NAME = os.getenv('APP_NAME', 'admin-panel')


def get_correlation_id() -> Optional[str]:
    """
    Get current correlation ID from context.

    Returns:
        Current correlation ID or None
    """
    return correlation_id_context.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Optional correlation ID, generated if None

    Returns:
        The correlation ID that was set
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    correlation_id_context.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    correlation_id_context.set(None)


def create_correlation_processor() -> Callable:
    """
    Create structlog processor for correlation ID enrichment.

    Returns:
        Processor function for structlog
    """
    def processor(logger, method_name, event_dict):
        correlation_id = correlation_id_context.get()
        if correlation_id:
            event_dict['correlation_id'] = correlation_id
        return event_dict

    return processor


def _resolve_settings(app: Optional[Flask]) -> Dict[str, Any]:
    settings = {
        'level': LoggingConfig.LOG_LEVEL,
        'format': LoggingConfig.LOG_FORMAT,
        'colors': LoggingConfig.COLORED_CONSOLE_OUTPUT,
        'correlation': LoggingConfig.CORRELATION_ID_ENABLED,
    }
    if app is not None:
        settings['level'] = str(app.config.get('LOG_LEVEL', settings['level'])).upper()
        settings['format'] = app.config.get('LOG_FORMAT', settings['format'])
    return settings


def setup_structured_logging(app: Optional[Flask] = None) -> structlog.stdlib.BoundLogger:
    """
    Setup structured logging for the process.

    Args:
        app: Optional Flask application whose config overrides the environment

    Returns:
        Configured structured logger instance
    """
    settings = _resolve_settings(app)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings['correlation']:
        processors.append(create_correlation_processor())
    processors.extend([
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ])

    if settings['format'] == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=settings['colors']))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {'format': '%(message)s'}
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': settings['level'],
            }
        }
    })

    logger = structlog.get_logger(LoggingConfig.APPLICATION_NAME)
    logger.info(
        "Structured logging initialized",
        log_level=settings['level'],
        log_format=settings['format'],
        correlation_tracking=settings['correlation']
    )
    return logger


def init_request_logging(app: Flask) -> None:
    """
    Register Flask hooks binding a correlation ID to every request.

    The incoming ``X-Correlation-ID`` header is reused when present and echoed
    back on the response.
    """
    @app.before_request
    def bind_correlation_id():
        set_correlation_id(request.headers.get(CORRELATION_ID_HEADER))

    @app.after_request
    def echo_correlation_id(response: Response) -> Response:
        correlation_id = get_correlation_id()
        if correlation_id:
            response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response

    @app.teardown_request
    def release_correlation_id(exception=None):
        clear_correlation_id()


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance with optional name.

    Args:
        name: Logger name, defaults to application name

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name or LoggingConfig.APPLICATION_NAME)


__all__ = [
    'LoggingConfig',
    'CORRELATION_ID_HEADER',
    'setup_structured_logging',
    'init_request_logging',
    'get_logger',
    'get_correlation_id',
    'set_correlation_id',
    'clear_correlation_id',
    'create_correlation_processor'
]
