"""
Flask Application Factory

Builds the admin panel application: configuration, structured logging, the
performance toolkit context, the deployment and integrations managers, error
handlers and blueprints.

Services are stored on ``app.extensions`` (see ``admin_panel.extensions``);
nothing is held in module-level singletons, so tests can create as many
isolated applications as they need.

Examples:
    # Development application
    app = create_app('development')

    # Testing application with overrides
    app = create_app('testing', PERFORMANCE_MAX_SAMPLES=10)
"""

import atexit
import os
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from admin_panel import __version__
from admin_panel.blueprints import register_blueprints
from admin_panel.config.deployment import DeploymentConfig, DeploymentManager
from admin_panel.config.settings import get_config
from admin_panel.extensions import (
    DEPLOYMENT_EXTENSION,
    INTEGRATIONS_EXTENSION,
    PERFORMANCE_EXTENSION,
)
from admin_panel.integrations import ExternalIntegrationsManager
from admin_panel.monitoring import init_monitoring
from admin_panel.monitoring.logging import get_logger
from admin_panel.performance import PerformanceContext, PerformanceError

logger = get_logger(__name__)


def _init_performance(app: Flask) -> PerformanceContext:
    context = PerformanceContext.from_config(app.config)
    app.extensions[PERFORMANCE_EXTENSION] = context

    if app.config.get('PERFORMANCE_BACKGROUND_TASKS'):
        context.start()
        atexit.register(context.cleanup)

    return context


def _init_deployment(app: Flask, context: PerformanceContext) -> DeploymentManager:
    manager = DeploymentManager(
        config=DeploymentConfig.from_env(environment=app.config.get('ENVIRONMENT')),
        connectivity_url=app.config.get('HEALTH_CONNECTIVITY_URL'),
        error_report_url=app.config.get('ERROR_REPORT_URL'),
        timeout=app.config.get('HEALTH_CHECK_TIMEOUT', 5.0),
        performance_probe=context.build_report
    )
    app.extensions[DEPLOYMENT_EXTENSION] = manager
    manager.initialize_production_services()
    return manager


def _init_integrations(app: Flask) -> ExternalIntegrationsManager:
    manager = ExternalIntegrationsManager(
        timeout=app.config.get('INTEGRATION_TIMEOUT', 10.0),
        sender_name=app.config.get('APP_NAME', 'Admin Panel'),
        app_url=os.getenv('APP_URL')
    )
    if app.config.get('INTEGRATIONS_ENABLED', True):
        manager.initialize_integrations()
    app.extensions[INTEGRATIONS_EXTENSION] = manager
    return manager


def _configure_error_handlers(app: Flask) -> None:
    """
    Render every error as JSON.

    Performance toolkit errors reaching a view are caller mistakes (400);
    anything unexpected is reported through the deployment manager (500).
    """
    @app.errorhandler(PerformanceError)
    def handle_performance_error(error: PerformanceError):
        logger.warning(
            "Performance toolkit rejected request",
            error_code=error.error_code,
            error_message=error.message,
            endpoint=request.endpoint
        )
        return jsonify(error.to_dict()), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({
            'error': error.name,
            'message': error.description,
            'status_code': error.code,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.error(
            "Unexpected error",
            error_message=str(error),
            error_type=type(error).__name__,
            endpoint=request.endpoint,
            method=request.method,
            url=request.url,
            exc_info=True
        )
        deployment = app.extensions.get(DEPLOYMENT_EXTENSION)
        if deployment is not None:
            deployment.report_error('Unhandled Exception', error)

        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred. Please try again later.',
            'status_code': 500,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }), 500


def create_app(config_name: Optional[str] = None, **config_overrides) -> Flask:
    """
    Create the admin panel Flask application.

    Args:
        config_name: Environment configuration name (development, testing, staging, production)
        **config_overrides: Additional configuration parameter overrides

    Returns:
        Configured Flask application

    Raises:
        ValueError: If ``config_name`` is not a supported environment
    """
    config_class = get_config(config_name)

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.update(config_overrides)

    init_monitoring(app)
    config_class.init_app(app)

    context = _init_performance(app)
    _init_deployment(app, context)
    _init_integrations(app)

    _configure_error_handlers(app)
    register_blueprints(app)

    logger.info(
        "Flask application created",
        config_class=config_class.__name__,
        version=__version__,
        background_tasks=bool(app.config.get('PERFORMANCE_BACKGROUND_TASKS'))
    )
    return app


def cleanup_application(app: Flask) -> None:
    """
    Release application resources for graceful shutdown. Safe to call repeatedly.
    """
    context = app.extensions.get(PERFORMANCE_EXTENSION)
    if context is not None:
        context.cleanup()
        atexit.unregister(context.cleanup)

    for name in (DEPLOYMENT_EXTENSION, INTEGRATIONS_EXTENSION):
        manager = app.extensions.get(name)
        if manager is not None:
            manager.close()

    logger.info("Application cleanup completed")


def create_wsgi_application() -> Flask:
    """
    Create the application for WSGI deployment, environment taken from FLASK_ENV.
    """
    return create_app(os.getenv('FLASK_ENV', 'production'))


__all__ = [
    'create_app',
    'create_wsgi_application',
    'cleanup_application'
]
