"""
Flask extension registry accessors.

The application factory stores the admin panel services on ``app.extensions``;
blueprints fetch them through these helpers instead of importing globals.
"""

from typing import Any

from flask import current_app

PERFORMANCE_EXTENSION = 'performance'
DEPLOYMENT_EXTENSION = 'deployment'
INTEGRATIONS_EXTENSION = 'integrations'


def _get_extension(name: str) -> Any:
    """
    Raises:
        RuntimeError: If the service was not initialized by the application factory
    """
    extension = current_app.extensions.get(name)
    if extension is None:
        raise RuntimeError(f"'{name}' service not initialized in Flask application")
    return extension


def get_performance_context():
    """Return the ``PerformanceContext`` of the current application."""
    return _get_extension(PERFORMANCE_EXTENSION)


def get_deployment_manager():
    """Return the ``DeploymentManager`` of the current application."""
    return _get_extension(DEPLOYMENT_EXTENSION)


def get_integrations_manager():
    """Return the ``ExternalIntegrationsManager`` of the current application."""
    return _get_extension(INTEGRATIONS_EXTENSION)


__all__ = [
    'PERFORMANCE_EXTENSION',
    'DEPLOYMENT_EXTENSION',
    'INTEGRATIONS_EXTENSION',
    'get_performance_context',
    'get_deployment_manager',
    'get_integrations_manager'
]
