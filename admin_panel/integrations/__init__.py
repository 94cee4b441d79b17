"""
External service integrations for the admin panel.

Usage Example:
    >>> from admin_panel.integrations import ExternalIntegrationsManager
    >>> manager = ExternalIntegrationsManager()
    >>> manager.initialize_integrations()
    >>> manager.check_integrations_health()
"""

from .exceptions import CollaboratorUnavailable, IntegrationError, RateLimitExceeded
from .gateway import ExternalIntegrationsManager, IntegrationConfig, RateLimiter, RateLimits

__all__ = [
    'ExternalIntegrationsManager',
    'IntegrationConfig',
    'RateLimiter',
    'RateLimits',
    'IntegrationError',
    'CollaboratorUnavailable',
    'RateLimitExceeded'
]
