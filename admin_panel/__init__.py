"""
Admin Panel Performance Toolkit
===============================

Flask service backing the admin panel's performance instrumentation: browser
Core Web Vitals are posted to the API, kept in rolling windows, checked
against fixed thresholds and summarised, together with an ephemeral cache and
deployment/integration health, on the admin dashboard.

Package Structure:
- performance: metric store, degradation detector, ephemeral cache, reports
- monitoring: structlog logging and Prometheus metrics
- config: environment settings and the deployment manager
- integrations: outbound third-party service gateway
- blueprints: health, admin and API HTTP surfaces
- utils: debounce/throttle decorators and image URL helpers
"""

# Package metadata and version information
__version__ = "1.0.0"
__title__ = "Admin Panel Performance Toolkit"
__description__ = "Performance monitoring, alerting and caching for the admin panel"
__license__ = "Proprietary"

DEFAULT_CONFIG_ENV = "development"
SUPPORTED_ENVIRONMENTS = ["development", "testing", "staging", "production"]

__all__ = [
    '__version__',
    '__title__',
    '__description__',
    'DEFAULT_CONFIG_ENV',
    'SUPPORTED_ENVIRONMENTS'
]
