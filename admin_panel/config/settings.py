"""
Flask Configuration Classes

Environment-specific settings (Development, Testing, Staging, Production) for
the admin panel application factory. Values are read from environment
variables, loaded from a ``.env`` file via python-dotenv when present.

Key Components:
- Performance toolkit sizing: rolling window length, cache TTL, sweep and
  report refresh intervals
- Degradation alerting: sink mode, optional HTTP endpoint, retry policy and
  per-metric threshold overrides
- Deployment health probes and error forwarding endpoints
- Logging level and renderer selection

Dependencies: Flask 2.3+, python-dotenv 1.0+
"""

import json
import os
from typing import Any, Dict, List, Optional, Type

from flask import Flask
from dotenv import load_dotenv

from admin_panel import DEFAULT_CONFIG_ENV
from admin_panel.monitoring.logging import get_logger

# Load environment variables early
load_dotenv()

logger = get_logger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_thresholds(name: str = 'PERFORMANCE_THRESHOLDS') -> Dict[str, float]:
    raw = os.getenv(name, '').strip()
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError(f"{name} must be a JSON object of metric name to threshold")
    return {str(metric): float(threshold) for metric, threshold in parsed.items()}


class BaseConfig:
    """
    Base configuration class providing common settings for all environments.
    """

    # Flask Core Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(32).hex())

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'Admin Panel')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    # Environment Configuration
    ENVIRONMENT = 'development'
    DEBUG = False
    TESTING = False

    # JSON Configuration
    JSON_SORT_KEYS = False

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')

    # Rolling metric store
    PERFORMANCE_MAX_SAMPLES = int(os.getenv('PERFORMANCE_MAX_SAMPLES', '100'))
    PERFORMANCE_THRESHOLDS = _env_thresholds()
    PERFORMANCE_BACKGROUND_TASKS = _env_bool('PERFORMANCE_BACKGROUND_TASKS', True)

    # Ephemeral cache (seconds)
    CACHE_DEFAULT_TTL = float(os.getenv('CACHE_DEFAULT_TTL', '300'))
    CACHE_SWEEP_INTERVAL = float(os.getenv('CACHE_SWEEP_INTERVAL', '60'))

    # Report refresh (seconds)
    REPORT_REFRESH_INTERVAL = float(os.getenv('REPORT_REFRESH_INTERVAL', '30'))

    # Degradation alerting
    ALERT_SINK = os.getenv('ALERT_SINK', 'disabled')
    ALERT_ENDPOINT_URL = os.getenv('ALERT_ENDPOINT_URL')
    ALERT_TIMEOUT = float(os.getenv('ALERT_TIMEOUT', '5'))
    ALERT_MAX_ATTEMPTS = int(os.getenv('ALERT_MAX_ATTEMPTS', '3'))
    ALERT_RETRY_BACKOFF = float(os.getenv('ALERT_RETRY_BACKOFF', '0.5'))

    # Deployment health and error reporting
    HEALTH_CONNECTIVITY_URL = os.getenv('HEALTH_CONNECTIVITY_URL')
    HEALTH_CHECK_TIMEOUT = float(os.getenv('HEALTH_CHECK_TIMEOUT', '5'))
    ERROR_REPORT_URL = os.getenv('ERROR_REPORT_URL')

    # External integrations
    INTEGRATIONS_ENABLED = _env_bool('INTEGRATIONS_ENABLED', True)
    INTEGRATION_TIMEOUT = float(os.getenv('INTEGRATION_TIMEOUT', '10'))

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with base configuration.

        Args:
            app: Flask application instance
        """
        app.json.sort_keys = cls.JSON_SORT_KEYS

        logger.info(
            "Configuration initialized",
            config_class=cls.__name__,
            app_name=cls.APP_NAME,
            app_version=cls.APP_VERSION,
            environment=cls.ENVIRONMENT,
            alert_sink=cls.ALERT_SINK,
            background_tasks=cls.PERFORMANCE_BACKGROUND_TASKS
        )


class DevelopmentConfig(BaseConfig):
    """
    Development environment configuration with debug features enabled.
    """

    ENVIRONMENT = 'development'
    DEBUG = True
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')


class TestingConfig(BaseConfig):
    """
    Testing environment configuration.

    Background tasks, outbound alert delivery and every outbound probe are
    switched off so tests drive the toolkit deterministically.
    """

    ENVIRONMENT = 'testing'
    TESTING = True
    DEBUG = True

    PERFORMANCE_BACKGROUND_TASKS = False
    PERFORMANCE_THRESHOLDS: Dict[str, float] = {}

    ALERT_SINK = 'disabled'
    ALERT_ENDPOINT_URL = None

    HEALTH_CONNECTIVITY_URL = None
    ERROR_REPORT_URL = None

    LOG_LEVEL = 'WARNING'
    LOG_FORMAT = 'console'


class StagingConfig(BaseConfig):
    """
    Staging environment configuration mirroring production without alert delivery by default.
    """

    ENVIRONMENT = 'staging'


class ProductionConfig(BaseConfig):
    """
    Production environment configuration.

    Alert delivery to the configured sink is enabled unless explicitly
    overridden with ``ALERT_SINK=disabled``.
    """

    ENVIRONMENT = 'production'
    ALERT_SINK = os.getenv('ALERT_SINK', 'enabled')

    @classmethod
    def init_app(cls, app: Flask) -> None:
        super().init_app(app)

        if not os.getenv('SECRET_KEY'):
            logger.warning("SECRET_KEY not set, using a random per-process key")

        issues = validate_configuration(cls)
        if issues:
            logger.warning("Production configuration issues", issues=issues)


# Configuration mapping for environment-based selection
config_map: Dict[str, Type[BaseConfig]] = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,

    # Aliases for convenience
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'stage': StagingConfig,
    'prod': ProductionConfig
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ValueError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', DEFAULT_CONFIG_ENV)

    environment = environment.lower()

    if environment not in config_map:
        raise ValueError(
            f"Unsupported environment '{environment}'. "
            f"Supported environments: {list(config_map.keys())}"
        )

    return config_map[environment]


def validate_configuration(config: Any) -> List[str]:
    """
    Validate configuration settings and return list of issues.

    Args:
        config: Configuration class or instance to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    if config.PERFORMANCE_MAX_SAMPLES < 1:
        issues.append("PERFORMANCE_MAX_SAMPLES must be at least 1")

    for name in ('CACHE_DEFAULT_TTL', 'CACHE_SWEEP_INTERVAL', 'REPORT_REFRESH_INTERVAL', 'ALERT_TIMEOUT'):
        if getattr(config, name) <= 0:
            issues.append(f"{name} must be positive")

    if config.ALERT_MAX_ATTEMPTS < 1:
        issues.append("ALERT_MAX_ATTEMPTS must be at least 1")

    if str(config.ALERT_SINK).lower() not in ('enabled', 'disabled'):
        issues.append("ALERT_SINK must be 'enabled' or 'disabled'")

    if str(config.ALERT_SINK).lower() == 'enabled' and not config.ALERT_ENDPOINT_URL:
        issues.append("ALERT_ENDPOINT_URL not set, alerts are delivered to the log only")

    return issues


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'StagingConfig',
    'ProductionConfig',
    'get_config',
    'validate_configuration',
    'config_map'
]
