"""
Configuration Package

- settings.py: environment-specific Flask configuration classes
- deployment.py: deployment metadata, feature flags and health checks

Usage Examples:
    >>> from admin_panel.config import get_config
    >>> config_class = get_config('production')
    >>> app.config.from_object(config_class)
"""

from dotenv import load_dotenv

# Load environment variables at package import time
load_dotenv()

from .settings import (  # noqa: E402
    BaseConfig,
    DevelopmentConfig,
    TestingConfig,
    StagingConfig,
    ProductionConfig,
    get_config,
    validate_configuration,
    config_map
)
from .deployment import (  # noqa: E402
    DeploymentConfig,
    DeploymentFeatures,
    DeploymentIntegrations,
    DeploymentManager
)

__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'StagingConfig',
    'ProductionConfig',
    'get_config',
    'validate_configuration',
    'config_map',
    'DeploymentConfig',
    'DeploymentFeatures',
    'DeploymentIntegrations',
    'DeploymentManager'
]
