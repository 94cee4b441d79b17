"""
Deployment Configuration and Health Management

Describes the running deployment (environment, version, build, feature flags
and monitoring integrations) and performs the server-side health check used
by the ``/health`` endpoints and the admin dashboard.

Key Features:
- Deployment metadata and feature flags loaded from environment variables
- Environment predicates for production, staging and development
- Health check probing temporary storage, memory, disk, the performance
  toolkit and optional upstream connectivity; probe failures degrade the
  status, they never raise
- Error reporting with optional forwarding to a collection endpoint in production
"""

import os
import tempfile
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import psutil
import requests

from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

RESOURCE_USAGE_LIMIT_PERCENT = 95.0

FEATURE_ENV_VARS = {
    'analytics': 'ENABLE_ANALYTICS',
    'error_tracking': 'ENABLE_ERROR_TRACKING',
    'performance_monitoring': 'ENABLE_PERFORMANCE',
    'security_headers': 'ENABLE_SECURITY',
    'compression': 'ENABLE_COMPRESSION',
    'caching': 'ENABLE_CACHING',
}

INTEGRATION_ENV_VARS = {
    'sentry': 'SENTRY_DSN',
    'google_analytics': 'GA_TRACKING_ID',
    'hotjar': 'HOTJAR_ID',
    'intercom': 'INTERCOM_APP_ID',
}


@dataclass
class DeploymentFeatures:
    analytics: bool = False
    error_tracking: bool = False
    performance_monitoring: bool = False
    security_headers: bool = False
    compression: bool = False
    caching: bool = False


@dataclass
class DeploymentIntegrations:
    sentry: Optional[str] = None
    google_analytics: Optional[str] = None
    hotjar: Optional[str] = None
    intercom: Optional[str] = None

    def configured(self) -> List[str]:
        """Names of the integrations with a credential present."""
        return [name for name, value in asdict(self).items() if value]


@dataclass
class DeploymentConfig:
    """
    Static description of the running deployment.
    """
    environment: str = 'development'
    version: str = '1.0.0'
    build_number: str = ''
    deployment_date: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    features: DeploymentFeatures = field(default_factory=DeploymentFeatures)
    integrations: DeploymentIntegrations = field(default_factory=DeploymentIntegrations)

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        environment: Optional[str] = None
    ) -> 'DeploymentConfig':
        """
        Load deployment configuration from environment variables.

        Args:
            env: Variable mapping, defaults to ``os.environ``
            environment: Overrides ``FLASK_ENV`` when given
        """
        env = os.environ if env is None else env

        features = DeploymentFeatures(**{
            name: env.get(var, '').strip().lower() == 'true'
            for name, var in FEATURE_ENV_VARS.items()
        })
        integrations = DeploymentIntegrations(**{
            name: env.get(var) or None
            for name, var in INTEGRATION_ENV_VARS.items()
        })

        return cls(
            environment=(environment or env.get('FLASK_ENV') or 'development').lower(),
            version=env.get('APP_VERSION', '1.0.0'),
            build_number=env.get('BUILD_NUMBER') or str(int(time.time() * 1000)),
            features=features,
            integrations=integrations
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DeploymentManager:
    """
    Deployment metadata, environment checks and health probing.
    """

    def __init__(
        self,
        config: Optional[DeploymentConfig] = None,
        connectivity_url: Optional[str] = None,
        error_report_url: Optional[str] = None,
        timeout: float = 5.0,
        performance_probe: Optional[Callable[[], Any]] = None,
        session: Optional[requests.Session] = None
    ):
        self.config = config or DeploymentConfig.from_env()
        self.connectivity_url = connectivity_url
        self.error_report_url = error_report_url
        self.timeout = timeout
        self.performance_probe = performance_probe
        self._session = session or requests.Session()

    def get_deployment_info(self) -> Dict[str, Any]:
        """Return a detached copy of the deployment configuration."""
        return self.config.to_dict()

    def is_feature_enabled(self, feature: str) -> bool:
        """
        Raises:
            KeyError: for unknown feature names
        """
        if feature not in FEATURE_ENV_VARS:
            raise KeyError(f"Unknown deployment feature: {feature}")
        return getattr(self.config.features, feature)

    def is_production(self) -> bool:
        return self.config.environment == 'production'

    def is_staging(self) -> bool:
        return self.config.environment == 'staging'

    def is_development(self) -> bool:
        return self.config.environment == 'development'

    def initialize_production_services(self) -> List[str]:
        """
        Announce the monitoring integrations available to this deployment.

        Returns:
            Configured integration names in production, otherwise an empty list
        """
        logger.info(
            "Initializing deployment services",
            environment=self.config.environment,
            version=self.config.version,
            build_number=self.config.build_number
        )

        if not self.is_production():
            return []

        configured = self.config.integrations.configured()
        for name in configured:
            logger.info("Monitoring integration configured", integration=name)

        if self.config.features.performance_monitoring:
            logger.info("Performance monitoring enabled for production")

        return configured

    # Health checks

    def _check_temp_storage(self) -> bool:
        with tempfile.NamedTemporaryFile(prefix='admin-panel-health-') as handle:
            handle.write(b'test')
            handle.flush()
        return True

    def _check_memory(self) -> bool:
        return psutil.virtual_memory().percent < RESOURCE_USAGE_LIMIT_PERCENT

    def _check_disk(self) -> bool:
        return psutil.disk_usage(tempfile.gettempdir()).percent < RESOURCE_USAGE_LIMIT_PERCENT

    def _check_performance_monitoring(self) -> bool:
        if not self.config.features.performance_monitoring or self.performance_probe is None:
            return True
        return self.performance_probe() is not None

    def _check_connectivity(self) -> bool:
        if not self.connectivity_url:
            return True
        response = self._session.head(self.connectivity_url, timeout=self.timeout, allow_redirects=True)
        return response.ok

    def perform_health_check(self) -> Dict[str, Any]:
        """
        Run every probe and summarise the result.

        Returns:
            Dict with ``status`` (healthy/degraded), ``checks``, ``timestamp``,
            ``version`` and ``environment``
        """
        probes = {
            'temp_storage': self._check_temp_storage,
            'memory': self._check_memory,
            'disk': self._check_disk,
            'performance_monitoring': self._check_performance_monitoring,
            'connectivity': self._check_connectivity,
        }

        checks: Dict[str, bool] = {}
        for name, probe in probes.items():
            try:
                checks[name] = bool(probe())
            except Exception as e:
                logger.warning("Health probe failed", check=name, error=str(e))
                checks[name] = False

        status = 'healthy' if all(checks.values()) else 'degraded'
        health = {
            'status': status,
            'checks': checks,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': self.config.version,
            'environment': self.config.environment
        }

        logger.info("Health check completed", status=status, failed=[n for n, ok in checks.items() if not ok])
        return health

    # Error reporting

    def report_error(self, kind: str, error: Any) -> Dict[str, Any]:
        """
        Log an error record and, in production, forward it to ``error_report_url``.

        Forwarding failures are logged and never raised.
        """
        record = {
            'type': kind,
            'error': str(error),
            'error_class': type(error).__name__,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': self.config.version,
            'environment': self.config.environment
        }

        logger.error("Error reported", **record)

        if self.is_production() and self.error_report_url:
            try:
                response = self._session.post(self.error_report_url, json=record, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                logger.warning("Error forwarding failed", url=self.error_report_url, error=str(e))

        return record

    def close(self) -> None:
        self._session.close()


__all__ = [
    'DeploymentFeatures',
    'DeploymentIntegrations',
    'DeploymentConfig',
    'DeploymentManager'
]
