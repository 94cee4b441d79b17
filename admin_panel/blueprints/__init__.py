"""
Flask Blueprints Package

Blueprint Organization:
- Health Blueprint (/health/*, /metrics): health checks, Kubernetes probes, Prometheus
- Admin Blueprint (/admin/*): dashboard and performance report
- API Blueprint (/api/*): browser sample ingestion and alert receiving
"""

from typing import Any, Dict, List

from flask import Blueprint, Flask

from admin_panel.monitoring.logging import get_logger
from .admin import admin_bp
from .api import api_bp
from .health import health_bp

logger = get_logger(__name__)

# Registration order
BLUEPRINT_REGISTRY: List[Blueprint] = [health_bp, api_bp, admin_bp]


def register_blueprints(app: Flask) -> Dict[str, Any]:
    """
    Register every admin panel blueprint on ``app``.

    Returns:
        Registration summary with blueprint names and route count
    """
    for blueprint in BLUEPRINT_REGISTRY:
        app.register_blueprint(blueprint)

    names = [blueprint.name for blueprint in BLUEPRINT_REGISTRY]
    routes = [
        rule.rule for rule in app.url_map.iter_rules()
        if rule.endpoint.split('.', 1)[0] in names
    ]

    results = {
        'success': True,
        'blueprints': names,
        'total_routes': len(routes)
    }
    logger.info("Blueprints registered", **results)
    return results


def get_registered_blueprints() -> List[str]:
    return [blueprint.name for blueprint in BLUEPRINT_REGISTRY]


__all__ = [
    'register_blueprints',
    'get_registered_blueprints',
    'health_bp',
    'admin_bp',
    'api_bp'
]
