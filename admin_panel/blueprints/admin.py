"""
Admin Dashboard Blueprint

Read-only administrative views over the performance toolkit and its
collaborators.

Endpoints:
- GET /admin/dashboard: deployment info, health check, performance report and
  integrations health in one payload; a section that fails to load renders as
  ``{"status": "unavailable"}`` instead of failing the whole page
- GET /admin/performance: current performance report with recent alerts
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict

from flask import Blueprint, jsonify

from admin_panel.extensions import (
    get_deployment_manager,
    get_integrations_manager,
    get_performance_context,
)
from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _load_section(name: str, loader: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    try:
        return loader()
    except Exception as e:
        logger.error("Dashboard section unavailable", section=name, error=str(e), exc_info=True)
        return {'status': 'unavailable', 'error': str(e)}


def _performance_summary() -> Dict[str, Any]:
    context = get_performance_context()
    summary = context.build_report().to_dict()
    summary['recent_alerts'] = [event.to_dict() for event in context.detector.recent_alerts()]
    summary['thresholds'] = context.detector.thresholds
    return summary


@admin_bp.route('/dashboard', methods=['GET'])
def admin_dashboard():
    """
    Administrative dashboard with a system overview.

    Returns:
        JSON response with deployment, health, performance and integrations sections
    """
    dashboard_data = {
        'deployment': _load_section('deployment', lambda: get_deployment_manager().get_deployment_info()),
        'health': _load_section('health', lambda: get_deployment_manager().perform_health_check()),
        'performance': _load_section('performance', _performance_summary),
        'integrations': _load_section('integrations', lambda: get_integrations_manager().check_integrations_health()),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    return jsonify({'status': 'success', 'data': dashboard_data})


@admin_bp.route('/performance', methods=['GET'])
def performance_report():
    return jsonify({'status': 'success', 'data': _performance_summary()})


__all__ = [
    'admin_bp'
]
