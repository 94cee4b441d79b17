"""
Health Monitoring Blueprint

Health check endpoints for load balancers, Kubernetes probes and Prometheus.

Endpoint Implementation:
- /health: Deployment health check (temp storage, memory, disk, performance
  toolkit, connectivity); 200 when healthy, 503 when degraded
- /health/live: Liveness probe (process is serving requests)
- /health/ready: Readiness probe (performance toolkit initialized and reporting)
- /metrics: Prometheus exposition of the performance toolkit registry
"""

import os
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app, jsonify

from admin_panel.extensions import get_deployment_manager, get_performance_context
from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='')


class HealthStatus:
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_bp.route('/health', methods=['GET'])
def basic_health():
    """
    Deployment health endpoint.

    Returns:
        JSON health report, HTTP 200 if healthy, HTTP 503 otherwise
    """
    try:
        health = get_deployment_manager().perform_health_check()
    except Exception as e:
        logger.error("Health check failed", error=str(e), exc_info=True)
        return jsonify({
            'status': HealthStatus.UNHEALTHY,
            'timestamp': _now(),
            'error': str(e)
        }), 503

    return jsonify(health), 200 if health['status'] == HealthStatus.HEALTHY else 503


@health_bp.route('/health/live', methods=['GET'])
def liveness_probe():
    return jsonify({
        'status': HealthStatus.HEALTHY,
        'timestamp': _now(),
        'probe_type': 'liveness',
        'application': {
            'name': current_app.config.get('APP_NAME'),
            'version': current_app.config.get('APP_VERSION'),
            'pid': os.getpid()
        }
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness_probe():
    """
    Readiness probe: the performance toolkit must be initialized and able to build a report.
    """
    try:
        report = get_performance_context().build_report()
    except Exception as e:
        logger.error("Readiness probe failed", error=str(e), exc_info=True)
        return jsonify({
            'status': HealthStatus.UNHEALTHY,
            'timestamp': _now(),
            'probe_type': 'readiness',
            'ready': False,
            'error': str(e)
        }), 503

    return jsonify({
        'status': HealthStatus.HEALTHY,
        'timestamp': _now(),
        'probe_type': 'readiness',
        'ready': True,
        'metrics_tracked': len(report.metrics),
        'cache_size': report.cache_size
    }), 200


@health_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    """
    Prometheus metrics endpoint.

    Returns:
        Prometheus text exposition, HTTP 500 if generation fails
    """
    try:
        collector = get_performance_context().metrics
        metrics_data = collector.generate_metrics_output()
    except Exception as e:
        logger.error("Metrics endpoint failed", error=str(e), exc_info=True)
        return jsonify({
            'error': 'Metrics generation failed',
            'message': str(e)
        }), 500

    response = Response(metrics_data, mimetype=collector.content_type)
    response.headers['Cache-Control'] = 'no-cache'
    return response


__all__ = [
    'health_bp',
    'HealthStatus'
]
