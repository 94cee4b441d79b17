"""
Performance API Blueprint

Ingestion endpoints used by the admin panel's browser instrumentation.

Endpoints:
- POST /api/performance/metrics: record one sample ``{name, value}``; responds
  202 with ``{exceeded}`` telling whether the sample breached its threshold
- GET /api/performance/metrics/<name>: aggregate of the retained window
- POST /api/performance-alert: receiving end for alert events forwarded by
  ``HTTPAlertSink``

Request bodies are validated with marshmallow; invalid input yields a 400
response carrying the validation messages.
"""

from functools import wraps

from flask import Blueprint, g, jsonify, request
from marshmallow import Schema, ValidationError, fields, validate

from admin_panel.extensions import get_performance_context
from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')


class MetricSampleSchema(Schema):
    """Schema for a single browser performance sample."""
    name = fields.String(
        required=True,
        validate=validate.Length(min=1, max=100),
        metadata={'description': 'Metric name, e.g. LCP, FID or CLS'}
    )
    value = fields.Float(
        required=True,
        allow_nan=False,
        metadata={'description': 'Sample value'}
    )


class AlertEventSchema(Schema):
    """Schema for a forwarded alert event."""
    metric_name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    value = fields.Float(required=True, allow_nan=False)
    threshold = fields.Float(required=True, allow_nan=False)
    timestamp = fields.DateTime(load_default=None)


def validate_request_data(schema_class):
    """Decorator validating the JSON body with a marshmallow schema into ``g.validated_data``."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                raise ValidationError({'_schema': ['Request body must be a JSON object']})

            g.validated_data = schema_class().load(data)
            return func(*args, **kwargs)
        return wrapper
    return decorator


@api_bp.route('/performance/metrics', methods=['POST'])
@validate_request_data(MetricSampleSchema)
def record_metric():
    """
    Record a browser performance sample.

    Returns:
        HTTP 202 with ``exceeded`` flag
    """
    sample = g.validated_data
    exceeded = get_performance_context().record(sample['name'], sample['value'])

    return jsonify({
        'status': 'accepted',
        'name': sample['name'],
        'exceeded': exceeded
    }), 202


@api_bp.route('/performance/metrics/<name>', methods=['GET'])
def get_metric(name: str):
    aggregate = get_performance_context().aggregate(name)
    if aggregate is None:
        return jsonify({
            'error': 'NOT_FOUND',
            'message': f"No samples recorded for '{name}'"
        }), 404

    return jsonify({'status': 'success', 'name': name, 'data': aggregate.to_dict()})


@api_bp.route('/performance-alert', methods=['POST'])
@validate_request_data(AlertEventSchema)
def receive_alert():
    event = g.validated_data
    timestamp = event.get('timestamp')

    logger.warning(
        "Performance alert received",
        metric=event['metric_name'],
        value=event['value'],
        threshold=event['threshold'],
        alert_timestamp=timestamp.isoformat() if timestamp else None
    )

    return jsonify({'status': 'received', 'metric_name': event['metric_name']}), 202


@api_bp.errorhandler(ValidationError)
def handle_validation_error(e):
    """Handle marshmallow validation errors."""
    logger.warning(
        "Request validation failed",
        endpoint=request.endpoint,
        validation_errors=e.messages
    )

    return jsonify({
        'error': 'VALIDATION_ERROR',
        'message': 'Request validation failed',
        'details': {'validation_errors': e.messages}
    }), 400


__all__ = [
    'api_bp',
    'MetricSampleSchema',
    'AlertEventSchema'
]
