"""
Global pytest Configuration and Fixture Definitions

Shared fixtures for the admin panel test suite:

- ``FakeClock``: manually advanced monotonic clock for TTL, throttle and
  rate-limit tests
- Performance toolkit components (store, cache, detector, context) wired to a
  private Prometheus registry
- Flask application built by the application factory in testing mode, plus
  its test client

Background threads are never started by these fixtures; periodic work is
driven explicitly through ``PeriodicTask.run_once``.
"""

from typing import List
from unittest.mock import Mock

import pytest
import requests
from flask import Flask
from flask.testing import FlaskClient

from admin_panel.app import cleanup_application, create_app
from admin_panel.monitoring.metrics import PerformanceMetricsCollector
from admin_panel.performance import (
    AlertEvent,
    AlertSinkMode,
    DegradationDetector,
    EphemeralCache,
    PerformanceContext,
    RollingMetricStore,
)


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests with isolated component testing")
    config.addinivalue_line("markers", "integration: Integration tests through the Flask test client")


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Alert sink keeping every delivered event in memory."""

    def __init__(self):
        self.events: List[AlertEvent] = []

    def on_alert(self, event: AlertEvent) -> None:
        self.events.append(event)


class FailingSink:
    """Alert sink that always raises."""

    def __init__(self, error: Exception = None):
        self.error = error or ConnectionError("sink offline")
        self.calls = 0

    def on_alert(self, event: AlertEvent) -> None:
        self.calls += 1
        raise self.error


def make_response(status_code: int = 200, json_data=None) -> Mock:
    """Build a ``requests.Response`` stand-in for mocked sessions."""
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data if json_data is not None else {}
    if response.ok:
        response.raise_for_status.return_value = None
    else:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def metrics_collector() -> PerformanceMetricsCollector:
    """Collector bound to a private registry."""
    return PerformanceMetricsCollector()


@pytest.fixture
def metric_store() -> RollingMetricStore:
    return RollingMetricStore(max_samples=5)


@pytest.fixture
def cache(fake_clock, metrics_collector) -> EphemeralCache:
    return EphemeralCache(default_ttl=300.0, clock=fake_clock, metrics=metrics_collector)


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def detector(recording_sink, metrics_collector) -> DegradationDetector:
    return DegradationDetector(
        sink=recording_sink,
        mode=AlertSinkMode.ENABLED,
        metrics=metrics_collector
    )


@pytest.fixture
def performance_context(metric_store, cache, detector, metrics_collector):
    """
    Performance context assembled from the component fixtures.

    Yields the context and runs ``cleanup`` afterwards.
    """
    context = PerformanceContext(
        store=metric_store,
        cache=cache,
        detector=detector,
        metrics=metrics_collector
    )
    yield context
    context.cleanup()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def mock_session() -> Mock:
    """``requests.Session`` mock answering every call with HTTP 200."""
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200)
    session.head.return_value = make_response(200)
    return session


@pytest.fixture
def app(monkeypatch) -> Flask:
    """
    Flask application created in testing mode.

    Integration credentials are removed from the environment so every
    integration starts disabled.
    """
    for var in (
        'WHATSAPP_TOKEN', 'WHATSAPP_PHONE_NUMBER_ID', 'GOOGLE_CALENDAR_TOKEN',
        'STRIPE_SECRET_KEY', 'SENDGRID_API_KEY', 'TWILIO_ACCOUNT_SID',
        'TWILIO_AUTH_TOKEN', 'TWILIO_FROM_NUMBER', 'ENABLE_PERFORMANCE'
    ):
        monkeypatch.delenv(var, raising=False)

    application = create_app('testing')
    yield application
    cleanup_application(application)


@pytest.fixture
def client(app) -> FlaskClient:
    return app.test_client()
