"""
Unit tests for degradation detection and alert delivery.
"""

from unittest.mock import Mock

import pytest
import requests

from admin_panel.performance import (
    DEFAULT_THRESHOLDS,
    AlertDeliveryError,
    AlertEvent,
    AlertSinkMode,
    DegradationDetector,
    HTTPAlertSink,
    LoggingAlertSink,
)
from admin_panel.performance.detector import RECENT_ALERTS_LIMIT


@pytest.mark.unit
class TestThresholdEvaluation:
    """Test fixed threshold comparison."""

    def test_default_thresholds(self):
        assert DEFAULT_THRESHOLDS == {'LCP': 2500.0, 'FID': 100.0, 'CLS': 0.1}

    @pytest.mark.parametrize('name,value,expected', [
        ('LCP', 2500.0, False),
        ('LCP', 2500.1, True),
        ('FID', 99.0, False),
        ('FID', 150.0, True),
        ('CLS', 0.1, False),
        ('CLS', 0.25, True),
    ])
    def test_strictly_greater_than_threshold(self, detector, name, value, expected):
        assert detector.evaluate(name, value) is expected

    def test_metric_without_threshold_never_exceeds(self, detector, recording_sink):
        assert detector.check('TTFB', 1e9) is False
        assert recording_sink.events == []

    def test_threshold_override(self, recording_sink):
        detector = DegradationDetector(thresholds={'LCP': 4000, 'TTFB': 800}, sink=recording_sink)

        assert detector.thresholds['LCP'] == 4000.0
        assert detector.thresholds['FID'] == 100.0
        assert detector.check('LCP', 3000) is False
        assert detector.check('TTFB', 900) is True

    def test_non_finite_threshold_rejected(self, detector):
        with pytest.raises(ValueError):
            detector.set_threshold('LCP', float('inf'))

    def test_thresholds_property_is_a_copy(self, detector):
        detector.thresholds['LCP'] = 1.0
        assert detector.thresholds['LCP'] == 2500.0


@pytest.mark.unit
class TestAlertEmission:
    """Test synchronous alert emission."""

    def test_breach_delivers_event_before_returning(self, detector, recording_sink):
        assert detector.check('LCP', 3100.0) is True

        assert len(recording_sink.events) == 1
        event = recording_sink.events[0]
        assert event.metric_name == 'LCP'
        assert event.value == 3100.0
        assert event.threshold == 2500.0

    def test_every_breach_emits_one_event(self, detector, recording_sink):
        for value in (3000, 3100, 3200):
            detector.check('LCP', value)

        assert [event.value for event in recording_sink.events] == [3000, 3100, 3200]
        assert len(detector.recent_alerts()) == 3

    def test_disabled_mode_skips_sink_but_keeps_history(self, recording_sink, metrics_collector):
        detector = DegradationDetector(
            sink=recording_sink,
            mode=AlertSinkMode.DISABLED,
            metrics=metrics_collector
        )

        assert detector.check('FID', 500) is True
        assert recording_sink.events == []
        assert len(detector.recent_alerts()) == 1
        assert metrics_collector.get_sample_value('performance_alerts_total', {'metric': 'FID'}) == 1.0

    def test_failing_sink_never_propagates(self, failing_sink, metrics_collector):
        detector = DegradationDetector(sink=failing_sink, metrics=metrics_collector)

        assert detector.check('CLS', 0.5) is True
        assert failing_sink.calls == 1
        assert metrics_collector.get_sample_value(
            'performance_alert_delivery_failures_total', {'metric': 'CLS'}
        ) == 1.0

    def test_recent_alerts_bounded(self, detector):
        for index in range(RECENT_ALERTS_LIMIT + 10):
            detector.check('LCP', 3000 + index)

        recent = detector.recent_alerts()
        assert len(recent) == RECENT_ALERTS_LIMIT
        assert recent[-1].value == 3000 + RECENT_ALERTS_LIMIT + 9

    def test_clear_drops_history(self, detector):
        detector.check('LCP', 3000)
        detector.clear()

        assert detector.recent_alerts() == []

    def test_event_to_dict(self, detector, recording_sink):
        detector.check('LCP', 2600)
        payload = recording_sink.events[0].to_dict()

        assert payload['metric_name'] == 'LCP'
        assert payload['value'] == 2600
        assert payload['threshold'] == 2500.0
        assert 'T' in payload['timestamp']

    def test_default_sink_is_logging(self):
        assert isinstance(DegradationDetector().sink, LoggingAlertSink)


@pytest.mark.unit
class TestAlertSinkMode:
    """Test sink mode parsing."""

    @pytest.mark.parametrize('raw,expected', [
        ('enabled', AlertSinkMode.ENABLED),
        ('DISABLED', AlertSinkMode.DISABLED),
        (' enabled ', AlertSinkMode.ENABLED),
        (True, AlertSinkMode.ENABLED),
        (False, AlertSinkMode.DISABLED),
        (AlertSinkMode.DISABLED, AlertSinkMode.DISABLED),
    ])
    def test_parse(self, raw, expected):
        assert AlertSinkMode.parse(raw) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            AlertSinkMode.parse('sometimes')


@pytest.mark.unit
class TestHTTPAlertSink:
    """Test HTTP alert forwarding with retries."""

    @pytest.fixture
    def event(self):
        return AlertEvent(metric_name='LCP', value=3100.0, threshold=2500.0)

    def test_requires_endpoint(self):
        with pytest.raises(ValueError):
            HTTPAlertSink('')

    def test_posts_event_payload(self, mock_session, event):
        sink = HTTPAlertSink('https://alerts.example.com/hook', timeout=2.0, session=mock_session)

        sink.on_alert(event)

        mock_session.post.assert_called_once_with(
            'https://alerts.example.com/hook',
            json=event.to_dict(),
            timeout=2.0
        )

    def test_retries_then_succeeds(self, mock_session, response_factory, event):
        mock_session.post.side_effect = [
            requests.ConnectionError("refused"),
            response_factory(200)
        ]
        sink = HTTPAlertSink('https://alerts.example.com/hook', max_attempts=3, backoff=0, session=mock_session)

        sink.on_alert(event)

        assert mock_session.post.call_count == 2

    def test_raises_delivery_error_after_max_attempts(self, mock_session, response_factory, event):
        mock_session.post.return_value = response_factory(503)
        sink = HTTPAlertSink('https://alerts.example.com/hook', max_attempts=3, backoff=0, session=mock_session)

        with pytest.raises(AlertDeliveryError) as exc_info:
            sink.on_alert(event)

        assert mock_session.post.call_count == 3
        assert exc_info.value.metric_name == 'LCP'
        assert exc_info.value.details['sink'] == 'HTTPAlertSink'
        assert isinstance(exc_info.value.cause, requests.HTTPError)

    def test_detector_swallows_http_sink_failure(self, mock_session, event):
        mock_session.post.side_effect = requests.Timeout("slow")
        sink = HTTPAlertSink('https://alerts.example.com/hook', max_attempts=2, backoff=0, session=mock_session)
        detector = DegradationDetector(sink=sink)

        assert detector.check('LCP', 4000) is True
        assert mock_session.post.call_count == 2

    def test_detector_close_closes_session(self):
        session = Mock(spec=requests.Session)
        detector = DegradationDetector(sink=HTTPAlertSink('https://alerts.example.com/hook', session=session))

        detector.close()

        session.close.assert_called_once()
