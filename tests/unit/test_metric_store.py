"""
Unit tests for the rolling metric store.

Covers bounded FIFO windows, aggregate computation over retained samples
only, input validation and snapshot isolation.
"""

import math

import pytest

from admin_panel.performance import InvalidMetricValueError, MetricAggregate, RollingMetricStore
from admin_panel.performance.metric_store import validate_sample


@pytest.mark.unit
class TestRollingMetricStore:
    """Test rolling window behaviour."""

    def test_aggregate_of_unknown_metric_is_none(self, metric_store):
        assert metric_store.aggregate('LCP') is None
        assert metric_store.samples('LCP') == []

    def test_aggregate_single_sample(self, metric_store):
        metric_store.record('LCP', 1200)

        aggregate = metric_store.aggregate('LCP')

        assert aggregate == MetricAggregate(avg=1200.0, min=1200.0, max=1200.0, latest=1200.0, sample_count=1)

    def test_aggregate_multiple_samples(self, metric_store):
        for value in (100, 300, 200):
            metric_store.record('FID', value)

        aggregate = metric_store.aggregate('FID')

        assert aggregate.avg == pytest.approx(200.0)
        assert aggregate.min == 100.0
        assert aggregate.max == 300.0
        assert aggregate.latest == 200.0
        assert aggregate.sample_count == 3

    def test_window_evicts_oldest_samples(self, metric_store):
        """Store with max_samples=5 keeps only the five most recent samples."""
        for value in range(1, 9):
            metric_store.record('LCP', value)

        assert metric_store.samples('LCP') == [4.0, 5.0, 6.0, 7.0, 8.0]
        aggregate = metric_store.aggregate('LCP')
        assert aggregate.sample_count == 5
        assert aggregate.min == 4.0
        assert aggregate.avg == pytest.approx(6.0)

    def test_default_window_is_one_hundred(self):
        store = RollingMetricStore()
        for value in range(150):
            store.record('CLS', value)

        assert store.aggregate('CLS').sample_count == 100
        assert store.samples('CLS')[0] == 50.0

    def test_series_are_independent(self, metric_store):
        metric_store.record('LCP', 2000)
        metric_store.record('CLS', 0.05)

        assert metric_store.aggregate('LCP').latest == 2000.0
        assert metric_store.aggregate('CLS').latest == 0.05
        assert sorted(metric_store.metric_names()) == ['CLS', 'LCP']
        assert len(metric_store) == 2

    def test_all_aggregates(self, metric_store):
        metric_store.record('LCP', 1000)
        metric_store.record('LCP', 3000)
        metric_store.record('FID', 50)

        aggregates = metric_store.all_aggregates()

        assert set(aggregates) == {'LCP', 'FID'}
        assert aggregates['LCP'].avg == pytest.approx(2000.0)

    def test_samples_returns_copy(self, metric_store):
        metric_store.record('LCP', 1)
        samples = metric_store.samples('LCP')
        samples.append(999.0)

        assert metric_store.samples('LCP') == [1.0]

    def test_clear_drops_every_series(self, metric_store):
        metric_store.record('LCP', 1)
        metric_store.clear()

        assert metric_store.aggregate('LCP') is None
        assert len(metric_store) == 0

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            RollingMetricStore(max_samples=0)

    def test_aggregate_to_dict(self, metric_store):
        metric_store.record('LCP', 10)

        assert metric_store.aggregate('LCP').to_dict() == {
            'avg': 10.0,
            'min': 10.0,
            'max': 10.0,
            'latest': 10.0,
            'sample_count': 1
        }


@pytest.mark.unit
class TestSampleValidation:
    """Test rejection of unusable samples."""

    @pytest.mark.parametrize('value', [math.nan, math.inf, -math.inf])
    def test_non_finite_values_rejected(self, metric_store, value):
        with pytest.raises(InvalidMetricValueError):
            metric_store.record('LCP', value)

        assert metric_store.aggregate('LCP') is None

    @pytest.mark.parametrize('value', ['1200', None, True, [1]])
    def test_non_numeric_values_rejected(self, metric_store, value):
        with pytest.raises(InvalidMetricValueError) as exc_info:
            metric_store.record('LCP', value)

        assert exc_info.value.error_code == 'INVALID_METRIC_VALUE'

    @pytest.mark.parametrize('name', ['', '   ', None])
    def test_blank_names_rejected(self, name):
        with pytest.raises(InvalidMetricValueError):
            validate_sample(name, 1.0)

    def test_invalid_value_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_sample('LCP', math.nan)

    def test_integers_normalized_to_float(self):
        assert validate_sample('LCP', 3) == 3.0
        assert isinstance(validate_sample('LCP', 3), float)
