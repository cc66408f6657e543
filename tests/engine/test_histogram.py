"""Tests for the log-linear latency histogram."""

import random

import pytest

from pressr.engine.histogram import DEFAULT_PERCENTILES, HistogramSettings, LatencyHistogram


class TestConstruction:
    def test_rejects_zero_lowest(self):
        with pytest.raises(ValueError):
            LatencyHistogram(lowest_discernible=0)

    def test_rejects_narrow_range(self):
        with pytest.raises(ValueError):
            LatencyHistogram(lowest_discernible=10, highest_trackable=15)

    @pytest.mark.parametrize("figures", [0, 6])
    def test_rejects_significant_figures_out_of_range(self, figures):
        with pytest.raises(ValueError):
            LatencyHistogram(significant_figures=figures)

    def test_from_settings(self):
        hist = LatencyHistogram.from_settings(
            HistogramSettings(lowest_discernible=1, highest_trackable=60_000, significant_figures=2)
        )
        assert hist.highest_trackable == 60_000
        assert hist.significant_figures == 2


class TestEmpty:
    def test_percentile_unavailable(self):
        hist = LatencyHistogram()
        assert hist.value_at_percentile(50) is None
        assert hist.percentiles() == {}
        assert hist.mean is None
        assert hist.min is None
        assert hist.max is None


class TestRecording:
    def test_negative_value_rejected(self):
        hist = LatencyHistogram()
        with pytest.raises(ValueError):
            hist.record(-1)
        assert hist.total_count == 0

    def test_zero_is_recordable(self):
        hist = LatencyHistogram()
        hist.record(0)
        assert hist.value_at_percentile(100) == 0

    def test_single_value_answers_every_percentile(self):
        hist = LatencyHistogram()
        hist.record(42)
        for pct in DEFAULT_PERCENTILES.values():
            assert hist.value_at_percentile(pct) == 42

    def test_count_argument(self):
        hist = LatencyHistogram()
        hist.record(7, count=5)
        assert hist.total_count == 5
        assert hist.mean == 7

    def test_small_values_are_exact(self):
        hist = LatencyHistogram()
        hist.record_all(range(1, 1001))
        assert hist.value_at_percentile(50) == 500
        assert hist.value_at_percentile(90) == 900
        assert hist.value_at_percentile(99) == 990
        assert hist.value_at_percentile(99.9) == 999
        assert hist.value_at_percentile(100) == 1000
        assert hist.value_at_percentile(0) == 1

    def test_large_values_within_relative_error(self):
        hist = LatencyHistogram(significant_figures=3)
        hist.record(100_001)
        hist.record(200_000)
        p50 = hist.value_at_percentile(50)
        assert p50 is not None
        assert abs(p50 - 100_001) / 100_001 <= 1e-3

    def test_never_exceeds_recorded_max(self):
        hist = LatencyHistogram()
        hist.record(123_457)
        assert hist.value_at_percentile(100) == 123_457


class TestUpperBound:
    def test_value_at_ceiling_is_not_clamped(self):
        hist = LatencyHistogram(highest_trackable=3_600_000)
        hist.record(3_600_000)
        assert hist.clamped_count == 0
        assert hist.max == 3_600_000
        assert hist.value_at_percentile(100) == 3_600_000

    def test_value_above_ceiling_is_clamped(self):
        hist = LatencyHistogram(highest_trackable=3_600_000)
        hist.record(3_600_001)
        assert hist.clamped_count == 1
        assert hist.total_count == 1
        assert hist.max == 3_600_000
        assert hist.value_at_percentile(100) == 3_600_000


class TestQueries:
    @pytest.mark.parametrize("pct", [-0.1, 100.1])
    def test_percentile_out_of_range(self, pct):
        hist = LatencyHistogram()
        hist.record(10)
        with pytest.raises(ValueError):
            hist.value_at_percentile(pct)

    def test_percentiles_are_monotonic(self):
        rng = random.Random(1234)
        hist = LatencyHistogram()
        for _ in range(20_000):
            hist.record(int(rng.lognormvariate(4.0, 1.5)))

        points = [0, 1, 10, 25, 50, 75, 90, 95, 99, 99.9, 99.99, 100]
        values = [hist.value_at_percentile(p) for p in points]
        assert values == sorted(values)

    def test_named_percentiles(self):
        hist = LatencyHistogram()
        hist.record_all([10, 20, 30, 40])
        result = hist.percentiles()
        assert set(result) == set(DEFAULT_PERCENTILES)
        assert result["p50"] == 20.0
        assert result["p999"] == 40.0

    def test_custom_percentile_names(self):
        hist = LatencyHistogram()
        hist.record_all([5, 15])
        assert hist.percentiles({"median": 50.0}) == {"median": 5.0}
