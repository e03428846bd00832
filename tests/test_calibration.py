"""Tests for calibration analysis."""

import pytest

from edgeoracle.analysis.calibration import brier_score, calibration_buckets
from edgeoracle.core.models import ScoredPrediction


def make_scored(prob_a, was_correct, predicted="Yes", calibration_error=0.0):
    return ScoredPrediction(
        market_id="m",
        date="2024-01-01",
        outcomes=("Yes", "No"),
        predicted_outcome=predicted,
        probability_of_outcome_a=prob_a,
        market_probability_of_outcome_a=0.5,
        confidence=8,
        stake_fraction=0.1,
        was_correct=was_correct,
        calibration_error=calibration_error,
    )


class TestBrierScore:
    """Tests for brier_score."""

    def test_empty(self):
        assert brier_score([]) == 0.0

    def test_mean_error(self):
        predictions = [
            make_scored(0.8, True, calibration_error=0.04),
            make_scored(0.8, False, calibration_error=0.64),
        ]

        assert brier_score(predictions) == pytest.approx(0.34)


class TestCalibrationBuckets:
    """Tests for calibration_buckets."""

    def test_empty(self):
        assert calibration_buckets([]) == []

    def test_single_bucket(self):
        """Test forecasts grouped by predicted-side probability."""
        predictions = [make_scored(0.85, True), make_scored(0.85, False)]

        buckets = calibration_buckets(predictions)

        assert len(buckets) == 1
        bucket = buckets[0]
        assert bucket.prob_low == pytest.approx(0.8)
        assert bucket.prob_high == pytest.approx(0.9)
        assert bucket.avg_forecast == pytest.approx(0.85)
        assert bucket.actual_rate == 0.5
        assert bucket.sample_size == 2
        assert bucket.gap == pytest.approx(-0.35)

    def test_uses_predicted_side(self):
        """Test a 'No' prediction is bucketed by 1 - prob_a."""
        buckets = calibration_buckets([make_scored(0.25, True, predicted="No")])

        assert buckets[0].avg_forecast == pytest.approx(0.75)

    def test_certain_forecast_in_last_bucket(self):
        buckets = calibration_buckets([make_scored(1.0, True)])

        assert buckets[0].prob_high == pytest.approx(1.0)
        assert buckets[0].sample_size == 1

    def test_min_sample_size(self):
        predictions = [make_scored(0.65, True), make_scored(0.95, True), make_scored(0.95, False)]

        buckets = calibration_buckets(predictions, min_sample_size=2)

        assert len(buckets) == 1
        assert buckets[0].prob_low == pytest.approx(0.9)

    def test_significant_gap(self):
        """Test a large, well-sampled gap is flagged."""
        predictions = [make_scored(0.9, i < 10) for i in range(40)]

        bucket = calibration_buckets(predictions)[0]

        assert bucket.actual_rate == 0.25
        assert bucket.significant is True

    def test_forecast_on_bucket_edge(self):
        """Test a forecast equal to a lower edge lands in that bucket."""
        for prob in (0.3, 0.6, 0.7):
            buckets = calibration_buckets([make_scored(prob, True)])

            assert len(buckets) == 1
            assert buckets[0].prob_low == pytest.approx(prob)
            assert buckets[0].prob_low <= prob < buckets[0].prob_high

    def test_derived_probability_on_edge(self):
        """Test 1 - 0.7 on the 'No' side is bucketed from 0.3."""
        buckets = calibration_buckets([make_scored(0.7, True, predicted="No")])

        assert buckets[0].prob_low == pytest.approx(0.3)
        assert buckets[0].avg_forecast == pytest.approx(0.3)

    def test_edges_split_adjacent_buckets(self):
        predictions = [make_scored(0.2999, True), make_scored(0.3, False)]

        buckets = calibration_buckets(predictions)

        assert [b.prob_low for b in buckets] == [pytest.approx(0.2), pytest.approx(0.3)]
        assert [b.sample_size for b in buckets] == [1, 1]
