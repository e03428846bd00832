"""Tests for probability normalization onto the predicted side."""

import math

import pytest

from edgeoracle.sizing.normalizer import normalize_to_prediction


class TestNormalizeToPrediction:
    """Tests for normalize_to_prediction."""

    def test_predicted_outcome_a(self):
        """Test that outcome A passes probabilities through."""
        result = normalize_to_prediction(("Yes", "No"), 0.70, 0.85, "Yes")

        assert result.predicted_probability == 0.85
        assert result.market_probability == 0.70
        assert result.on_outcome_a is True
        assert result.matched_label is True

    def test_predicted_outcome_b(self):
        """Test that outcome B uses complements."""
        result = normalize_to_prediction(("Yes", "No"), 0.70, 0.85, "No")

        assert result.predicted_probability == pytest.approx(0.15)
        assert result.market_probability == pytest.approx(0.30)
        assert result.on_outcome_a is False
        assert result.edge == pytest.approx(-0.15)

    def test_named_outcomes(self):
        """Test a group market with a named option and Other."""
        result = normalize_to_prediction(("Harris", "Other"), 0.40, 0.25, "Other")

        assert result.predicted_probability == pytest.approx(0.75)
        assert result.market_probability == pytest.approx(0.60)

    def test_unknown_label_uses_favored_side(self):
        """Test that an unmatched label sides with the model."""
        favors_b = normalize_to_prediction(("Yes", "No"), 0.50, 0.30, "Maybe")
        favors_a = normalize_to_prediction(("Yes", "No"), 0.50, 0.80, "Maybe")

        assert favors_b.matched_label is False
        assert favors_b.on_outcome_a is False
        assert favors_b.predicted_probability == pytest.approx(0.70)
        assert favors_a.on_outcome_a is True
        assert favors_a.predicted_probability == 0.80

    def test_label_match_ignores_case_and_whitespace(self):
        """Test labels compare the same way resolution compares them."""
        lower = normalize_to_prediction(("Yes", "No"), 0.20, 0.45, "yes")
        padded = normalize_to_prediction(("Yes", "No"), 0.20, 0.45, " NO ")

        assert lower.matched_label is True
        assert lower.on_outcome_a is True
        assert lower.predicted_probability == 0.45
        assert lower.market_probability == 0.20
        assert padded.matched_label is True
        assert padded.on_outcome_a is False
        assert padded.predicted_probability == pytest.approx(0.55)

    def test_blank_label_matches_nothing(self):
        result = normalize_to_prediction(("Yes", ""), 0.50, 0.30, "  ")

        assert result.matched_label is False

    def test_malformed_input_never_raises(self):
        """Test that malformed input comes through as NaN."""
        result = normalize_to_prediction(None, "n/a", None, None)

        assert math.isnan(result.predicted_probability)
        assert math.isnan(result.market_probability)
        assert result.matched_label is False
