"""Turns a recommendation plus settlement into a ScoredPrediction."""

from __future__ import annotations

from ..core.models import ScoredPrediction, SettlementRecord, StakeRecommendation
from ..core.utils import is_finite
from .resolution import ResolutionMatcher
from .returns import ReturnModel


def calibration_error(predicted_probability: float, was_correct: bool) -> float:
    """Squared error of the predicted-side probability against the outcome."""
    if not is_finite(predicted_probability):
        return 0.0
    actual = 1.0 if was_correct else 0.0
    return (predicted_probability - actual) ** 2


def score_prediction(
    recommendation: StakeRecommendation,
    settlement: SettlementRecord | None,
    matcher: ResolutionMatcher | None = None,
    return_model: ReturnModel | None = None,
) -> ScoredPrediction | None:
    """Score a recommendation once its market has settled.

    Args:
        recommendation: Recorded recommendation.
        settlement: Settlement for the market, or None.
        matcher: Resolution matcher (default if None).
        return_model: Return model (default if None).

    Returns:
        ScoredPrediction, or None while the market is unresolved.
    """
    matcher = matcher or ResolutionMatcher()
    return_model = return_model or ReturnModel()

    result = matcher.match(recommendation, settlement)
    if not result.is_resolved:
        return None

    was_correct = bool(result.was_correct)
    return ScoredPrediction.from_recommendation(
        recommendation,
        was_correct=was_correct,
        calibration_error=calibration_error(
            recommendation.predicted_probability, was_correct
        ),
        realized_return=return_model.realized_return(
            was_correct,
            recommendation.stake_fraction,
            recommendation.market_side_probability,
        ),
        winning_label=result.winning_label or "",
    )
