"""Resolution matching of recorded predictions against settlements.

The settlement feed does not promise the casing or whitespace of the
labels recorded at prediction time, so both sides are compared after
trimming and lowercasing.

Multi-way markets are collapsed into "named option" vs "Other". A
prediction of "Other" wins whenever the named first option does not.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.models import PredictionStatus, SettlementRecord, StakeRecommendation
from ..core.utils import get_logger, normalize_label

logger = get_logger(__name__)

OTHER_SENTINEL = "other"


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one prediction against the settlement feed.

    Attributes:
        market_id: Market identifier.
        status: PENDING until a settlement exists, then WON or LOST.
        winning_label: Settlement label as reported (None while pending).
    """

    market_id: str
    status: PredictionStatus
    winning_label: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status is not PredictionStatus.PENDING

    @property
    def was_correct(self) -> bool | None:
        """True/False once resolved, None while pending."""
        if not self.is_resolved:
            return None
        return self.status is PredictionStatus.WON


class ResolutionMatcher:
    """Decides whether a recorded prediction won.

    Usage:
        matcher = ResolutionMatcher()
        result = matcher.match(recommendation, settlement)
        if result.is_resolved:
            print(result.was_correct)
    """

    def __init__(self, other_sentinel: str = OTHER_SENTINEL):
        """Initialize matcher.

        Args:
            other_sentinel: Label meaning "any option but the first".
        """
        self.other_sentinel = normalize_label(other_sentinel)

    def is_correct(
        self,
        predicted_outcome: Any,
        first_outcome: Any,
        winning_label: Any,
    ) -> bool:
        """Compare a predicted label with a settled winner.

        Args:
            predicted_outcome: Label that was predicted.
            first_outcome: The market's outcome A label.
            winning_label: Winner reported by the settlement feed.

        Returns:
            True if the prediction won.
        """
        predicted = normalize_label(predicted_outcome)
        winner = normalize_label(winning_label)

        if not predicted or not winner:
            return False

        if predicted == self.other_sentinel:
            return winner != normalize_label(first_outcome)

        return predicted == winner

    def match(
        self,
        prediction: StakeRecommendation,
        settlement: SettlementRecord | None,
    ) -> MatchResult:
        """Match a prediction with its market's settlement.

        Args:
            prediction: Recorded recommendation.
            settlement: Settlement for the market, or None if not settled.

        Returns:
            MatchResult. Missing, mismatched or blank settlements are
            PENDING rather than LOST.
        """
        if settlement is None:
            return MatchResult(prediction.market_id, PredictionStatus.PENDING)

        if settlement.market_id != prediction.market_id:
            logger.warning(
                "settlement_market_mismatch",
                market_id=prediction.market_id,
                settlement_market_id=settlement.market_id,
            )
            return MatchResult(prediction.market_id, PredictionStatus.PENDING)

        if not normalize_label(settlement.winning_outcome_label):
            return MatchResult(prediction.market_id, PredictionStatus.PENDING)

        first_outcome = prediction.outcomes[0] if prediction.outcomes else None
        won = self.is_correct(
            prediction.predicted_outcome,
            first_outcome,
            settlement.winning_outcome_label,
        )

        return MatchResult(
            market_id=prediction.market_id,
            status=PredictionStatus.WON if won else PredictionStatus.LOST,
            winning_label=settlement.winning_outcome_label,
        )
