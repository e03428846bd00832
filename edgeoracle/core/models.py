"""Domain records shared across the evaluation pipeline.

Every stage produces a new frozen record for the next one:

    MarketSnapshot + ModelEstimate -> StakeRecommendation
    StakeRecommendation + SettlementRecord -> ScoredPrediction

All probabilities are "probability of outcome A" (the first label)
unless a property says otherwise.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any

from ..sizing.normalizer import NormalizedProbability, normalize_to_prediction


class PredictionStatus(str, Enum):
    """Lifecycle of a recorded prediction. Pending resolves exactly once."""

    PENDING = "pending"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class MarketQuote:
    """Two-outcome market price for one refresh cycle.

    Attributes:
        market_id: Market identifier.
        outcomes: Outcome pair (outcome A, outcome B).
        price_of_outcome_a: Market price of outcome A (0-1).
    """

    market_id: str
    outcomes: tuple[str, str]
    price_of_outcome_a: float


@dataclass(frozen=True)
class MarketSnapshot(MarketQuote):
    """Market quote with the listing details an inference provider needs."""

    title: str = ""
    volume: float = 0.0
    slug: str = ""
    end_date: str | None = None


@dataclass(frozen=True)
class ModelEstimate:
    """Probability estimate returned by an inference provider.

    Attributes:
        probability_of_outcome_a: Model probability of outcome A.
        predicted_outcome: Label the model bets on.
        confidence: Self-reported confidence on a 1-10 scale.
        reasoning: Free-text rationale (stored, never interpreted).
        category: Market category label.
        risk_factor: Main risk to the forecast.
    """

    probability_of_outcome_a: float
    predicted_outcome: str
    confidence: int
    reasoning: str = ""
    category: str = "Other"
    risk_factor: str = ""


@dataclass(frozen=True)
class SettlementRecord:
    """Winning label reported by the settlement feed for a closed market."""

    market_id: str
    winning_outcome_label: str


@dataclass(frozen=True)
class StakeRecommendation:
    """Stake sized for one market in one evaluation cycle.

    Attributes:
        market_id: Market identifier.
        date: Evaluation-cycle date key (YYYY-MM-DD).
        outcomes: Outcome pair (outcome A, outcome B).
        predicted_outcome: Label the model bets on.
        probability_of_outcome_a: Model probability of outcome A.
        market_probability_of_outcome_a: Market price of outcome A.
        confidence: Model confidence (1-10).
        stake_fraction: Recommended fraction of bankroll (0-1).
    """

    market_id: str
    date: str
    outcomes: tuple[str, str]
    predicted_outcome: str
    probability_of_outcome_a: float
    market_probability_of_outcome_a: float
    confidence: int
    stake_fraction: float
    title: str = ""
    reasoning: str = ""
    category: str = "Other"
    risk_factor: str = ""

    @property
    def record_id(self) -> str:
        """Storage key: one recommendation per market per date."""
        return f"{self.date}-{self.market_id}"

    @property
    def normalized(self) -> NormalizedProbability:
        """Model and market probabilities on the predicted side."""
        return normalize_to_prediction(
            self.outcomes,
            self.market_probability_of_outcome_a,
            self.probability_of_outcome_a,
            self.predicted_outcome,
        )

    @property
    def predicted_probability(self) -> float:
        """Model probability of the predicted outcome."""
        return self.normalized.predicted_probability

    @property
    def market_side_probability(self) -> float:
        """Market price of the predicted outcome (the entry price)."""
        return self.normalized.market_probability

    @property
    def edge(self) -> float:
        """Model probability minus market price on the predicted side."""
        return self.normalized.edge

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["outcomes"] = list(self.outcomes)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        """Build from a dictionary, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in names}
        values["outcomes"] = tuple(values.get("outcomes") or ("Yes", "No"))
        return cls(**values)


@dataclass(frozen=True)
class ScoredPrediction(StakeRecommendation):
    """Recommendation after its market settled.

    Attributes:
        was_correct: Whether the predicted outcome won.
        calibration_error: Squared error of the predicted-side probability.
        realized_return: Bankroll return of the bet (>= -0.99).
        winning_label: Label reported by the settlement feed.
    """

    was_correct: bool = False
    calibration_error: float = 0.0
    realized_return: float = 0.0
    winning_label: str = ""

    @property
    def status(self) -> PredictionStatus:
        return PredictionStatus.WON if self.was_correct else PredictionStatus.LOST

    @classmethod
    def from_recommendation(
        cls,
        recommendation: StakeRecommendation,
        *,
        was_correct: bool,
        calibration_error: float,
        realized_return: float,
        winning_label: str = "",
    ) -> ScoredPrediction:
        """Attach resolution scores to a stored recommendation."""
        base = {
            f.name: getattr(recommendation, f.name)
            for f in fields(StakeRecommendation)
        }
        return cls(
            **base,
            was_correct=was_correct,
            calibration_error=calibration_error,
            realized_return=realized_return,
            winning_label=winning_label,
        )
