"""Kelly Criterion stake sizing with guardrails.

The Kelly Criterion determines the optimal fraction of bankroll to bet:
    f* = (bp - q) / b

Where:
    f* = fraction of bankroll to bet
    b = decimal odds minus one: (1 / price) - 1
    p = probability of winning (model probability of the predicted side)
    q = probability of losing (1 - p)

For prediction markets, buying a side at price x pays $1 per share, so
b = (1 - x) / x and f* reduces to (p - x) / (1 - x).

Guardrails run before the formula and each forces a stake of 0:
    - confidence below the configured floor
    - market price inside the extreme band (near-certain markets)
    - absolute edge below the minimum (estimator noise floor)

Stakes are clamped to [0, 1]: no leverage, no shorting. A negative raw
Kelly value means "bet the other side", which the caller already ruled
out by fixing the predicted outcome.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from ..core.config import StakingConfig
from ..core.utils import clamp, get_logger, is_finite

logger = get_logger(__name__)


class KellyFraction(Enum):
    """Standard Kelly fractions for risk management."""

    FULL = 1.0
    HALF = 0.5
    QUARTER = 0.25
    EIGHTH = 0.125


class StakeReason(str, Enum):
    """Why a stake came out the way it did."""

    SIZED = "sized"
    INVALID_INPUT = "invalid_input"
    LOW_CONFIDENCE = "low_confidence"
    EXTREME_PRICE = "extreme_price"
    SMALL_EDGE = "small_edge"
    NO_KELLY_EDGE = "no_kelly_edge"


@dataclass(frozen=True)
class StakeDecision:
    """Result of stake sizing.

    Attributes:
        fraction: Fraction of bankroll to stake (0-1, rounded).
        reason: Which guardrail fired, or SIZED.
        raw_kelly: Unclamped full-Kelly fraction (0 when not computed).
        edge: Predicted probability minus market price.
    """

    fraction: float
    reason: StakeReason
    raw_kelly: float = 0.0
    edge: float = 0.0


def kelly_fraction(probability: float, price: float) -> float:
    """Full-Kelly fraction for buying a side at a given price.

    Args:
        probability: Probability the side wins.
        price: Price paid for the side (0-1).

    Returns:
        Raw Kelly fraction, possibly negative. 0 when odds are undefined.
    """
    if not (is_finite(probability) and is_finite(price)) or price <= 0:
        return 0.0

    odds = (1 / price) - 1
    if odds <= 0:
        return 0.0

    fraction = (odds * probability - (1 - probability)) / odds
    return fraction if math.isfinite(fraction) else 0.0


def expected_log_growth(fraction: float, probability: float, price: float) -> float:
    """Expected log bankroll growth of staking a fraction at a price.

    Growth = p*log(1 + f*b) + q*log(1 - f)
    """
    if fraction <= 0 or not 0 < price < 1:
        return 0.0

    odds = (1 - price) / price
    win_return = 1 + fraction * odds
    loss_return = 1 - fraction
    if win_return <= 0 or loss_return <= 0:
        return 0.0

    return probability * math.log(win_return) + (1 - probability) * math.log(loss_return)


def size_stake(
    predicted_probability: float,
    market_probability: float,
    confidence: float,
    config: StakingConfig | None = None,
) -> StakeDecision:
    """Size a stake and report which rule decided it.

    Args:
        predicted_probability: Model probability of the predicted side.
        market_probability: Market price of the predicted side.
        confidence: Model confidence on a 1-10 scale.
        config: Guardrail thresholds (defaults if None).

    Returns:
        StakeDecision. Never raises; invalid input yields a zero stake.
    """
    config = config or StakingConfig()

    if not (
        is_finite(predicted_probability)
        and is_finite(market_probability)
        and is_finite(confidence)
    ):
        return StakeDecision(0.0, StakeReason.INVALID_INPUT)

    if not (0 <= predicted_probability <= 1 and 0 <= market_probability <= 1):
        return StakeDecision(0.0, StakeReason.INVALID_INPUT)

    edge = predicted_probability - market_probability

    if confidence < config.confidence_floor:
        return StakeDecision(0.0, StakeReason.LOW_CONFIDENCE, edge=edge)

    if market_probability <= config.extreme_low or market_probability >= config.extreme_high:
        return StakeDecision(0.0, StakeReason.EXTREME_PRICE, edge=edge)

    # Rounded so that e.g. 0.72 - 0.70 counts as a 2% edge
    if round(abs(edge), 10) < config.min_edge:
        return StakeDecision(0.0, StakeReason.SMALL_EDGE, edge=edge)

    raw = kelly_fraction(predicted_probability, market_probability)
    if raw <= 0:
        return StakeDecision(0.0, StakeReason.NO_KELLY_EDGE, raw_kelly=raw, edge=edge)

    fraction = raw * config.kelly_multiplier
    fraction = clamp(fraction, 0.0, min(1.0, config.max_stake))

    return StakeDecision(
        fraction=round(fraction, config.precision),
        reason=StakeReason.SIZED,
        raw_kelly=raw,
        edge=edge,
    )


def compute_stake(
    predicted_probability: float,
    market_probability: float,
    confidence: float,
    config: StakingConfig | None = None,
) -> float:
    """Fraction of bankroll to stake on the predicted side.

    Example:
        # Market prices "Yes" at 70%, model says 85%, confidence 8
        compute_stake(0.85, 0.70, 8)
        # b = 1/0.7 - 1 = 0.4286
        # f = (0.4286 * 0.85 - 0.15) / 0.4286 = 0.50
    """
    return size_stake(predicted_probability, market_probability, confidence, config).fraction


class StakeCalculator:
    """Stake calculator bound to one staking policy.

    Usage:
        calculator = StakeCalculator(StakingConfig(kelly_multiplier=0.5))
        stake = calculator.compute_stake(0.85, 0.70, confidence=8)
    """

    def __init__(self, config: StakingConfig | None = None):
        self.config = config or StakingConfig()

    @classmethod
    def with_fraction(
        cls,
        fraction: KellyFraction,
        config: StakingConfig | None = None,
    ) -> StakeCalculator:
        """Build a calculator using one of the standard Kelly fractions."""
        base = config or StakingConfig()
        return cls(base.model_copy(update={"kelly_multiplier": fraction.value}))

    def compute_stake(
        self,
        predicted_probability: float,
        market_probability: float,
        confidence: float,
    ) -> float:
        """Stake fraction under this calculator's policy."""
        return self.decide(predicted_probability, market_probability, confidence).fraction

    def decide(
        self,
        predicted_probability: float,
        market_probability: float,
        confidence: float,
    ) -> StakeDecision:
        """Stake decision under this calculator's policy."""
        decision = size_stake(
            predicted_probability, market_probability, confidence, self.config
        )
        if decision.reason not in (StakeReason.SIZED, StakeReason.NO_KELLY_EDGE):
            logger.debug(
                "stake_guardrail",
                reason=decision.reason.value,
                predicted_probability=predicted_probability,
                market_probability=market_probability,
                confidence=confidence,
            )
        return decision
