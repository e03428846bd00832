"""Realized bankroll return of a settled bet.

Buying a side at price x pays (1 - x) / x per unit staked on a win and
loses the stake on a loss. Without leverage the loss is bounded by the
staked fraction, and the result is floored just above -1 so that
compounding products never hit zero.
"""

from __future__ import annotations

import math

from ..core.config import ReturnConfig
from ..core.utils import clamp, is_finite


def realized_return(
    was_correct: bool,
    stake_fraction: float,
    entry_price: float,
    config: ReturnConfig | None = None,
) -> float:
    """Bankroll return of one bet.

    Args:
        was_correct: Whether the predicted side won.
        stake_fraction: Fraction of bankroll staked (0-1).
        entry_price: Price paid for the predicted side.
        config: Price clamp and return bounds (defaults if None).

    Returns:
        Return in [loss_floor, max_return]. Non-numeric input returns 0.
    """
    config = config or ReturnConfig()

    if not (is_finite(stake_fraction) and is_finite(entry_price)):
        return 0.0

    stake = clamp(stake_fraction, 0.0, 1.0)
    price = clamp(entry_price, config.entry_price_floor, config.entry_price_cap)

    if was_correct:
        result = stake * (1 - price) / price
    else:
        result = -stake

    if not math.isfinite(result):
        return 0.0

    result = max(result, config.loss_floor)
    if config.max_return is not None:
        result = min(result, config.max_return)
    return result


class ReturnModel:
    """Return calculator bound to one set of bounds."""

    def __init__(self, config: ReturnConfig | None = None):
        self.config = config or ReturnConfig()

    def realized_return(
        self,
        was_correct: bool,
        stake_fraction: float,
        entry_price: float,
    ) -> float:
        return realized_return(was_correct, stake_fraction, entry_price, self.config)
