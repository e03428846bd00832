"""Position sizing module.

This module provides:
- Probability normalization onto the predicted outcome's side
- Guard-railed Kelly criterion stake sizing
- Fractional Kelly (half, quarter) for risk management
"""

from .kelly import (
    KellyFraction,
    StakeCalculator,
    StakeDecision,
    StakeReason,
    compute_stake,
    expected_log_growth,
    kelly_fraction,
    size_stake,
)
from .normalizer import NormalizedProbability, normalize_to_prediction

__all__ = [
    "KellyFraction",
    "NormalizedProbability",
    "StakeCalculator",
    "StakeDecision",
    "StakeReason",
    "compute_stake",
    "expected_log_growth",
    "kelly_fraction",
    "normalize_to_prediction",
    "size_stake",
]
