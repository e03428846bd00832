"""Analysis module for prediction resolution and performance.

This module provides tools for:
- Resolution matching (did the prediction win?)
- Realized bankroll returns
- Backtest aggregation (accuracy, Brier score, compounding ROI)
- Calibration analysis (forecast vs. hit rate)
- Resolution tracking of stored predictions
"""

from .backtest import (
    BacktestAccumulator,
    BacktestAggregator,
    BacktestSummary,
    aggregate,
    equity_curve,
)
from .calibration import CalibrationBucket, brier_score, calibration_buckets
from .resolution import MatchResult, ResolutionMatcher, normalize_label
from .resolution_tracker import ResolutionTracker
from .returns import ReturnModel, realized_return
from .scoring import score_prediction

__all__ = [
    "BacktestAccumulator",
    "BacktestAggregator",
    "BacktestSummary",
    "CalibrationBucket",
    "MatchResult",
    "ResolutionMatcher",
    "ResolutionTracker",
    "ReturnModel",
    "aggregate",
    "brier_score",
    "calibration_buckets",
    "equity_curve",
    "normalize_label",
    "realized_return",
    "score_prediction",
]
