"""Backtest aggregation over resolved predictions.

Folds ScoredPredictions into accuracy, calibration (Brier score) and
compounding bankroll return. Every field except the compounded ROI is
order independent. The ROI fold runs in ascending date order:

    multiplier = 1.0
    for p in sorted(predictions, key=date):
        multiplier *= 1 + max(p.realized_return, -0.99)
    roi = multiplier - 1

Two entry points produce identical summaries for the same input:
    aggregate(predictions)        bulk, recomputed from scratch
    BacktestAccumulator.add(p)    incremental, one prediction at a time
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from ..core.models import ScoredPrediction
from ..core.utils import get_logger, safe_divide

logger = get_logger(__name__)

RETURN_FLOOR = -0.99


@dataclass(frozen=True)
class TimeSeriesPoint:
    """Number of resolved predictions recorded on one date."""

    date: str
    count: int


@dataclass(frozen=True)
class EquityPoint:
    """Bankroll multiplier after folding one prediction."""

    date: str
    market_id: str
    bankroll_multiplier: float


@dataclass(frozen=True)
class BacktestSummary:
    """Summary statistics of a set of resolved predictions.

    Attributes:
        total: Number of predictions.
        accuracy: Percent of predictions that were correct (0-100).
        brier_score: Sum of squared calibration errors.
        avg_brier_score: brier_score / total.
        compounded_roi: Final bankroll multiplier minus one.
        win_rate: Percent of predictions with positive return (0-100).
        max_drawdown: Largest peak-to-trough bankroll decline (0-1).
        time_series: Prediction counts per date, ascending.
    """

    total: int = 0
    accuracy: float = 0.0
    brier_score: float = 0.0
    avg_brier_score: float = 0.0
    compounded_roi: float = 0.0
    win_rate: float = 0.0
    max_drawdown: float = 0.0
    time_series: list[TimeSeriesPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total": self.total,
            "accuracy": self.accuracy,
            "brier_score": self.brier_score,
            "avg_brier_score": self.avg_brier_score,
            "compounded_roi": self.compounded_roi,
            "win_rate": self.win_rate,
            "max_drawdown": self.max_drawdown,
            "time_series": [
                {"date": p.date, "count": p.count} for p in self.time_series
            ],
        }


def step_return(realized_return: float) -> float:
    """Return used in the compounding fold (floored, finite)."""
    if not math.isfinite(realized_return):
        return 0.0
    return max(realized_return, RETURN_FLOOR)


def sort_by_date(predictions: Iterable[ScoredPrediction]) -> list[ScoredPrediction]:
    """Ascending date order; ties keep their input order."""
    return sorted(predictions, key=lambda p: p.date)


def equity_curve(predictions: Iterable[ScoredPrediction]) -> list[EquityPoint]:
    """Per-step bankroll snapshots of the date-ordered compounding fold.

    Args:
        predictions: Scored predictions in any order.

    Returns:
        One EquityPoint per prediction, ascending by date.
    """
    curve = []
    multiplier = 1.0

    for prediction in sort_by_date(predictions):
        multiplier *= 1 + step_return(prediction.realized_return)
        curve.append(EquityPoint(prediction.date, prediction.market_id, multiplier))

    return curve


def max_drawdown(curve: list[EquityPoint]) -> float:
    """Largest fractional decline from a running bankroll peak."""
    peak = 1.0
    max_dd = 0.0

    for point in curve:
        if point.bankroll_multiplier > peak:
            peak = point.bankroll_multiplier
        dd = (peak - point.bankroll_multiplier) / peak if peak > 0 else 0
        max_dd = max(max_dd, dd)

    return max_dd


def _time_series(counts: Counter) -> list[TimeSeriesPoint]:
    return [TimeSeriesPoint(date, counts[date]) for date in sorted(counts)]


def aggregate(predictions: Iterable[ScoredPrediction]) -> BacktestSummary:
    """Fold resolved predictions into a fresh BacktestSummary.

    Args:
        predictions: Scored predictions in any order.

    Returns:
        BacktestSummary. Empty input yields an all-zero summary.
    """
    predictions = list(predictions)
    total = len(predictions)

    if total == 0:
        return BacktestSummary()

    correct = sum(1 for p in predictions if p.was_correct)
    winners = sum(1 for p in predictions if p.realized_return > 0)
    brier = sum(p.calibration_error for p in predictions)

    curve = equity_curve(predictions)
    final_multiplier = curve[-1].bankroll_multiplier

    return BacktestSummary(
        total=total,
        accuracy=100 * correct / total,
        brier_score=brier,
        avg_brier_score=brier / total,
        compounded_roi=final_multiplier - 1,
        win_rate=100 * winners / total,
        max_drawdown=max_drawdown(curve),
        time_series=_time_series(Counter(p.date for p in predictions)),
    )


class BacktestAggregator:
    """Bulk aggregator, kept as an object for injection into services."""

    def aggregate(self, predictions: Iterable[ScoredPrediction]) -> BacktestSummary:
        return aggregate(predictions)

    def equity_curve(self, predictions: Iterable[ScoredPrediction]) -> list[EquityPoint]:
        return equity_curve(predictions)


class BacktestAccumulator:
    """Incremental backtest fold.

    Counters update in O(1) per prediction. The ROI multiplier is folded
    in place while dates arrive in non-decreasing order; a prediction
    dated before the latest seen one marks the fold stale and the next
    summary() re-folds everything in date order.

    Usage:
        acc = BacktestAccumulator()
        for prediction in stream:
            acc.add(prediction)
        summary = acc.summary()
    """

    def __init__(self) -> None:
        self._predictions: list[ScoredPrediction] = []
        self._correct = 0
        self._winners = 0
        self._brier = 0.0
        self._dates: Counter = Counter()
        self._multiplier = 1.0
        self._peak = 1.0
        self._max_dd = 0.0
        self._last_date: str | None = None
        self._stale = False

    def __len__(self) -> int:
        return len(self._predictions)

    def add(self, prediction: ScoredPrediction) -> None:
        """Fold one resolved prediction in."""
        self._predictions.append(prediction)
        self._correct += int(prediction.was_correct)
        self._winners += int(prediction.realized_return > 0)
        self._brier += prediction.calibration_error
        self._dates[prediction.date] += 1

        if self._last_date is not None and prediction.date < self._last_date:
            if not self._stale:
                logger.debug(
                    "backtest_out_of_order",
                    date=prediction.date,
                    last_date=self._last_date,
                )
            self._stale = True
            return

        self._last_date = prediction.date
        if not self._stale:
            self._fold(prediction)

    def extend(self, predictions: Iterable[ScoredPrediction]) -> None:
        for prediction in predictions:
            self.add(prediction)

    def _fold(self, prediction: ScoredPrediction) -> None:
        self._multiplier *= 1 + step_return(prediction.realized_return)
        if self._multiplier > self._peak:
            self._peak = self._multiplier
        dd = safe_divide(self._peak - self._multiplier, self._peak)
        self._max_dd = max(self._max_dd, dd)

    def _refold(self) -> None:
        self._multiplier = 1.0
        self._peak = 1.0
        self._max_dd = 0.0
        for prediction in sort_by_date(self._predictions):
            self._fold(prediction)
        self._last_date = max(self._dates) if self._dates else None
        self._stale = False

    def summary(self) -> BacktestSummary:
        """Summary of everything added so far."""
        total = len(self._predictions)
        if total == 0:
            return BacktestSummary()

        if self._stale:
            self._refold()

        return BacktestSummary(
            total=total,
            accuracy=100 * self._correct / total,
            brier_score=self._brier,
            avg_brier_score=self._brier / total,
            compounded_roi=self._multiplier - 1,
            win_rate=100 * self._winners / total,
            max_drawdown=self._max_dd,
            time_series=_time_series(self._dates),
        )
