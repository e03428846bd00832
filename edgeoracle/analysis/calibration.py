"""Calibration analysis of model predictions.

Groups resolved predictions by the probability the model assigned to
the outcome it predicted, and compares each bucket's average forecast
with its actual hit rate.

Key metrics:
- Calibration curve: actual hit rate vs. forecast probability by bucket
- Brier score: probabilistic forecasting accuracy
- Statistical significance of each bucket's gap
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from ..core.models import ScoredPrediction


@dataclass(frozen=True)
class CalibrationBucket:
    """Single bucket in calibration analysis.

    Attributes:
        prob_low: Lower bound of forecast bucket.
        prob_high: Upper bound of forecast bucket.
        avg_forecast: Average predicted-side probability in this bucket.
        actual_rate: Fraction of predictions in this bucket that won.
        sample_size: Number of predictions in bucket.
        gap: actual_rate - avg_forecast (positive = underconfident).
        std_error: Standard error of actual_rate.
        significant: Whether the gap is statistically significant.
    """

    prob_low: float
    prob_high: float
    avg_forecast: float
    actual_rate: float
    sample_size: int
    gap: float
    std_error: float
    significant: bool


def brier_score(predictions: Iterable[ScoredPrediction]) -> float:
    """Mean squared calibration error.

    Perfect forecasting = 0, coin-flip forecasting = 0.25.
    """
    errors = [p.calibration_error for p in predictions]
    if not errors:
        return 0.0
    return sum(errors) / len(errors)


def calibration_buckets(
    predictions: Iterable[ScoredPrediction],
    bucket_width: float = 0.1,
    min_sample_size: int = 1,
) -> list[CalibrationBucket]:
    """Create calibration buckets from resolved predictions.

    Args:
        predictions: Scored predictions.
        bucket_width: Width of probability buckets (default: 10%).
        min_sample_size: Buckets with fewer samples are skipped.

    Returns:
        Buckets in ascending probability order. The last bucket
        includes a forecast of exactly 1.0.
    """
    points = [
        (p.predicted_probability, 1 if p.was_correct else 0)
        for p in predictions
        if math.isfinite(p.predicted_probability)
        and 0.0 <= p.predicted_probability <= 1.0
    ]
    if not points or bucket_width <= 0:
        return []

    n_buckets = math.ceil(round(1.0 / bucket_width, 9))

    # Index by ratio, not by comparing against i * width: 3 * 0.1 > 0.3
    grouped: dict[int, list[tuple[float, int]]] = {}
    for prob, outcome in points:
        index = min(int(round(prob / bucket_width, 9)), n_buckets - 1)
        grouped.setdefault(index, []).append((prob, outcome))

    buckets = []
    for i in sorted(grouped):
        in_bucket = grouped[i]
        if len(in_bucket) < max(1, min_sample_size):
            continue

        prob_low = round(i * bucket_width, 10)
        prob_high = min(round((i + 1) * bucket_width, 10), 1.0)

        avg_forecast = sum(prob for prob, _ in in_bucket) / len(in_bucket)
        actual_rate = sum(outcome for _, outcome in in_bucket) / len(in_bucket)
        gap = actual_rate - avg_forecast

        # Standard error for proportion
        std_error = math.sqrt(
            actual_rate * (1 - actual_rate) / len(in_bucket)
        ) if 0 < actual_rate < 1 else 0

        z_score = abs(gap) / std_error if std_error > 0 else 0

        buckets.append(CalibrationBucket(
            prob_low=prob_low,
            prob_high=prob_high,
            avg_forecast=avg_forecast,
            actual_rate=actual_rate,
            sample_size=len(in_bucket),
            gap=gap,
            std_error=std_error,
            significant=z_score > 1.96,  # 95% confidence
        ))

    return buckets
