"""Evaluation pipeline.

Batches market snapshots through model inference and stake sizing,
and screens the results for high-edge opportunities.
"""

from .evaluator import (
    BatchFailure,
    BatchResult,
    EdgeAlert,
    MarketEvaluator,
    build_recommendation,
    fetch_snapshots,
    screen_high_edge,
)

__all__ = [
    "BatchFailure",
    "BatchResult",
    "EdgeAlert",
    "MarketEvaluator",
    "build_recommendation",
    "fetch_snapshots",
    "screen_high_edge",
]
