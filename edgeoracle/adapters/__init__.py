"""Upstream provider adapters.

This module provides:
- Abstract provider interfaces (snapshots, inference, settlements)
- Gamma API client for market snapshots and settlements
- OpenRouter client for model inference
"""

from .base import InferenceProvider, MarketSnapshotProvider, SettlementProvider
from .gamma import GammaClient, parse_event, parse_settlement
from .openrouter import OpenRouterClient, parse_estimate

__all__ = [
    "GammaClient",
    "InferenceProvider",
    "MarketSnapshotProvider",
    "OpenRouterClient",
    "SettlementProvider",
    "parse_estimate",
    "parse_event",
    "parse_settlement",
]
