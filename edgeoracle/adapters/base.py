"""Provider interfaces for the upstream boundaries.

The evaluation core treats each provider as an opaque oracle: it does
not care whether estimates come from an LLM, a statistical model or a
human analyst. Implementations raise UpstreamError on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.models import MarketSnapshot, ModelEstimate, SettlementRecord


class MarketSnapshotProvider(ABC):
    """Source of active two-outcome markets."""

    @abstractmethod
    async def get_snapshots(self, limit: int = 100) -> list[MarketSnapshot]:
        """Fetch currently active markets.

        Args:
            limit: Maximum markets to return.

        Returns:
            List of MarketSnapshot objects.
        """
        pass


class InferenceProvider(ABC):
    """Source of model probability estimates."""

    @abstractmethod
    async def estimate(self, snapshot: MarketSnapshot) -> ModelEstimate:
        """Estimate the probability of the snapshot's outcome A.

        Args:
            snapshot: Market to analyze.

        Returns:
            ModelEstimate for the market.
        """
        pass


class SettlementProvider(ABC):
    """Source of market outcomes once markets close."""

    @abstractmethod
    async def get_settlement(self, market_id: str) -> SettlementRecord | None:
        """Fetch a market's settlement.

        Args:
            market_id: Market identifier.

        Returns:
            SettlementRecord, or None while the market is unresolved.
        """
        pass
