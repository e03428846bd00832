"""Resolution tracker for stored predictions.

Polls the settlement feed for every pending prediction and records the
ones whose markets have settled. A prediction is resolved exactly once;
later settlement corrections (e.g. disputed markets) are not applied.
"""

from __future__ import annotations

from ..adapters.base import SettlementProvider
from ..core.exceptions import UpstreamError
from ..core.models import ScoredPrediction, SettlementRecord
from ..core.utils import get_logger
from ..storage.history import HistoryStore
from .resolution import ResolutionMatcher
from .returns import ReturnModel
from .scoring import score_prediction

logger = get_logger(__name__)


class ResolutionTracker:
    """Resolves pending predictions against a settlement provider.

    Usage:
        async with HistoryStore() as store, GammaClient() as gamma:
            tracker = ResolutionTracker(store, gamma)
            resolved = await tracker.resolve_pending()
    """

    def __init__(
        self,
        store: HistoryStore,
        settlements: SettlementProvider,
        matcher: ResolutionMatcher | None = None,
        return_model: ReturnModel | None = None,
    ):
        """Initialize resolution tracker.

        Args:
            store: History store with pending predictions.
            settlements: Settlement provider.
            matcher: Resolution matcher (default if None).
            return_model: Return model (default if None).
        """
        self.store = store
        self.settlements = settlements
        self.matcher = matcher or ResolutionMatcher()
        self.return_model = return_model or ReturnModel()

    async def resolve_pending(self) -> list[ScoredPrediction]:
        """Score and record every pending prediction that has settled.

        Settlement lookups are cached per market for the duration of
        one call, since a market can have predictions on several dates.
        Provider failures leave the prediction pending; store failures
        propagate.

        Returns:
            Newly recorded ScoredPredictions.
        """
        pending = await self.store.get_pending()
        if not pending:
            return []

        settlements: dict[str, SettlementRecord | None] = {}
        resolved = []

        for rec in pending:
            if rec.market_id not in settlements:
                try:
                    settlements[rec.market_id] = await self.settlements.get_settlement(rec.market_id)
                except UpstreamError as e:
                    logger.warning(
                        "settlement_fetch_failed",
                        market_id=rec.market_id,
                        error=str(e),
                    )
                    settlements[rec.market_id] = None
                    continue

            scored = score_prediction(
                rec,
                settlements[rec.market_id],
                matcher=self.matcher,
                return_model=self.return_model,
            )
            if scored is None:
                continue

            if await self.store.record_resolution(scored):
                resolved.append(scored)
                logger.info(
                    "prediction_resolved",
                    record_id=scored.record_id,
                    predicted=scored.predicted_outcome,
                    winner=scored.winning_label,
                    won=scored.was_correct,
                    realized_return=round(scored.realized_return, 4),
                )

        logger.info("resolution_check_complete", pending=len(pending), resolved=len(resolved))
        return resolved

