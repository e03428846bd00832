"""Batch evaluation of markets into stake recommendations.

Markets are evaluated in bounded concurrent batches with a pause in
between, since the inference provider enforces its own rate limits.
A provider failure or rate-limit rejection for one market never aborts
the batch: the failure is logged and recorded, and the market is left
out of the results. Any other error, such as a broken cache, propagates.

Flow per market:
    limiter -> cache lookup -> inference (on miss) -> cache store
    -> normalize to predicted side -> size stake -> StakeRecommendation
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from ..adapters.base import InferenceProvider, MarketSnapshotProvider
from ..core.cache import AnalysisCache, analysis_cache_key, snapshot_cache_key
from ..core.config import BatchConfig, StakingConfig
from ..core.exceptions import RateLimitExceeded, UpstreamError
from ..core.models import MarketSnapshot, ModelEstimate, StakeRecommendation
from ..core.rate_limiter import SlidingWindowRateLimiter
from ..core.utils import get_logger, today_key
from ..sizing.kelly import StakeCalculator
from ..sizing.normalizer import normalize_to_prediction

logger = get_logger(__name__)


@dataclass(frozen=True)
class BatchFailure:
    """A market that could not be evaluated."""

    market_id: str
    error: str


@dataclass
class BatchResult:
    """Recommendations and failures of one evaluation run.

    Attributes:
        recommendations: Successful evaluations, in input order.
        failures: Markets that failed, in input order.
    """

    recommendations: list[StakeRecommendation] = field(default_factory=list)
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.recommendations)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class EdgeAlert:
    """Recommendation whose edge clears the alert threshold."""

    recommendation: StakeRecommendation
    edge: float
    is_hot: bool


def build_recommendation(
    snapshot: MarketSnapshot,
    estimate: ModelEstimate,
    date: str,
    calculator: StakeCalculator | None = None,
) -> StakeRecommendation:
    """Combine a market snapshot and a model estimate into a sized stake.

    Args:
        snapshot: Market at evaluation time.
        estimate: Model estimate for the market.
        date: Evaluation-cycle date key.
        calculator: Stake calculator (default policy if None).

    Returns:
        StakeRecommendation recording the market's own label for the
        side the stake was sized on.
    """
    calculator = calculator or StakeCalculator()
    normalized = normalize_to_prediction(
        snapshot.outcomes,
        snapshot.price_of_outcome_a,
        estimate.probability_of_outcome_a,
        estimate.predicted_outcome,
    )
    if not normalized.matched_label:
        logger.debug(
            "prediction_label_unmatched",
            market_id=snapshot.market_id,
            predicted=estimate.predicted_outcome,
            outcomes=list(snapshot.outcomes),
        )

    stake = calculator.compute_stake(
        normalized.predicted_probability,
        normalized.market_probability,
        estimate.confidence,
    )

    return StakeRecommendation(
        market_id=snapshot.market_id,
        date=date,
        outcomes=snapshot.outcomes,
        predicted_outcome=snapshot.outcomes[0 if normalized.on_outcome_a else 1],
        probability_of_outcome_a=estimate.probability_of_outcome_a,
        market_probability_of_outcome_a=snapshot.price_of_outcome_a,
        confidence=estimate.confidence,
        stake_fraction=stake,
        title=snapshot.title,
        reasoning=estimate.reasoning,
        category=estimate.category,
        risk_factor=estimate.risk_factor,
    )


async def fetch_snapshots(
    provider: MarketSnapshotProvider,
    limit: int,
    cache: AnalysisCache | None = None,
) -> list[MarketSnapshot]:
    """Fetch active markets, reusing a recent fetch within the snapshot TTL."""
    if cache is None:
        return await provider.get_snapshots(limit)

    key = snapshot_cache_key(type(provider).__name__, limit)
    return await cache.snapshots.get_or_compute(
        key, lambda: provider.get_snapshots(limit)
    )


def screen_high_edge(
    recommendations: Iterable[StakeRecommendation],
    threshold: float = 0.08,
    hot_threshold: float = 0.15,
) -> list[EdgeAlert]:
    """Recommendations with absolute edge at or above threshold.

    Returns:
        EdgeAlerts sorted by absolute edge, largest first.
    """
    alerts = []
    for rec in recommendations:
        edge = abs(rec.edge)
        if not math.isnan(edge) and edge >= threshold:
            alerts.append(EdgeAlert(rec, edge, is_hot=edge >= hot_threshold))

    alerts.sort(key=lambda a: a.edge, reverse=True)
    return alerts


class MarketEvaluator:
    """Turns market snapshots into stake recommendations.

    Usage:
        evaluator = MarketEvaluator(
            inference=model_client,
            cache=AnalysisCache(),
            limiter=SlidingWindowRateLimiter(max_requests=30, window_seconds=60),
        )
        result = await evaluator.evaluate(snapshots)
    """

    def __init__(
        self,
        inference: InferenceProvider,
        staking: StakingConfig | None = None,
        batch: BatchConfig | None = None,
        cache: AnalysisCache | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
        identity: str = "pipeline",
    ):
        """Initialize evaluator.

        Args:
            inference: Model inference provider.
            staking: Stake sizing policy.
            batch: Batch size and inter-batch delay.
            cache: Cache in front of inference calls (optional).
            limiter: Limiter in front of inference calls (optional).
            identity: Caller identity charged against the limiter.
        """
        self.inference = inference
        self.calculator = StakeCalculator(staking)
        self.batch = batch or BatchConfig()
        self.cache = cache
        self.limiter = limiter
        self.identity = identity

    async def _estimate(self, snapshot: MarketSnapshot) -> ModelEstimate:
        if self.limiter is not None:
            self.limiter.acquire(self.identity)
        return await self.inference.estimate(snapshot)

    async def get_estimate(self, snapshot: MarketSnapshot) -> ModelEstimate:
        """Model estimate for a snapshot, served from cache when fresh.

        Cache hits do not count against the rate limit.

        Raises:
            RateLimitExceeded: If the limiter rejects the upstream call.
        """
        if self.cache is None:
            return await self._estimate(snapshot)

        key = analysis_cache_key(
            snapshot.market_id,
            snapshot.title,
            snapshot.outcomes,
            snapshot.price_of_outcome_a,
            snapshot.volume,
        )
        return await self.cache.analyses.get_or_compute(
            key, lambda: self._estimate(snapshot)
        )

    async def evaluate_market(
        self,
        snapshot: MarketSnapshot,
        date: str | None = None,
    ) -> StakeRecommendation:
        """Evaluate one market.

        Raises:
            RateLimitExceeded: If the limiter rejects the upstream call.
            UpstreamError: If the inference provider fails.
        """
        estimate = await self.get_estimate(snapshot)
        return build_recommendation(snapshot, estimate, date or today_key(), self.calculator)

    async def _evaluate_item(
        self,
        snapshot: MarketSnapshot,
        date: str,
    ) -> StakeRecommendation | BatchFailure:
        try:
            return await self.evaluate_market(snapshot, date)
        except (UpstreamError, RateLimitExceeded) as e:
            logger.warning(
                "market_evaluation_failed",
                market_id=snapshot.market_id,
                title=snapshot.title[:60],
                error=str(e),
            )
            return BatchFailure(snapshot.market_id, str(e))

    async def evaluate(
        self,
        snapshots: Sequence[MarketSnapshot],
        date: str | None = None,
    ) -> BatchResult:
        """Evaluate markets in bounded concurrent batches.

        Args:
            snapshots: Markets to evaluate.
            date: Evaluation-cycle date key (today if None).

        Returns:
            BatchResult with successes and per-market failures.
        """
        date = date or today_key()
        batch_size = max(1, self.batch.batch_size)
        total_batches = (len(snapshots) + batch_size - 1) // batch_size
        result = BatchResult()

        for index, start in enumerate(range(0, len(snapshots), batch_size)):
            batch = snapshots[start:start + batch_size]
            logger.info(
                "evaluation_batch_started",
                batch=index + 1,
                total_batches=total_batches,
                markets=len(batch),
            )

            outcomes = await asyncio.gather(
                *(self._evaluate_item(snapshot, date) for snapshot in batch)
            )
            for outcome in outcomes:
                if isinstance(outcome, BatchFailure):
                    result.failures.append(outcome)
                else:
                    result.recommendations.append(outcome)

            if start + batch_size < len(snapshots) and self.batch.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch.batch_delay_seconds)

        logger.info(
            "evaluation_complete",
            succeeded=result.success_count,
            failed=result.failure_count,
        )
        return result
