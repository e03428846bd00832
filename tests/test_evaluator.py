"""Tests for the batch market evaluator."""

import pytest

from edgeoracle.adapters.base import InferenceProvider, MarketSnapshotProvider
from edgeoracle.analysis.scoring import score_prediction
from edgeoracle.core.cache import AnalysisCache
from edgeoracle.core.config import BatchConfig
from edgeoracle.core.exceptions import UpstreamError
from edgeoracle.core.models import MarketSnapshot, ModelEstimate, SettlementRecord
from edgeoracle.core.rate_limiter import SlidingWindowRateLimiter
from edgeoracle.pipeline.evaluator import (
    MarketEvaluator,
    build_recommendation,
    fetch_snapshots,
    screen_high_edge,
)


def make_snapshot(market_id, price=0.70, title=None):
    return MarketSnapshot(
        market_id=market_id,
        outcomes=("Yes", "No"),
        price_of_outcome_a=price,
        title=title or f"Market {market_id}",
        volume=1000.0,
    )


class FakeInference(InferenceProvider):
    """Returns canned estimates and records calls."""

    def __init__(self, probability=0.85, predicted="Yes", confidence=8, failing=()):
        self.probability = probability
        self.predicted = predicted
        self.confidence = confidence
        self.failing = set(failing)
        self.calls = []

    async def estimate(self, snapshot):
        self.calls.append(snapshot.market_id)
        if snapshot.market_id in self.failing:
            raise UpstreamError("fake", "boom")
        return ModelEstimate(
            probability_of_outcome_a=self.probability,
            predicted_outcome=self.predicted,
            confidence=self.confidence,
            category="Politics",
        )


class FakeSnapshots(MarketSnapshotProvider):
    def __init__(self, snapshots):
        self.snapshots = snapshots
        self.calls = 0

    async def get_snapshots(self, limit=100):
        self.calls += 1
        return self.snapshots[:limit]


class BrokenStore:
    """Cache storage that fails on every lookup."""

    async def get_or_compute(self, key, compute, ttl=None):
        raise RuntimeError("cache storage unavailable")


NO_DELAY = BatchConfig(batch_size=2, batch_delay_seconds=0)


class TestBuildRecommendation:
    """Tests for build_recommendation."""

    def test_worked_example(self):
        estimate = ModelEstimate(0.85, "Yes", 8, reasoning="r", category="Politics")

        rec = build_recommendation(make_snapshot("m1"), estimate, "2024-03-01")

        assert rec.stake_fraction == 0.5
        assert rec.date == "2024-03-01"
        assert rec.record_id == "2024-03-01-m1"
        assert rec.edge == pytest.approx(0.15)
        assert rec.category == "Politics"

    def test_outcome_b_prediction(self):
        """Test a 'No' prediction is sized on the complement side."""
        estimate = ModelEstimate(0.15, "No", 8)

        rec = build_recommendation(make_snapshot("m1", price=0.30), estimate, "2024-03-01")

        assert rec.predicted_probability == pytest.approx(0.85)
        assert rec.market_side_probability == pytest.approx(0.70)
        assert rec.stake_fraction == 0.5

    def test_guardrail_gives_zero_stake(self):
        estimate = ModelEstimate(0.85, "Yes", 2)

        rec = build_recommendation(make_snapshot("m1"), estimate, "2024-03-01")

        assert rec.stake_fraction == 0.0

    def test_unmatched_label_records_sized_side(self):
        """Test the stored label is the side the stake was sized on."""
        estimate = ModelEstimate(0.85, "Maybe", 8)

        rec = build_recommendation(make_snapshot("m1"), estimate, "2024-03-01")
        scored = score_prediction(rec, SettlementRecord("m1", "Yes"))

        assert rec.predicted_outcome == "Yes"
        assert rec.stake_fraction == 0.5
        assert scored.was_correct is True
        assert scored.realized_return == pytest.approx(0.2143, abs=1e-4)

    def test_case_variant_label_sized_and_scored_on_same_side(self):
        estimate = ModelEstimate(0.45, "yes", 8)

        rec = build_recommendation(make_snapshot("m1", price=0.20), estimate, "2024-03-01")
        scored = score_prediction(rec, SettlementRecord("m1", "Yes"))

        assert rec.predicted_outcome == "Yes"
        assert rec.predicted_probability == 0.45
        assert rec.market_side_probability == 0.20
        assert rec.stake_fraction > 0
        assert scored.was_correct is True
        assert scored.calibration_error == pytest.approx(0.3025)


class TestMarketEvaluator:
    """Tests for MarketEvaluator."""

    @pytest.mark.asyncio
    async def test_evaluate_all(self):
        inference = FakeInference()
        evaluator = MarketEvaluator(inference, batch=NO_DELAY)

        result = await evaluator.evaluate(
            [make_snapshot(f"m{i}") for i in range(5)], date="2024-03-01"
        )

        assert result.success_count == 5
        assert result.failure_count == 0
        assert [r.market_id for r in result.recommendations] == [f"m{i}" for i in range(5)]
        assert all(r.stake_fraction == 0.5 for r in result.recommendations)

    @pytest.mark.asyncio
    async def test_failure_isolated(self):
        """Test one failing market does not abort the batch."""
        inference = FakeInference(failing={"m1"})
        evaluator = MarketEvaluator(inference, batch=NO_DELAY)

        result = await evaluator.evaluate([make_snapshot(f"m{i}") for i in range(3)])

        assert [r.market_id for r in result.recommendations] == ["m0", "m2"]
        assert [f.market_id for f in result.failures] == ["m1"]
        assert "boom" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_empty_input(self):
        result = await MarketEvaluator(FakeInference(), batch=NO_DELAY).evaluate([])

        assert result.success_count == 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_inference(self):
        inference = FakeInference()
        evaluator = MarketEvaluator(inference, batch=NO_DELAY, cache=AnalysisCache())
        snapshot = make_snapshot("m1")

        await evaluator.evaluate_market(snapshot, "2024-03-01")
        await evaluator.evaluate_market(snapshot, "2024-03-02")

        assert inference.calls == ["m1"]

    @pytest.mark.asyncio
    async def test_price_move_misses_cache(self):
        inference = FakeInference()
        evaluator = MarketEvaluator(inference, batch=NO_DELAY, cache=AnalysisCache())

        await evaluator.evaluate_market(make_snapshot("m1", price=0.70))
        await evaluator.evaluate_market(make_snapshot("m1", price=0.72))

        assert len(inference.calls) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_rejections_are_failures(self):
        """Test markets over the budget fail without calling upstream."""
        inference = FakeInference()
        limiter = SlidingWindowRateLimiter(max_requests=2, window_seconds=60)
        evaluator = MarketEvaluator(inference, batch=NO_DELAY, limiter=limiter)

        result = await evaluator.evaluate([make_snapshot(f"m{i}") for i in range(4)])

        assert result.success_count == 2
        assert result.failure_count == 2
        assert len(inference.calls) == 2
        assert "Rate limit exceeded" in result.failures[0].error

    @pytest.mark.asyncio
    async def test_cache_hits_not_rate_limited(self):
        inference = FakeInference()
        limiter = SlidingWindowRateLimiter(max_requests=1, window_seconds=60)
        evaluator = MarketEvaluator(
            inference, batch=NO_DELAY, cache=AnalysisCache(), limiter=limiter
        )
        snapshot = make_snapshot("m1")

        await evaluator.evaluate_market(snapshot)
        await evaluator.evaluate_market(snapshot)

        assert limiter.remaining("pipeline") == 0
        assert len(inference.calls) == 1

    @pytest.mark.asyncio
    async def test_cache_failure_aborts_batch(self):
        """Test a broken cache propagates instead of becoming per-market failures."""
        cache = AnalysisCache()
        cache.analyses = BrokenStore()
        evaluator = MarketEvaluator(FakeInference(), batch=NO_DELAY, cache=cache)

        with pytest.raises(RuntimeError, match="cache storage unavailable"):
            await evaluator.evaluate([make_snapshot(f"m{i}") for i in range(3)])

    @pytest.mark.asyncio
    async def test_unexpected_inference_error_propagates(self):
        inference = FakeInference()

        async def explode(snapshot):
            raise ValueError("bad estimate")

        inference.estimate = explode
        evaluator = MarketEvaluator(inference, batch=NO_DELAY)

        with pytest.raises(ValueError):
            await evaluator.evaluate([make_snapshot("m1")])

    @pytest.mark.asyncio
    async def test_same_listing_different_markets_not_shared(self):
        inference = FakeInference()
        evaluator = MarketEvaluator(inference, batch=NO_DELAY, cache=AnalysisCache())

        await evaluator.evaluate_market(make_snapshot("m1", title="Same question"))
        await evaluator.evaluate_market(make_snapshot("m2", title="Same question"))

        assert inference.calls == ["m1", "m2"]


class TestFetchSnapshots:
    """Tests for cached snapshot fetching."""

    @pytest.mark.asyncio
    async def test_cached_within_ttl(self):
        provider = FakeSnapshots([make_snapshot("m1"), make_snapshot("m2")])
        cache = AnalysisCache()

        first = await fetch_snapshots(provider, 10, cache)
        second = await fetch_snapshots(provider, 10, cache)

        assert first == second
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_without_cache(self):
        provider = FakeSnapshots([make_snapshot("m1"), make_snapshot("m2")])

        assert len(await fetch_snapshots(provider, 1)) == 1
        await fetch_snapshots(provider, 1)
        assert provider.calls == 2


class TestScreenHighEdge:
    """Tests for high-edge alerts."""

    def test_threshold_and_order(self):
        estimates = {"m1": 0.75, "m2": 0.90, "m3": 0.80}
        recs = [
            build_recommendation(make_snapshot(mid), ModelEstimate(p, "Yes", 8), "2024-03-01")
            for mid, p in estimates.items()
        ]

        alerts = screen_high_edge(recs, threshold=0.08, hot_threshold=0.15)

        assert [a.recommendation.market_id for a in alerts] == ["m2", "m3"]
        assert alerts[0].is_hot is True
        assert alerts[1].is_hot is False

    def test_negative_edge_counts(self):
        """Test alerts use absolute edge."""
        rec = build_recommendation(make_snapshot("m1"), ModelEstimate(0.50, "Yes", 8), "2024-03-01")

        [alert] = screen_high_edge([rec])

        assert alert.edge == pytest.approx(0.20)
        assert alert.is_hot
