"""End-to-end pipeline scenario.

Evaluate -> store -> settle -> resolve -> backtest, with fake upstream
providers and a temporary SQLite database.

Run with: python -m pytest tests/integration/test_pipeline.py -v
"""

import tempfile
from pathlib import Path

import pytest

from edgeoracle.adapters.base import InferenceProvider, SettlementProvider
from edgeoracle.analysis.backtest import BacktestAccumulator, aggregate
from edgeoracle.analysis.resolution_tracker import ResolutionTracker
from edgeoracle.core.config import BatchConfig
from edgeoracle.core.exceptions import UpstreamError
from edgeoracle.core.models import MarketSnapshot, ModelEstimate, SettlementRecord
from edgeoracle.pipeline.evaluator import MarketEvaluator
from edgeoracle.storage.history import history_session


class ScriptedInference(InferenceProvider):
    def __init__(self, estimates):
        self.estimates = estimates

    async def estimate(self, snapshot):
        return self.estimates[snapshot.market_id]


class ScriptedSettlements(SettlementProvider):
    def __init__(self, winners=None, failing=()):
        self.winners = winners or {}
        self.failing = set(failing)
        self.calls = []

    async def get_settlement(self, market_id):
        self.calls.append(market_id)
        if market_id in self.failing:
            raise UpstreamError("fake", "timeout")
        winner = self.winners.get(market_id)
        return SettlementRecord(market_id, winner) if winner else None


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "history.db"


SNAPSHOTS = [
    MarketSnapshot("m1", ("Yes", "No"), 0.70, title="Will A happen?"),
    MarketSnapshot("m2", ("Harris", "Other"), 0.40, title="Who wins?"),
    MarketSnapshot("m3", ("Yes", "No"), 0.50, title="Coin flip?"),
]

ESTIMATES = {
    "m1": ModelEstimate(0.85, "Yes", 8),
    "m2": ModelEstimate(0.20, "Other", 7),
    "m3": ModelEstimate(0.52, "Yes", 9),
}


class TestPipelineScenario:
    """Full cycle over a small scripted market set."""

    @pytest.mark.asyncio
    async def test_evaluate_resolve_backtest(self, db_path):
        evaluator = MarketEvaluator(
            ScriptedInference(ESTIMATES),
            batch=BatchConfig(batch_size=2, batch_delay_seconds=0),
        )
        result = await evaluator.evaluate(SNAPSHOTS, date="2024-03-01")

        stakes = {r.market_id: r.stake_fraction for r in result.recommendations}
        assert stakes["m1"] == 0.5
        assert stakes["m2"] == 0.5  # (0.80 - 0.60) / 0.40
        assert stakes["m3"] == pytest.approx(0.04)  # edge exactly at the 2% floor

        settlements = ScriptedSettlements(winners={"m1": "yes", "m2": " Trump "})

        async with history_session(db_path) as store:
            assert await store.save_recommendations(result.recommendations) == 3

            tracker = ResolutionTracker(store, settlements)
            resolved = await tracker.resolve_pending()

            assert {p.market_id for p in resolved} == {"m1", "m2"}
            assert [r.market_id for r in await store.get_pending()] == ["m3"]

            scored = await store.get_scored()

        by_id = {p.market_id: p for p in scored}
        assert by_id["m1"].was_correct is True
        assert by_id["m1"].realized_return == pytest.approx(0.2143, abs=1e-4)
        assert by_id["m2"].was_correct is True
        assert by_id["m2"].realized_return == pytest.approx(0.5 * 0.4 / 0.6)

        summary = aggregate(scored)
        assert summary.total == 2
        assert summary.accuracy == 100.0
        expected = (1 + 0.5 * 0.3 / 0.7) * (1 + 0.5 * 0.4 / 0.6) - 1
        assert summary.compounded_roi == pytest.approx(expected)

        acc = BacktestAccumulator()
        acc.extend(reversed(scored))
        assert acc.summary().compounded_roi == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_resolution_is_final(self, db_path):
        """Test a later settlement correction is not applied."""
        evaluator = MarketEvaluator(
            ScriptedInference(ESTIMATES),
            batch=BatchConfig(batch_size=10, batch_delay_seconds=0),
        )
        result = await evaluator.evaluate(SNAPSHOTS[:1], date="2024-03-01")

        async with history_session(db_path) as store:
            await store.save_recommendations(result.recommendations)
            await ResolutionTracker(store, ScriptedSettlements({"m1": "Yes"})).resolve_pending()

            corrected = ScriptedSettlements({"m1": "No"})
            assert await ResolutionTracker(store, corrected).resolve_pending() == []
            assert corrected.calls == []

            [scored] = await store.get_scored()
            assert scored.was_correct is True

    @pytest.mark.asyncio
    async def test_settlement_failure_stays_pending(self, db_path):
        evaluator = MarketEvaluator(
            ScriptedInference(ESTIMATES),
            batch=BatchConfig(batch_size=10, batch_delay_seconds=0),
        )
        result = await evaluator.evaluate(SNAPSHOTS[:2], date="2024-03-01")

        async with history_session(db_path) as store:
            await store.save_recommendations(result.recommendations)

            settlements = ScriptedSettlements({"m1": "Yes", "m2": "Harris"}, failing={"m2"})
            resolved = await ResolutionTracker(store, settlements).resolve_pending()

            assert [p.market_id for p in resolved] == ["m1"]
            assert [r.market_id for r in await store.get_pending()] == ["m2"]

    @pytest.mark.asyncio
    async def test_settlement_fetched_once_per_market(self, db_path):
        """Test predictions on several dates share one settlement lookup."""
        evaluator = MarketEvaluator(
            ScriptedInference(ESTIMATES),
            batch=BatchConfig(batch_size=10, batch_delay_seconds=0),
        )
        day1 = await evaluator.evaluate(SNAPSHOTS[:1], date="2024-03-01")
        day2 = await evaluator.evaluate(SNAPSHOTS[:1], date="2024-03-02")

        async with history_session(db_path) as store:
            await store.save_recommendations(day1.recommendations + day2.recommendations)

            settlements = ScriptedSettlements({"m1": "Yes"})
            resolved = await ResolutionTracker(store, settlements).resolve_pending()

            assert len(resolved) == 2
            assert settlements.calls == ["m1"]
