"""SQLite prediction history.

Stores one document per recommendation keyed by evaluation date and
market id, plus the resolution columns filled in once the market
settles. Recommendations are immutable once stored, and a row leaves
the pending state exactly once.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Iterable

import aiosqlite

from ..core.models import PredictionStatus, ScoredPrediction, StakeRecommendation
from ..core.utils import get_logger

logger = get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("data/edgeoracle.db")

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);

-- Predictions: one recommendation per market per evaluation date
CREATE TABLE IF NOT EXISTS predictions (
    id TEXT PRIMARY KEY,  -- '{date}-{market_id}'
    date TEXT NOT NULL,
    market_id TEXT NOT NULL,
    document TEXT NOT NULL,  -- JSON StakeRecommendation
    status TEXT NOT NULL DEFAULT 'pending',  -- 'pending', 'won', 'lost'
    winning_label TEXT,
    calibration_error REAL,
    realized_return REAL,
    resolved_at TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_predictions_date ON predictions(date);
CREATE INDEX IF NOT EXISTS idx_predictions_status ON predictions(status, date);
"""


@dataclass(frozen=True)
class DailyStats:
    """Per-date summary of stored predictions.

    Attributes:
        date: Evaluation date.
        total_predictions: Recommendations stored that day.
        resolved: How many have settled.
        correct: How many settled as wins.
        accuracy: Percent of resolved predictions that won.
        avg_edge: Mean absolute edge on the predicted side.
        avg_stake: Mean stake fraction.
    """

    date: str
    total_predictions: int
    resolved: int
    correct: int
    accuracy: float
    avg_edge: float
    avg_stake: float


class HistoryStore:
    """Async SQLite store of recommendations and their resolutions.

    Usage:
        async with HistoryStore("data/edgeoracle.db") as store:
            await store.save_recommendations(recommendations)
            pending = await store.get_pending()
    """

    def __init__(self, db_path: Path | str | None = None):
        """Initialize store.

        Args:
            db_path: Path to SQLite database file. Defaults to data/edgeoracle.db
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Connect to database and ensure schema exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(
            self.db_path,
            isolation_level=None,  # Autocommit mode
        )
        self._connection.row_factory = aiosqlite.Row

        await self._apply_schema()
        logger.info("history_store_connected", path=str(self.db_path))

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> HistoryStore:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def connection(self) -> aiosqlite.Connection:
        """Get active connection."""
        if not self._connection:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._connection

    async def _apply_schema(self) -> None:
        """Apply database schema and run migrations."""
        try:
            async with self.connection.execute(
                "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
                current_version = row["version"] if row else 0
        except sqlite3.OperationalError:
            # schema_version table doesn't exist yet
            current_version = 0

        if current_version < SCHEMA_VERSION:
            await self.connection.executescript(SCHEMA)
            await self.connection.execute(
                "INSERT OR REPLACE INTO schema_version (version, applied_at) VALUES (?, ?)",
                (SCHEMA_VERSION, datetime.now(timezone.utc).isoformat()),
            )
            logger.info("history_schema_applied", version=SCHEMA_VERSION)

    # =========================================================================
    # Recommendations
    # =========================================================================

    async def save_recommendations(
        self,
        recommendations: Iterable[StakeRecommendation],
    ) -> int:
        """Store recommendations, ignoring ones already stored.

        Returns:
            Number of new rows.
        """
        now = datetime.now(timezone.utc).isoformat()
        inserted = 0

        for rec in recommendations:
            cursor = await self.connection.execute(
                """
                INSERT OR IGNORE INTO predictions (id, date, market_id, document, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (rec.record_id, rec.date, rec.market_id, json.dumps(rec.to_dict()), now),
            )
            inserted += cursor.rowcount
            await cursor.close()

        logger.info("recommendations_saved", inserted=inserted)
        return inserted

    @staticmethod
    def _to_recommendation(row: aiosqlite.Row) -> StakeRecommendation:
        return StakeRecommendation.from_dict(json.loads(row["document"]))

    @staticmethod
    def _to_scored(row: aiosqlite.Row) -> ScoredPrediction:
        rec = StakeRecommendation.from_dict(json.loads(row["document"]))
        return ScoredPrediction.from_recommendation(
            rec,
            was_correct=row["status"] == PredictionStatus.WON.value,
            calibration_error=row["calibration_error"] or 0.0,
            realized_return=row["realized_return"] or 0.0,
            winning_label=row["winning_label"] or "",
        )

    async def get_recommendations(self, date: str) -> list[StakeRecommendation]:
        """Get all recommendations stored for a date."""
        async with self.connection.execute(
            "SELECT * FROM predictions WHERE date = ? ORDER BY market_id", (date,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._to_recommendation(row) for row in rows]

    async def get_pending(self) -> list[StakeRecommendation]:
        """Get recommendations whose markets have not settled yet."""
        async with self.connection.execute(
            "SELECT * FROM predictions WHERE status = ? ORDER BY date, market_id",
            (PredictionStatus.PENDING.value,),
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._to_recommendation(row) for row in rows]

    async def get_status(self, record_id: str) -> PredictionStatus | None:
        """Get a stored prediction's status, or None if unknown."""
        async with self.connection.execute(
            "SELECT status FROM predictions WHERE id = ?", (record_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return PredictionStatus(row["status"]) if row else None

    # =========================================================================
    # Resolutions
    # =========================================================================

    async def record_resolution(self, scored: ScoredPrediction) -> bool:
        """Persist a resolution if the prediction is still pending.

        Returns:
            True if recorded, False if it was already resolved or unknown.
        """
        cursor = await self.connection.execute(
            """
            UPDATE predictions
            SET status = ?, winning_label = ?, calibration_error = ?,
                realized_return = ?, resolved_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                scored.status.value,
                scored.winning_label,
                scored.calibration_error,
                scored.realized_return,
                datetime.now(timezone.utc).isoformat(),
                scored.record_id,
                PredictionStatus.PENDING.value,
            ),
        )
        updated = cursor.rowcount > 0
        await cursor.close()

        if not updated:
            logger.debug("resolution_skipped", record_id=scored.record_id)
        return updated

    async def get_scored(self, since: str | None = None) -> list[ScoredPrediction]:
        """Get resolved predictions, oldest first.

        Args:
            since: Only include dates on or after this (YYYY-MM-DD).
        """
        query = "SELECT * FROM predictions WHERE status != ?"
        params: list = [PredictionStatus.PENDING.value]
        if since:
            query += " AND date >= ?"
            params.append(since)
        query += " ORDER BY date, market_id"

        async with self.connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [self._to_scored(row) for row in rows]

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_daily_stats(self, days: int = 7) -> list[DailyStats]:
        """Per-date statistics for the most recent dates, newest first."""
        async with self.connection.execute(
            "SELECT DISTINCT date FROM predictions ORDER BY date DESC LIMIT ?",
            (days,),
        ) as cursor:
            dates = [row["date"] for row in await cursor.fetchall()]

        stats = []
        for date in dates:
            async with self.connection.execute(
                "SELECT * FROM predictions WHERE date = ?", (date,)
            ) as cursor:
                rows = await cursor.fetchall()

            recs = [self._to_recommendation(row) for row in rows]
            resolved = [row for row in rows if row["status"] != PredictionStatus.PENDING.value]
            correct = sum(1 for row in resolved if row["status"] == PredictionStatus.WON.value)
            total = len(recs)

            stats.append(DailyStats(
                date=date,
                total_predictions=total,
                resolved=len(resolved),
                correct=correct,
                accuracy=100 * correct / len(resolved) if resolved else 0.0,
                avg_edge=sum(abs(r.edge) for r in recs) / total if total else 0.0,
                avg_stake=sum(r.stake_fraction for r in recs) / total if total else 0.0,
            ))

        return stats


@asynccontextmanager
async def history_session(db_path: Path | str | None = None) -> AsyncGenerator[HistoryStore, None]:
    """Async context manager for store sessions.

    Usage:
        async with history_session() as store:
            await store.get_pending()
    """
    store = HistoryStore(db_path)
    await store.connect()
    try:
        yield store
    finally:
        await store.close()
