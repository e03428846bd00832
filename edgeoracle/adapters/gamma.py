"""Gamma API adapter for market snapshots and settlements.

Gamma serves public Polymarket event metadata without authentication.
Each event carries one or more markets whose `outcomes` and
`outcomePrices` fields may be JSON-encoded strings.

References:
- https://docs.polymarket.com/developers/gamma-markets-api/overview
"""

from __future__ import annotations

import json
import math
from typing import Any

import httpx

from ..core.config import GammaConfig
from ..core.exceptions import UpstreamError
from ..core.models import MarketSnapshot, SettlementRecord
from ..core.utils import as_float, get_logger
from .base import MarketSnapshotProvider, SettlementProvider

logger = get_logger(__name__)

DEFAULT_OUTCOMES = ("Yes", "No")
GROUP_OTHER_LABEL = "Other"
SETTLED_PRICE = 0.99


def _decode_list(value: Any) -> list | None:
    """Decode a list that may arrive JSON-encoded."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    return value if isinstance(value, list) else None


def parse_outcomes(market: dict[str, Any]) -> tuple[str, str]:
    """Outcome pair of a Gamma market.

    Group markets ("Who will win?" split into one market per option)
    become (option, "Other").
    """
    outcomes: tuple[str, str] = DEFAULT_OUTCOMES
    parsed = _decode_list(market.get("outcomes"))
    if parsed and len(parsed) >= 2:
        outcomes = (str(parsed[0]), str(parsed[1]))

    group_title = market.get("groupItemTitle")
    if group_title and outcomes[0] == "Yes":
        outcomes = (str(group_title), GROUP_OTHER_LABEL)

    return outcomes


def parse_event(event: dict[str, Any]) -> MarketSnapshot | None:
    """Build a snapshot from a Gamma event document.

    Only the event's first market is used. Markets priced at or beyond
    1% / 99% are skipped as effectively decided.

    Args:
        event: Event document.

    Returns:
        MarketSnapshot, or None if the event is unusable.
    """
    try:
        markets = event.get("markets") or []
        market = markets[0] if markets else None
        if not market or not market.get("outcomePrices"):
            return None

        prices = _decode_list(market["outcomePrices"])
        if not prices:
            return None

        price_a = as_float(prices[0])
        if math.isnan(price_a) or price_a <= 0.01 or price_a >= 0.99:
            return None

        return MarketSnapshot(
            market_id=str(event["id"]),
            outcomes=parse_outcomes(market),
            price_of_outcome_a=price_a,
            title=str(event.get("title") or market.get("question") or ""),
            volume=as_float(market.get("volume"), 0.0),
            slug=str(event.get("slug") or ""),
            end_date=event.get("endDate"),
        )

    except (AttributeError, KeyError, TypeError) as e:
        logger.debug("gamma_event_unparseable", error=str(e))
        return None


def parse_settlement(market_id: str, event: dict[str, Any]) -> SettlementRecord | None:
    """Settlement of a closed Gamma event.

    The winner is the outcome whose final price settled at or above
    0.99. Closed markets without a clear winner stay unresolved.

    Args:
        market_id: Identifier the prediction was recorded under.
        event: Event document.

    Returns:
        SettlementRecord, or None if unresolved.
    """
    markets = event.get("markets") or []
    market = markets[0] if markets else None
    if not market:
        return None

    if not (market.get("closed") or event.get("closed")):
        return None

    prices = _decode_list(market.get("outcomePrices")) or []
    outcomes = parse_outcomes(market)

    for label, price in zip(outcomes, prices):
        if as_float(price, 0.0) >= SETTLED_PRICE:
            return SettlementRecord(market_id=market_id, winning_outcome_label=label)

    logger.debug(
        "gamma_closed_without_winner",
        market_id=market_id,
        prices=prices,
    )
    return None


class GammaClient(MarketSnapshotProvider, SettlementProvider):
    """Async Gamma API client.

    Example:
        ```python
        async with GammaClient() as gamma:
            snapshots = await gamma.get_snapshots(limit=50)
            settlement = await gamma.get_settlement("12345")
        ```
    """

    SOURCE = "gamma"

    def __init__(
        self,
        config: GammaConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize Gamma client.

        Args:
            config: Endpoint configuration.
            client: Pre-built HTTP client (tests inject a mock transport).
        """
        self.config = config or GammaConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> GammaClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
            self._owns_client = True

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if self._client is None:
            raise RuntimeError("Not connected. Call connect() first.")

        try:
            response = await self._client.get(
                f"{self.config.base_url}{path}",
                params=params,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(self.SOURCE, str(e)) from e

    async def get_events(self, limit: int) -> list[dict[str, Any]]:
        """Fetch active events ordered by 24h volume."""
        data = await self._get_json(
            "/events",
            params={
                "limit": limit,
                "active": "true",
                "closed": "false",
                "order": "volume24hr",
                "ascending": "false",
            },
        )
        if not isinstance(data, list):
            raise UpstreamError(self.SOURCE, "events response is not a list")
        return data

    async def get_snapshots(self, limit: int | None = None) -> list[MarketSnapshot]:
        events = await self.get_events(limit or self.config.event_limit)

        snapshots = []
        for event in events:
            snapshot = parse_event(event) if isinstance(event, dict) else None
            if snapshot:
                snapshots.append(snapshot)

        logger.info("gamma_snapshots_fetched", events=len(events), markets=len(snapshots))
        return snapshots

    async def get_settlement(self, market_id: str) -> SettlementRecord | None:
        event = await self._get_json(f"/events/{market_id}")
        if not isinstance(event, dict):
            raise UpstreamError(self.SOURCE, f"event {market_id} response is not an object")
        return parse_settlement(market_id, event)
