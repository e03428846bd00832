"""OpenRouter inference adapter.

Asks a chat-completions model for the probability of a market's first
outcome and decodes the JSON answer into a ModelEstimate.

References:
- https://openrouter.ai/docs/api-reference/chat-completion
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx

from ..core.config import InferenceConfig
from ..core.exceptions import UpstreamError
from ..core.models import MarketSnapshot, ModelEstimate
from ..core.utils import as_float, get_logger, is_finite, utc_now
from .base import InferenceProvider

logger = get_logger(__name__)

CODE_FENCE = re.compile(r"```(?:json)?\n?")

PROMPT_TEMPLATE = """Role: You are a superforecaster estimating the outcome of a prediction market.

TODAY'S DATE: {today}

Market: "{title}"
Outcomes: {outcome_a} vs {outcome_b}
Current Market Odds: {outcome_a}: {pct_a}%, {outcome_b}: {pct_b}%
Volume: ${volume:,.0f}

Weigh base rates, recent news and the reasons the crowd could be wrong,
then give your own probability.

Return ONLY a JSON object (no markdown) with these fields:
- aiProbability: number 0-1, the probability of "{outcome_a}" ONLY
- prediction: "{outcome_a}" or "{outcome_b}" (your bet)
- reasoning: 2-3 sentences
- category: Politics | Crypto | Sports | Business | Other
- confidence: number 1-10
- riskFactor: main risk to the forecast

aiProbability is always for "{outcome_a}". If you predict "{outcome_b}"
at 80%, aiProbability is 0.20."""


def build_prompt(snapshot: MarketSnapshot) -> str:
    """Render the forecasting prompt for a market."""
    outcome_a, outcome_b = snapshot.outcomes
    price = snapshot.price_of_outcome_a
    return PROMPT_TEMPLATE.format(
        today=utc_now().strftime("%A, %B %d, %Y"),
        title=snapshot.title,
        outcome_a=outcome_a,
        outcome_b=outcome_b or "Other",
        pct_a=round(price * 100),
        pct_b=round((1 - price) * 100),
        volume=snapshot.volume or 0,
    )


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences a model may wrap its JSON in."""
    return CODE_FENCE.sub("", text).strip()


def parse_estimate(payload: dict[str, Any], snapshot: MarketSnapshot) -> ModelEstimate:
    """Decode a model answer, falling back field by field.

    Missing probability falls back to the market price, a missing
    prediction to outcome A and a missing confidence to 5.
    """
    probability = as_float(payload.get("aiProbability"))
    if not is_finite(probability):
        probability = snapshot.price_of_outcome_a

    prediction = payload.get("prediction")
    if not isinstance(prediction, str) or not prediction:
        prediction = snapshot.outcomes[0]

    confidence = as_float(payload.get("confidence"))
    confidence = int(round(confidence)) if is_finite(confidence) else 5

    return ModelEstimate(
        probability_of_outcome_a=probability,
        predicted_outcome=prediction,
        confidence=confidence,
        reasoning=str(payload.get("reasoning") or ""),
        category=str(payload.get("category") or "Other"),
        risk_factor=str(payload.get("riskFactor") or ""),
    )


class OpenRouterClient(InferenceProvider):
    """Async OpenRouter chat-completions client.

    Example:
        ```python
        credentials = Credentials.from_env()
        async with OpenRouterClient(credentials.openrouter_api_key) as model:
            estimate = await model.estimate(snapshot)
        ```
    """

    SOURCE = "openrouter"

    def __init__(
        self,
        api_key: str,
        config: InferenceConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize inference client.

        Args:
            api_key: OpenRouter API key.
            config: Endpoint and model configuration.
            client: Pre-built HTTP client (tests inject a mock transport).
        """
        self.api_key = api_key
        self.config = config or InferenceConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> OpenRouterClient:
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

    async def estimate(self, snapshot: MarketSnapshot) -> ModelEstimate:
        if self._client is None:
            raise RuntimeError("Not connected. Call connect() first.")

        try:
            response = await self._client.post(
                f"{self.config.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.config.model,
                    "messages": [{"role": "user", "content": build_prompt(snapshot)}],
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(self.SOURCE, str(e)) from e

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not text:
            raise UpstreamError(self.SOURCE, "empty completion")

        try:
            payload = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise UpstreamError(self.SOURCE, f"undecodable answer: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamError(self.SOURCE, "answer is not a JSON object")

        estimate = parse_estimate(payload, snapshot)
        logger.debug(
            "openrouter_estimate",
            market_id=snapshot.market_id,
            probability=estimate.probability_of_outcome_a,
            prediction=estimate.predicted_outcome,
        )
        return estimate
