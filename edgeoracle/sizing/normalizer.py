"""Probability normalization onto the predicted outcome's side.

Markets and model estimates both quote "probability of outcome A", the
first label of the market's outcome pair. Sizing and scoring need the
probability of the outcome that was actually predicted:

    predicted == outcome A:  p = prob_a,      price = price_a
    otherwise:               p = 1 - prob_a,  price = 1 - price_a

When the predicted label matches neither outcome the model's favored
side is assumed, and callers record that side's label. Nothing here
raises: upstream labels are untrusted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from ..core.utils import as_float, normalize_label


@dataclass(frozen=True)
class NormalizedProbability:
    """Probabilities seen from the predicted outcome's perspective.

    Attributes:
        predicted_probability: Model probability of the predicted outcome.
        market_probability: Market price of the predicted outcome.
        on_outcome_a: Whether the predicted side is outcome A.
        matched_label: False when the prediction matched neither label
            and the favored side was assumed.
    """

    predicted_probability: float
    market_probability: float
    on_outcome_a: bool
    matched_label: bool = True

    @property
    def edge(self) -> float:
        """Signed edge of the model over the market on the predicted side."""
        return self.predicted_probability - self.market_probability


def _label_at(outcomes: Any, index: int) -> str:
    try:
        return normalize_label(outcomes[index])
    except (IndexError, KeyError, TypeError):
        return ""


def normalize_to_prediction(
    outcomes: Sequence[str],
    price_of_outcome_a: float,
    probability_of_outcome_a: float,
    predicted_outcome: str,
) -> NormalizedProbability:
    """Express model probability and market price on the predicted side.

    Labels are compared after trimming and lowercasing, the same way
    resolution compares them against the settlement.

    Args:
        outcomes: Market outcome pair [outcome A, outcome B].
        price_of_outcome_a: Market price of outcome A (0-1).
        probability_of_outcome_a: Model probability of outcome A (0-1).
        predicted_outcome: Label the model predicted.

    Returns:
        NormalizedProbability. Non-numeric inputs come through as NaN,
        which the stake calculator treats as "no bet".
    """
    prob_a = as_float(probability_of_outcome_a)
    price_a = as_float(price_of_outcome_a)
    predicted = normalize_label(predicted_outcome)

    if predicted and predicted == _label_at(outcomes, 0):
        return NormalizedProbability(prob_a, price_a, on_outcome_a=True)

    if predicted and predicted == _label_at(outcomes, 1):
        return NormalizedProbability(1 - prob_a, 1 - price_a, on_outcome_a=False)

    # Unknown label: side with whatever the model favors
    favors_a = not math.isnan(prob_a) and prob_a >= 1 - prob_a
    if favors_a:
        return NormalizedProbability(prob_a, price_a, on_outcome_a=True, matched_label=False)
    return NormalizedProbability(1 - prob_a, 1 - price_a, on_outcome_a=False, matched_label=False)
