"""USD cost of a completion, priced from the vendor's public rate card.

Rates are per million tokens, written as (input, output) pairs and
grouped by vendor. Unknown models are not priced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_PER_TOKEN = 1e-6


@dataclass(frozen=True)
class ModelPricing:
    """Input and output rate for one model, USD per million tokens."""

    input_per_million: float
    output_per_million: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens * self.input_per_million + output_tokens * self.output_per_million) * _PER_TOKEN


_RATE_CARD: dict[str, dict[str, tuple[float, float]]] = {
    "openai": {
        "gpt-4": (30.00, 60.00),
        "gpt-4-turbo": (10.00, 30.00),
        "gpt-4o": (5.00, 15.00),
        "gpt-4o-mini": (0.15, 0.60),
        "gpt-3.5-turbo": (0.50, 1.50),
        "o1": (15.00, 60.00),
        "o1-mini": (3.00, 12.00),
    },
    "anthropic": {
        "claude-opus-4": (15.00, 75.00),
        "claude-opus-4-5": (15.00, 75.00),
        "claude-sonnet-4": (3.00, 15.00),
        "claude-sonnet-4-5": (3.00, 15.00),
        "claude-3-5-sonnet": (3.00, 15.00),
        "claude-haiku-4-5": (1.00, 5.00),
        "claude-3-haiku": (0.25, 1.25),
    },
    "gemini": {
        "gemini-1.5-pro": (3.50, 10.50),
        "gemini-1.5-flash": (0.075, 0.30),
        "gemini-2.0-flash": (0.10, 0.40),
    },
    "deepseek": {
        "deepseek-chat": (0.27, 1.10),
        "deepseek-reasoner": (0.55, 2.19),
        "deepseek-coder": (0.14, 0.28),
    },
}

PRICING_TABLE: dict[str, ModelPricing] = {
    model: ModelPricing(*rates)
    for models in _RATE_CARD.values()
    for model, rates in models.items()
}

# Preview and legacy names billed as another model.
MODEL_ALIASES: dict[str, str] = {
    "gpt-4-0613": "gpt-4",
    "gpt-4-1106-preview": "gpt-4-turbo",
    "gpt-4-0125-preview": "gpt-4-turbo",
    "gpt-3.5-turbo-0125": "gpt-3.5-turbo",
    "gpt-3.5-turbo-1106": "gpt-3.5-turbo",
    "gemini-2.0-flash-exp": "gemini-2.0-flash",
}

# -2024-08-06 (OpenAI) or -20241022 (Anthropic)
_SNAPSHOT_SUFFIX = re.compile(r"-(?:\d{4}-\d{2}-\d{2}|\d{8})$")


def resolve_model(model: str) -> str:
    """Map a vendor model id onto its rate-card key."""
    base = _SNAPSHOT_SUFFIX.sub("", model.lower())
    return MODEL_ALIASES.get(base, base)


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float | None:
    """Return the USD cost of one completion, rounded to 6 places.

    ``None`` when the model is not on the rate card.
    """
    pricing = PRICING_TABLE.get(resolve_model(model))
    if pricing is None:
        return None
    return round(pricing.cost(input_tokens, output_tokens), 6)
