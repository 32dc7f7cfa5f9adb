"""Model pricing and savings estimates.

Routing decisions are logged with an estimate of how much cheaper the
routed model is than always sending the request to a premium baseline.
The numbers are indicative only; nothing here talks to a billing API.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class ModelRate:
    """USD per 1M tokens."""
    input_per_million: float
    output_per_million: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens / 1_000_000 * self.input_per_million
                + output_tokens / 1_000_000 * self.output_per_million)


# Known model pricing (cost per 1M tokens)
MODEL_PRICING: Mapping[str, ModelRate] = MappingProxyType({
    # Gemini
    "gemini/gemini-2.0-flash": ModelRate(0.10, 0.40),
    # DeepSeek
    "deepseek/deepseek-chat": ModelRate(0.14, 0.28),
    "deepseek/deepseek-reasoner": ModelRate(0.55, 2.19),
    # OpenAI
    "openai/gpt-4o-mini": ModelRate(0.15, 0.60),
    "openai/gpt-4o": ModelRate(2.50, 10.00),
    # Anthropic
    "anthropic/claude-sonnet-4": ModelRate(3.00, 15.00),
    "anthropic/claude-opus-4": ModelRate(15.00, 75.00),
})

# Unknown model - estimate conservatively
FALLBACK_RATE = ModelRate(1.00, 5.00)

DEFAULT_BASELINE_MODEL = "anthropic/claude-opus-4"


class CostEstimator:
    """Static cost table lookups.

    Usage:
        estimator = CostEstimator()
        estimator.estimate_savings("gemini/gemini-2.0-flash")
        # ~0.99 compared with the default premium baseline
    """

    def __init__(
        self,
        pricing: Mapping[str, ModelRate] = MODEL_PRICING,
        fallback: ModelRate = FALLBACK_RATE,
    ):
        self.pricing = MappingProxyType(dict(pricing))
        self.fallback = fallback

    def rate_for(self, model: str) -> ModelRate:
        return self.pricing.get(model, self.fallback)

    def estimate_cost(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int = 500,
    ) -> float:
        """Estimate the USD cost of one call."""
        return self.rate_for(model).cost(input_tokens, output_tokens)

    def estimate_savings(
        self,
        routed_model: str,
        baseline_model: str = DEFAULT_BASELINE_MODEL,
        input_tokens: int = 1000,
        output_tokens: int = 500,
    ) -> float:
        """Fraction saved by using routed_model instead of baseline_model.

        Negative when the routed model is the more expensive one.
        Zero when the baseline is free.
        """
        baseline_cost = self.estimate_cost(baseline_model, input_tokens, output_tokens)
        if baseline_cost <= 0:
            return 0.0
        routed_cost = self.estimate_cost(routed_model, input_tokens, output_tokens)
        return 1 - routed_cost / baseline_cost


# ─── Global instance ──────────────────────────────────────────────

_estimator: CostEstimator | None = None


def get_cost_estimator() -> CostEstimator:
    """Get the global cost estimator instance."""
    global _estimator
    if _estimator is None:
        _estimator = CostEstimator()
    return _estimator


def estimate_cost(model: str, input_tokens: int, output_tokens: int = 500) -> float:
    return get_cost_estimator().estimate_cost(model, input_tokens, output_tokens)


def estimate_savings(
    routed_model: str,
    baseline_model: str = DEFAULT_BASELINE_MODEL,
    input_tokens: int = 1000,
    output_tokens: int = 500,
) -> float:
    return get_cost_estimator().estimate_savings(
        routed_model, baseline_model, input_tokens, output_tokens)
