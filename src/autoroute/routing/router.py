"""Tier classifier.

Turns dimension scores into a routing decision:
- Weighted sum of the 14 dimension scores
- Logistic confidence centred on a weighted score of 0.5
- Rule override: two or more reasoning markers go straight to REASONING
- Tier lookup in an immutable tier -> model map
"""

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping

from autoroute.errors import ConfigurationError

from .patterns import DEFAULT_PATTERNS, PatternLibrary
from .scorer import DEFAULT_WEIGHTS, DimensionScorer, WeightTable, weighted_sum


class RequestTier(str, Enum):
    """Difficulty tiers, cheapest first."""
    SIMPLE = "SIMPLE"         # Quick lookups, translations, definitions
    MEDIUM = "MEDIUM"         # General tasks
    COMPLEX = "COMPLEX"       # Code-heavy or multi-part work
    REASONING = "REASONING"   # Proofs, derivations, step-by-step analysis


class DecisionMethod(str, Enum):
    RULES = "rules"
    WEIGHTED = "weighted"


@dataclass(frozen=True)
class TierModels:
    """Model identifier for each tier. Always fully populated."""
    simple: str = "gemini/gemini-2.0-flash"          # $0.10/M - simple Q&A
    medium: str = "deepseek/deepseek-chat"           # $0.14/M - general tasks
    complex: str = "anthropic/claude-sonnet-4"       # $3.00/M - complex coding
    reasoning: str = "deepseek/deepseek-reasoner"    # $0.55/M - step-by-step reasoning

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"Tier {f.name.upper()} needs a model identifier")

    def for_tier(self, tier: RequestTier) -> str:
        return getattr(self, RequestTier(tier).value.lower())

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "TierModels":
        """Build from a {"SIMPLE": ..., "MEDIUM": ...} style mapping.

        Keys are case-insensitive. All four tiers must be present.
        """
        normalized = {str(k).upper(): v for k, v in mapping.items()}
        expected = {tier.value for tier in RequestTier}
        unknown = sorted(set(normalized) - expected)
        if unknown:
            raise ConfigurationError(f"Unknown tier(s) in tier_models: {unknown}")
        missing = [t.value for t in RequestTier if t.value not in normalized]
        if missing:
            raise ConfigurationError(f"tier_models is missing: {missing}")
        return cls(**{k.lower(): v for k, v in normalized.items()})

    def to_dict(self) -> dict[str, str]:
        return {tier.value: self.for_tier(tier) for tier in RequestTier}


DEFAULT_TIER_MODELS = TierModels()


@dataclass
class RoutingDecision:
    """The result of classifying one prompt."""
    tier: RequestTier
    model: str
    confidence: float
    method: DecisionMethod
    scores: dict[str, float]
    weighted_score: float | None = None  # Only set by the weighted method

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "tier": self.tier.value,
            "model": self.model,
            "confidence": self.confidence,
            "method": self.method.value,
            "scores": dict(self.scores),
        }
        if self.weighted_score is not None:
            d["weighted_score"] = self.weighted_score
        return d


def logistic_confidence(score: float) -> float:
    return 1 / (1 + math.exp(-10 * (score - 0.5)))


class WeightedClassifier:
    """Classifies prompts into cost tiers.

    Usage:
        classifier = WeightedClassifier()
        decision = classifier.classify("What is 2+2?")
        # decision.tier == RequestTier.SIMPLE
        # decision.model == "gemini/gemini-2.0-flash"
    """

    RULE_CONFIDENCE = 0.97
    REASONING_OVERRIDE_MATCHES = 2

    def __init__(
        self,
        tier_models: TierModels | None = None,
        weights: WeightTable = DEFAULT_WEIGHTS,
        patterns: PatternLibrary = DEFAULT_PATTERNS,
    ):
        self.tier_models = tier_models or DEFAULT_TIER_MODELS
        self.weights = weights
        self.patterns = patterns
        self.scorer = DimensionScorer(patterns)

    def classify(self, text: str) -> RoutingDecision:
        """Pick a tier and model for a prompt.

        Args:
            text: The prompt text.

        Returns:
            RoutingDecision with tier, model and the score snapshot.
        """
        scores = self.scorer.score(text)
        total = weighted_sum(scores, self.weights)
        confidence = logistic_confidence(total)

        # Counted on raw rule hits, not on the reasoning score
        reasoning_matches = self.patterns.count_matches("reasoning", text)
        if reasoning_matches >= self.REASONING_OVERRIDE_MATCHES:
            return RoutingDecision(
                tier=RequestTier.REASONING,
                model=self.tier_models.for_tier(RequestTier.REASONING),
                confidence=self.RULE_CONFIDENCE,
                method=DecisionMethod.RULES,
                scores=scores,
            )

        tier = self._select_tier(total, scores, reasoning_matches)
        return RoutingDecision(
            tier=tier,
            model=self.tier_models.for_tier(tier),
            confidence=confidence,
            method=DecisionMethod.WEIGHTED,
            scores=scores,
            weighted_score=total,
        )

    @staticmethod
    def _select_tier(
        total: float,
        scores: Mapping[str, float],
        reasoning_matches: int,
    ) -> RequestTier:
        """Tier precedence: SIMPLE, then REASONING, then MEDIUM, else COMPLEX."""
        has_strong_code = scores["code"] > 0.3 or scores["technical"] > 0.3
        has_strong_imperative = scores["imperative"] > 0.3 and (
            scores["code"] > 0.1 or scores["technical"] > 0.1)

        if total < 0.20 and not has_strong_code and not has_strong_imperative:
            return RequestTier.SIMPLE
        if scores["reasoning"] > 0.5 or reasoning_matches >= 1:
            return RequestTier.REASONING
        if total < 0.40 and not has_strong_imperative:
            return RequestTier.MEDIUM
        return RequestTier.COMPLEX


_default_classifier: WeightedClassifier | None = None


def route(text: str, tier_models: TierModels | None = None) -> RoutingDecision:
    """Classify with the default weights and patterns."""
    global _default_classifier
    if tier_models is not None:
        return WeightedClassifier(tier_models).classify(text)
    if _default_classifier is None:
        _default_classifier = WeightedClassifier()
    return _default_classifier.classify(text)
