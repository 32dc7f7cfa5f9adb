"""Request scoring for tier routing.

Analyzes a prompt across 14 independent dimensions. This is all done
locally with regex and substring rules - no LLM calls, no I/O.

Dimensions:
1. reasoning, code, simple, multi_step, technical, creative,
   constraints, imperative, output_format, domain, reference,
   negation: fraction of the dimension's rules that fire
2. token_count: whitespace token length, banded
3. question_complexity: number of question marks
"""

import math
from types import MappingProxyType
from typing import Mapping

from .patterns import DEFAULT_PATTERNS, PatternLibrary

DIMENSIONS: tuple[str, ...] = (
    "reasoning",
    "code",
    "simple",
    "multi_step",
    "technical",
    "token_count",
    "creative",
    "question_complexity",
    "constraints",
    "imperative",
    "output_format",
    "domain",
    "reference",
    "negation",
)

# Dimensions computed from counts rather than rule sets
MEASURED_DIMENSIONS = frozenset({"token_count", "question_complexity"})


class WeightTable(Mapping[str, float]):
    """Immutable dimension -> weight mapping whose weights sum to 1.0."""

    TOLERANCE = 1e-9

    def __init__(self, weights: Mapping[str, float]):
        if set(weights) != set(DIMENSIONS):
            missing = sorted(set(DIMENSIONS) - set(weights))
            extra = sorted(set(weights) - set(DIMENSIONS))
            raise ValueError(
                f"Weight table must cover exactly the scoring dimensions "
                f"(missing={missing}, unknown={extra})")
        total = math.fsum(weights.values())
        if abs(total - 1.0) > self.TOLERANCE:
            raise ValueError(f"Weights must sum to 1.0, got {total!r}")
        self._weights = MappingProxyType(
            {dim: float(weights[dim]) for dim in DIMENSIONS})

    def __getitem__(self, dimension: str) -> float:
        return self._weights[dimension]

    def __iter__(self):
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"WeightTable({dict(self._weights)!r})"


DEFAULT_WEIGHTS = WeightTable({
    "reasoning": 0.20,            # "prove", "theorem", "step by step"
    "code": 0.18,                 # "function", "async", "import", "```"
    "simple": 0.10,               # "what is", "define", "translate"
    "multi_step": 0.10,           # "first...then", "step 1", numbered lists
    "technical": 0.10,            # "algorithm", "kubernetes", "distributed"
    "token_count": 0.08,          # short (<50) vs long (>500) prompts
    "creative": 0.05,             # "story", "poem", "brainstorm"
    "question_complexity": 0.04,  # multiple question marks
    "constraints": 0.04,          # "at most", "O(n)", "maximum"
    "imperative": 0.04,           # "build", "create", "implement"
    "output_format": 0.03,        # "json", "yaml", "schema"
    "domain": 0.02,               # "quantum", "fpga", "genomics"
    "reference": 0.01,            # "the docs", "the api", "above"
    "negation": 0.01,             # "don't", "avoid", "without"
})


def token_count_score(text: str) -> float:
    """Short prompts lean simple, long ones complex."""
    tokens = len(text.split())
    if tokens < 50:
        return 0.2
    if tokens > 500:
        return 0.9
    return 0.5 + (tokens - 50) / 900


def question_complexity_score(text: str) -> float:
    return min(text.count("?") / 3, 1.0)


def weighted_sum(scores: Mapping[str, float], weights: Mapping[str, float] = DEFAULT_WEIGHTS) -> float:
    """Sum of score x weight over every weighted dimension."""
    return sum(scores[dim] * weight for dim, weight in weights.items())


class DimensionScorer:
    """Scores prompts across the 14 routing dimensions.

    Usage:
        scorer = DimensionScorer()
        scores = scorer.score("Prove that sqrt(2) is irrational")
        # scores["reasoning"] == 0.2
    """

    def __init__(self, patterns: PatternLibrary = DEFAULT_PATTERNS):
        missing = set(DIMENSIONS) - MEASURED_DIMENSIONS - set(patterns.dimensions)
        if missing:
            raise ValueError(f"Pattern library lacks rules for: {sorted(missing)}")
        self.patterns = patterns

    def score(self, text: str) -> dict[str, float]:
        """Score a prompt.

        Args:
            text: The prompt text.

        Returns:
            Mapping of every dimension to a score in [0, 1].
        """
        scores: dict[str, float] = {}
        for dim in DIMENSIONS:
            if dim == "token_count":
                scores[dim] = token_count_score(text)
            elif dim == "question_complexity":
                scores[dim] = question_complexity_score(text)
            else:
                matches = self.patterns.count_matches(dim, text)
                scores[dim] = min(matches / self.patterns.rule_count(dim), 1.0)
        return scores

    @staticmethod
    def top_dimensions(scores: Mapping[str, float], limit: int = 5) -> list[tuple[str, float]]:
        """Highest non-zero scores, strongest first."""
        ranked = sorted(
            ((dim, value) for dim, value in scores.items() if value > 0),
            key=lambda item: item[1],
            reverse=True,
        )
        return ranked[:limit]
