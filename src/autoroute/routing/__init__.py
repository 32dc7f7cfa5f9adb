"""Prompt difficulty routing engine.

- 14-dimension heuristic scoring (keyword rules, length, questions)
- Weighted tier selection with a reasoning-marker override
- Immutable weight, pattern and tier -> model tables
- 100% local, sub-millisecond, no API calls

Most requests don't need the most expensive model. Classifying each
prompt and sending it to the cheapest tier that can handle it is
where the savings come from.
"""

from autoroute.routing.patterns import DEFAULT_PATTERNS, PatternLibrary, Rule
from autoroute.routing.router import (
    DEFAULT_TIER_MODELS,
    DecisionMethod,
    RequestTier,
    RoutingDecision,
    TierModels,
    WeightedClassifier,
    route,
)
from autoroute.routing.scorer import (
    DEFAULT_WEIGHTS,
    DIMENSIONS,
    DimensionScorer,
    WeightTable,
    weighted_sum,
)

__all__ = [
    "DEFAULT_PATTERNS",
    "DEFAULT_TIER_MODELS",
    "DEFAULT_WEIGHTS",
    "DIMENSIONS",
    "DecisionMethod",
    "DimensionScorer",
    "PatternLibrary",
    "RequestTier",
    "RoutingDecision",
    "Rule",
    "TierModels",
    "WeightTable",
    "WeightedClassifier",
    "route",
    "weighted_sum",
]
