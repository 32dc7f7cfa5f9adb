"""Keyword rules for the scoring dimensions.

Every dimension owns an ordered set of independent, named predicates.
A dimension's score is the fraction of its rules that fire, so rules
are kept coarse: one rule per family of markers, not one per keyword.

Chinese and Japanese keywords are matched as plain substrings. Those
scripts have no whitespace between words, so regex word boundaries
never line up with them.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping


@dataclass(frozen=True)
class Rule:
    """A named detection rule."""
    name: str
    match: Callable[[str], bool]

    def __call__(self, text: str) -> bool:
        return self.match(text)


def regex(name: str, pattern: str, flags: int = re.IGNORECASE) -> Rule:
    """Rule that fires when the pattern is found anywhere in the text."""
    compiled = re.compile(pattern, flags)
    return Rule(name, lambda text: compiled.search(text) is not None)


def literal(name: str, *needles: str) -> Rule:
    """Rule that fires when any needle occurs as a substring."""
    return Rule(name, lambda text: any(n in text for n in needles))


class PatternLibrary:
    """Read-only collection of rule sets keyed by dimension."""

    def __init__(self, rules: Mapping[str, tuple[Rule, ...]]):
        self._rules = MappingProxyType(
            {dim: tuple(dim_rules) for dim, dim_rules in rules.items()})

    @property
    def dimensions(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def rules(self, dimension: str) -> tuple[Rule, ...]:
        return self._rules[dimension]

    def rule_count(self, dimension: str) -> int:
        return len(self._rules[dimension])

    def count_matches(self, dimension: str, text: str) -> int:
        """Number of rules in a dimension that fire on the text."""
        return sum(1 for rule in self._rules[dimension] if rule(text))

    def matched_rules(self, dimension: str, text: str) -> list[str]:
        """Names of the rules that fire, in rule order."""
        return [rule.name for rule in self._rules[dimension] if rule(text)]


DEFAULT_PATTERNS = PatternLibrary({
    "reasoning": (
        regex("formal", r"\b(prove|theorem|proof|derive|deduce|infer|logic|reasoning)\b"),
        regex("stepwise", r"\b(step[- ]by[- ]step|think through|work through|explain why)\b"),
        literal("chinese", "因为", "所以", "证明", "推理", "定理"),
        literal("japanese", "なぜ", "証明", "理由"),
        regex("russian", r"\b(доказать|теорема|вывод)"),
    ),
    "code": (
        regex("js_keywords",
              r"\b(function|async|await|import|export|const|let|var|class|interface)\b", 0),
        regex("fenced_block", r"```.*```", re.DOTALL),
        regex("python_markers", r"\b(def |return |if __name__|lambda)\b", 0),
        regex("sql", r"\b(SELECT|INSERT|UPDATE|DELETE|FROM|WHERE)\b"),
        regex("brackets", r"[{}();].*[{}();]", 0),
        regex("markup_tag", r"<[a-zA-Z][^>]*>", 0),
        regex("es6_import", r"\bimport\s+\w+\s+from\b", 0),
    ),
    "simple": (
        regex("definition", r"\b(what is|what's|define|meaning of|translate|convert)\b"),
        regex("fact_lookup", r"\b(who is|when was|where is|how many)\b"),
        literal("chinese", "什么是", "是什么", "翻译", "定义"),
        literal("japanese", "とは", "意味", "翻訳"),
    ),
    "multi_step": (
        regex("sequencing", r"\b(first|then|next|after that|finally|step \d)"),
        regex("numbered_list", r"\b(1\.|2\.|3\.)", 0),
        regex("phases", r"\b(phase|stage|part \d)"),
    ),
    "technical": (
        regex("infrastructure", r"\b(algorithm|kubernetes|docker|terraform|nginx|redis)\b"),
        regex("systems", r"\b(distributed|microservice|scalable|concurrent|async)\b"),
        regex("interfaces", r"\b(api|sdk|rest|graphql|grpc|websocket)\b"),
        regex("auth", r"\b(oauth|jwt|authentication|authorization)\b"),
    ),
    "creative": (
        regex("creative_task", r"\b(write a story|poem|creative|brainstorm|imagine)\b"),
        regex("fiction", r"\b(fiction|narrative|character|plot)\b"),
    ),
    "constraints": (
        regex("bounds", r"\b(at most|at least|maximum|minimum|no more than)\b"),
        regex("big_o", r"\bO\([nN\d\^logLog]+\)", 0),
        regex("limits", r"\b(constraint|limit|bound|restriction)\b"),
    ),
    "imperative": (
        regex("build", r"\b(build|create|implement|develop|design|write|make)\b"),
        regex("repair", r"\b(fix|debug|optimize|refactor|improve)\b"),
    ),
    "output_format": (
        regex("data_format", r"\b(json|yaml|xml|csv|markdown|html)\b"),
        regex("structure", r"\b(schema|format|structure|template)\b"),
    ),
    "domain": (
        regex("specialist", r"\b(quantum|genomics|bioinformatics|fpga|verilog)\b"),
        regex("machine_learning", r"\b(machine learning|neural network|transformer|llm)\b"),
    ),
    "reference": (
        regex("documentation", r"\b(the docs|the documentation|the api|the code above)\b"),
        regex("back_reference", r"\b(as mentioned|as shown|see above|referenced)\b"),
    ),
    "negation": (
        regex("english", r"\b(don't|do not|avoid|without|never|shouldn't)\b"),
        literal("chinese", "不要", "禁止", "避免"),
    ),
})
