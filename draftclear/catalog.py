"""
Pattern Catalog — Read-Only Detection Rules

Every word or phrase DraftClear considers "AI-sounding" is declared
here as data. The detector, classifier and scorer are pattern-agnostic:
adding a rule means adding a row to the table below, not new code.

Each rule carries:
  1. A case-insensitive regex matcher (word-bounded)
  2. A positive weight (severity is derived from it)
  3. A rationale shown to the student
  4. A default fix, plus ranked alternatives keyed by context bucket

The catalog is compiled and validated once at import. A malformed rule
raises PatternCatalogError, which stops the process before it serves
a single request.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Optional

from draftclear.errors import PatternCatalogError

# --- Catalog version (stamped on every result, part of every cache key) ---
CATALOG_VERSION = "2.1.0"


# ============================================================
# DATA STRUCTURES
# ============================================================

SEVERITIES = ("critical", "high", "medium", "low")


def severity_for_weight(weight: int) -> str:
    """Map a rule weight to its severity category."""
    if weight >= 35:
        return "critical"
    if weight >= 25:
        return "high"
    if weight >= 12:
        return "medium"
    return "low"


@dataclass(frozen=True)
class Replacement:
    """A candidate replacement word with a confidence percentage."""
    word: str
    confidence: int = 80


@dataclass(frozen=True)
class PatternRule:
    """A single detection rule."""
    id: str
    matcher: str
    weight: int
    rationale: str
    default_fix: str
    # bucket -> ranked replacements, e.g. {"formal": (Replacement("show", 94),)}
    alternatives: dict[str, tuple[Replacement, ...]] = field(default_factory=dict)
    # Explicit severity; derived from weight when empty
    severity: str = ""
    # Documentation grouping only
    tier: str = ""

    @property
    def resolved_severity(self) -> str:
        return self.severity or severity_for_weight(self.weight)


def _alts(**buckets: list[tuple[str, int]]) -> dict[str, tuple[Replacement, ...]]:
    return {
        bucket: tuple(Replacement(word, conf) for word, conf in words)
        for bucket, words in buckets.items()
    }


# ============================================================
# CRITICAL: vocabulary that almost never appears in student prose
# ============================================================

_CRITICAL: list[PatternRule] = [
    PatternRule(
        id="UTILIZE",
        matcher=r"\butilize\b",
        weight=40,
        rationale="'Utilize' is a hallmark of generated text; people almost always write 'use'.",
        default_fix="use",
        alternatives=_alts(
            general=[("use", 95), ("employ", 80), ("apply", 78)],
            casual=[("use", 92), ("tap into", 82)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="LEVERAGE",
        matcher=r"\bleverage\b",
        weight=40,
        rationale="'Leverage' as a verb is corporate filler that detectors weight heavily.",
        default_fix="use",
        alternatives=_alts(
            business_formal=[("use", 92), ("capitalize on", 88), ("take advantage of", 85)],
            casual=[("use", 90), ("make use of", 80)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="FACILITATE",
        matcher=r"\bfacilitate\b",
        weight=40,
        rationale="'Facilitate' reads as institutional boilerplate.",
        default_fix="help",
        alternatives=_alts(
            formal=[("help", 92), ("enable", 88), ("make easier", 85)],
            casual=[("help", 90), ("make it easier", 87)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="DEMONSTRATE",
        matcher=r"\bdemonstrate\b",
        weight=40,
        rationale="'Demonstrate' is over-represented in model output compared with 'show'.",
        default_fix="show",
        alternatives=_alts(
            formal=[("show", 94), ("prove", 91), ("reveal", 88)],
            casual=[("show", 92), ("illustrate", 85)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="CUTTING_EDGE",
        matcher=r"\bcutting[- ]edge\b",
        weight=40,
        rationale="'Cutting-edge' is stock marketing language.",
        default_fix="modern",
        alternatives=_alts(
            formal=[("modern", 90), ("current", 88), ("latest", 86)],
            casual=[("new", 85), ("up-to-date", 82)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="PARADIGM",
        matcher=r"\bparadigm\b",
        weight=40,
        rationale="'Paradigm' signals inflated, abstract phrasing.",
        default_fix="model",
        alternatives=_alts(
            formal=[("model", 91), ("approach", 85)],
            casual=[("way of thinking", 80), ("outlook", 78)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="SYNTHESIZE",
        matcher=r"\bsynthesize\b",
        weight=40,
        rationale="'Synthesize' is rare in everyday student writing.",
        default_fix="combine",
        alternatives=_alts(
            formal=[("combine", 92), ("bring together", 89), ("merge", 86)],
            casual=[("put together", 85), ("mix", 80)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="JUXTAPOSE",
        matcher=r"\bjuxtapose\b",
        weight=40,
        rationale="'Juxtapose' is a vocabulary flourish typical of generated essays.",
        default_fix="compare",
        alternatives=_alts(
            formal=[("compare", 90), ("contrast", 88)],
            casual=[("compare", 88), ("put next to", 82)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="EFFICACY",
        matcher=r"\befficacy\b",
        weight=40,
        rationale="'Efficacy' is clinical jargon outside medical writing.",
        default_fix="effectiveness",
        alternatives=_alts(
            formal=[("effectiveness", 92), ("success", 89), ("impact", 86)],
            casual=[("effectiveness", 82)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="UNPRECEDENTED",
        matcher=r"\bunprecedented\b",
        weight=40,
        rationale="'Unprecedented' is a go-to intensifier in generated text.",
        default_fix="major",
        alternatives=_alts(
            formal_negative=[("significant", 92), ("major", 88), ("serious", 84)],
            formal_positive=[("remarkable", 91), ("exceptional", 89), ("historic", 87)],
            casual_negative=[("big", 75), ("serious", 72)],
            casual_positive=[("amazing", 70), ("incredible", 68)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="DELVE_INTO",
        matcher=r"\bdelve\s+into\b",
        weight=42,
        rationale="'Delve into' is one of the most reliable markers of model-written prose.",
        default_fix="look into",
        alternatives=_alts(
            formal=[("examine", 88), ("look into", 86)],
            casual=[("dig into", 84), ("look into", 82)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="TAPESTRY",
        matcher=r"\btapestry\b",
        weight=38,
        rationale="Metaphorical 'tapestry' is a signature flourish of generated essays.",
        default_fix="mix",
        alternatives=_alts(
            formal=[("combination", 84), ("mix", 82)],
            casual=[("mix", 86), ("blend", 80)],
        ),
        tier="critical",
    ),
    PatternRule(
        id="TESTAMENT_TO",
        matcher=r"\ba\s+testament\s+to\b",
        weight=36,
        rationale="'A testament to' is a stock closing phrase in generated text.",
        default_fix="a sign of",
        alternatives=_alts(
            general=[("a sign of", 86), ("proof of", 82)],
        ),
        tier="critical",
    ),
]


# ============================================================
# HIGH: buzzwords and stock framing phrases
# ============================================================

_HIGH: list[PatternRule] = [
    PatternRule(
        id="INNOVATIVE",
        matcher=r"\binnovative\b",
        weight=28,
        rationale="'Innovative' is vague praise that models apply to everything.",
        default_fix="new",
        alternatives=_alts(
            formal_positive=[("creative", 90), ("new", 88), ("original", 86)],
            casual=[("creative", 85), ("fresh", 82)],
        ),
        tier="high",
    ),
    PatternRule(
        id="COMPREHENSIVE",
        matcher=r"\bcomprehensive\b",
        weight=28,
        rationale="'Comprehensive' is a filler adjective common in generated summaries.",
        default_fix="thorough",
        alternatives=_alts(
            formal=[("thorough", 92), ("complete", 90), ("full", 87)],
            casual=[("complete", 88), ("whole", 85)],
        ),
        tier="high",
    ),
    PatternRule(
        id="STRATEGIC",
        matcher=r"\bstrategic\b",
        weight=28,
        rationale="'Strategic' adds business gloss without meaning.",
        default_fix="planned",
        alternatives=_alts(
            business_formal=[("planned", 91), ("calculated", 88), ("thoughtful", 85)],
            casual=[("smart", 85), ("planned out", 82)],
        ),
        tier="high",
    ),
    PatternRule(
        id="OPTIMIZE",
        matcher=r"\boptimize\b",
        weight=28,
        rationale="'Optimize' is technical jargon when 'improve' is meant.",
        default_fix="improve",
        alternatives=_alts(
            formal=[("improve", 92), ("refine", 87)],
            casual=[("improve", 90), ("make better", 88)],
        ),
        tier="high",
    ),
    PatternRule(
        id="IMPLEMENT",
        matcher=r"\bimplement\b",
        weight=28,
        rationale="'Implement' is bureaucratic; plainer verbs read as human.",
        default_fix="carry out",
        alternatives=_alts(
            formal=[("put in place", 91), ("set up", 89), ("establish", 86)],
            casual=[("put in place", 88), ("start using", 85)],
        ),
        tier="high",
    ),
    PatternRule(
        id="SEAMLESS",
        matcher=r"\bseamless\b",
        weight=28,
        rationale="'Seamless' is marketing language typical of generated text.",
        default_fix="smooth",
        alternatives=_alts(
            general=[("smooth", 88), ("easy", 82)],
        ),
        tier="high",
    ),
    PatternRule(
        id="ROBUST",
        matcher=r"\brobust\b",
        weight=26,
        rationale="'Robust' is overused by models to mean 'good'.",
        default_fix="strong",
        alternatives=_alts(
            formal=[("strong", 88), ("reliable", 86)],
            casual=[("strong", 86), ("solid", 84)],
        ),
        tier="high",
    ),
    PatternRule(
        id="HOLISTIC",
        matcher=r"\bholistic\b",
        weight=26,
        rationale="'Holistic' is abstract filler.",
        default_fix="complete",
        alternatives=_alts(
            formal=[("complete", 86), ("whole", 82)],
            casual=[("whole", 84), ("all-around", 78)],
        ),
        tier="high",
    ),
    PatternRule(
        id="PIVOTAL",
        matcher=r"\bpivotal\b",
        weight=26,
        rationale="'Pivotal' is a favorite model intensifier.",
        default_fix="key",
        alternatives=_alts(
            formal=[("key", 90), ("central", 86)],
            casual=[("big", 80), ("key", 84)],
        ),
        tier="high",
    ),
    PatternRule(
        id="IMPORTANT_TO_NOTE",
        matcher=r"\bit\s+is\s+(?:important|worth)\s+(?:to\s+note|noting)\s+that\b",
        weight=30,
        rationale="Announcing that something is worth noting is a generated-text tic.",
        default_fix="notably,",
        tier="high",
    ),
    PatternRule(
        id="FAST_PACED_WORLD",
        matcher=r"\bin\s+today'?s\s+(?:fast-paced|modern|digital|ever-changing)\s+world\b",
        weight=32,
        rationale="'In today's fast-paced world' is a stock opener models reach for.",
        default_fix="today",
        tier="high",
    ),
    PatternRule(
        id="CRUCIAL_ROLE",
        matcher=r"\bplays\s+a\s+(?:crucial|vital|key)\s+role\s+in\b",
        weight=28,
        rationale="'Plays a crucial role in' is a formula that hides the actual claim.",
        default_fix="shapes",
        tier="high",
    ),
]


# ============================================================
# MEDIUM: formal connectives and inflated vocabulary
# ============================================================

_MEDIUM: list[PatternRule] = [
    PatternRule(
        id="SUBSTANTIAL",
        matcher=r"\bsubstantial\b",
        weight=16,
        rationale="'Substantial' is a formal intensifier models overuse.",
        default_fix="large",
        alternatives=_alts(
            formal=[("considerable", 89), ("large", 84)],
            casual=[("big", 85), ("large", 83)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="NAVIGATE",
        matcher=r"\bnavigate\b",
        weight=16,
        rationale="Figurative 'navigate' (challenges, complexities) is a model cliché.",
        default_fix="handle",
        alternatives=_alts(
            formal=[("handle", 88), ("manage", 86)],
            casual=[("deal with", 86), ("get through", 82)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="FOSTER",
        matcher=r"\bfoster\b",
        weight=16,
        rationale="'Foster' appears far more often in generated text than in student prose.",
        default_fix="encourage",
        alternatives=_alts(
            formal=[("encourage", 88), ("support", 86)],
            casual=[("build", 84), ("grow", 80)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="REALM",
        matcher=r"\brealm\b",
        weight=16,
        rationale="'Realm' used for a field or topic is a model mannerism.",
        default_fix="area",
        alternatives=_alts(
            formal=[("field", 88), ("area", 86)],
            casual=[("area", 86), ("world", 80)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="ENHANCE",
        matcher=r"\benhance\b",
        weight=14,
        rationale="'Enhance' is a formal stand-in for 'improve'.",
        default_fix="improve",
        alternatives=_alts(
            general=[("improve", 90), ("boost", 82)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="MULTIFACETED",
        matcher=r"\bmultifaceted\b",
        weight=18,
        rationale="'Multifaceted' is inflated vocabulary for 'complex'.",
        default_fix="complex",
        alternatives=_alts(
            formal=[("complex", 88), ("varied", 84)],
            casual=[("complicated", 82)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="CRUCIAL",
        matcher=r"\bcrucial\b",
        weight=14,
        rationale="'Crucial' is a default intensifier in generated text.",
        default_fix="important",
        alternatives=_alts(
            formal=[("important", 88), ("essential", 84)],
            casual=[("important", 86), ("big", 78)],
        ),
        tier="medium",
    ),
    PatternRule(
        id="IN_CONCLUSION",
        matcher=r"\bin\s+conclusion\b",
        weight=14,
        rationale="'In conclusion' is the textbook closer models use by default.",
        default_fix="overall",
        alternatives=_alts(
            general=[("overall", 84), ("in the end", 80)],
        ),
        tier="medium",
    ),
]


# ============================================================
# LOW: transition words that become suspicious in bulk
# ============================================================

_LOW: list[PatternRule] = [
    PatternRule(
        id="FURTHERMORE",
        matcher=r"\bfurthermore\b",
        weight=8,
        rationale="'Furthermore' is a stiff transition typical of generated essays.",
        default_fix="also",
        alternatives=_alts(
            formal=[("also", 89), ("in addition", 87)],
            casual=[("also", 90), ("plus", 86)],
        ),
        tier="low",
    ),
    PatternRule(
        id="MOREOVER",
        matcher=r"\bmoreover\b",
        weight=8,
        rationale="'Moreover' is a stiff transition typical of generated essays.",
        default_fix="also",
        alternatives=_alts(
            formal=[("also", 88), ("in addition", 86)],
            casual=[("plus", 86), ("also", 84)],
        ),
        tier="low",
    ),
    PatternRule(
        id="ADDITIONALLY",
        matcher=r"\badditionally\b",
        weight=8,
        rationale="'Additionally' at sentence starts is a common model pattern.",
        default_fix="also",
        alternatives=_alts(
            general=[("also", 88), ("on top of that", 80)],
        ),
        tier="low",
    ),
    PatternRule(
        id="ENSURE",
        matcher=r"\bensure\b",
        weight=8,
        rationale="'Ensure' is formal where 'make sure' sounds natural.",
        default_fix="make sure",
        alternatives=_alts(
            general=[("make sure", 86), ("see to it", 78)],
        ),
        tier="low",
    ),
    PatternRule(
        id="VARIOUS",
        matcher=r"\bvarious\b",
        weight=8,
        rationale="'Various' is vague; naming the things reads as more human.",
        default_fix="different",
        alternatives=_alts(
            general=[("different", 86), ("several", 84)],
        ),
        tier="low",
    ),
]


PATTERN_RULES: list[PatternRule] = _CRITICAL + _HIGH + _MEDIUM + _LOW


# ============================================================
# THE CATALOG
# ============================================================

_SYNTAX_RE = re.compile(r"\\[A-Za-z]|[^\w\s'-]")


def _empty_match_samples(rule: PatternRule) -> tuple[str, ...]:
    """
    Texts a matcher is tried against when the rule is loaded.

    A zero-width matcher such as \\b or a bare lookahead only shows up
    against real text, so besides the empty string this covers a few
    short words, the rule's own fix, and the literal words left in the
    matcher once regex syntax is stripped out.
    """
    skeleton = _SYNTAX_RE.sub(" ", rule.matcher)
    return ("", "a", " a ", "a b.", rule.default_fix, skeleton)


class PatternCatalog:
    """
    Compiled, validated, read-only view over a list of PatternRules.

    Construction is the only point where rules are checked. After that
    the catalog hands out the same tuples and compiled patterns for the
    life of the process.
    """

    def __init__(self, rules: list[PatternRule], version: str = CATALOG_VERSION):
        self.version = version
        self._rules: tuple[PatternRule, ...] = tuple(rules)
        self._compiled: dict[str, re.Pattern] = {}
        self._by_id: dict[str, PatternRule] = {}
        self._order: dict[str, int] = {}

        for index, rule in enumerate(self._rules):
            self._validate(rule)
            self._compiled[rule.id] = re.compile(rule.matcher, re.IGNORECASE)
            self._by_id[rule.id] = rule
            self._order[rule.id] = index

        # Two catalogs may share a version string; the cache keys on this
        digest = hashlib.sha256(version.encode())
        for rule in self._rules:
            digest.update(repr(rule).encode())
        self.fingerprint = f"{version}:{digest.hexdigest()[:16]}"

    def _validate(self, rule: PatternRule) -> None:
        if not rule.id:
            raise PatternCatalogError("Rule with empty id")
        if rule.id in self._by_id:
            raise PatternCatalogError(f"Duplicate rule id: {rule.id}")
        if rule.weight <= 0:
            raise PatternCatalogError(
                f"Rule {rule.id}: weight must be positive, got {rule.weight}"
            )
        if rule.severity and rule.severity not in SEVERITIES:
            raise PatternCatalogError(
                f"Rule {rule.id}: unknown severity {rule.severity!r}"
            )
        if not rule.default_fix:
            raise PatternCatalogError(f"Rule {rule.id}: default_fix is empty")
        try:
            compiled = re.compile(rule.matcher, re.IGNORECASE)
        except re.error as e:
            raise PatternCatalogError(
                f"Rule {rule.id}: invalid matcher {rule.matcher!r}: {e}"
            ) from e
        for sample in _empty_match_samples(rule):
            for match in compiled.finditer(sample):
                if match.start() == match.end():
                    raise PatternCatalogError(
                        f"Rule {rule.id}: matcher can match the empty string"
                    )

    def all_rules(self) -> tuple[PatternRule, ...]:
        """Every rule, in catalog order."""
        return self._rules

    def get(self, rule_id: str) -> Optional[PatternRule]:
        return self._by_id.get(rule_id)

    def compiled(self, rule_id: str) -> re.Pattern:
        return self._compiled[rule_id]

    def order_of(self, rule_id: str) -> int:
        return self._order.get(rule_id, len(self._rules))

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def describe(self) -> list[dict]:
        """
        Return every rule as a plain dict.

        Used by the GET /patterns endpoint to expose the detection surface.
        """
        return [
            {
                "id": r.id,
                "pattern": r.matcher,
                "weight": r.weight,
                "severity": r.resolved_severity,
                "tier": r.tier or r.resolved_severity,
                "rationale": r.rationale,
                "default_fix": r.default_fix,
                "contexts": sorted(r.alternatives),
            }
            for r in self._rules
        ]


# ============================================================
# SINGLETON: built once at import, never mutated
# ============================================================

catalog = PatternCatalog(PATTERN_RULES)
