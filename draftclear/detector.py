"""
Flag Detector

Scans text against the Pattern Catalog and emits one Flag per rule
that matched, ranked by impact (weight × occurrences).

Rules are independent: "utilize" may be caught by a single-word rule
and a phrase rule at the same time. Both flags are kept; the Fix
Applier copes with overlapping targets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from draftclear.catalog import PatternCatalog, catalog as default_catalog


@dataclass(frozen=True)
class Flag:
    """One detected occurrence class within a text."""
    rule_id: str
    phrase: str             # First match, original casing
    occurrences: int
    weight: int
    severity: str           # "critical", "high", "medium", "low"
    rationale: str
    suggested_fix: str
    alternatives: tuple[str, ...] = field(default_factory=tuple)
    context: str = "general"

    @property
    def impact(self) -> int:
        return self.weight * self.occurrences

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "phrase": self.phrase,
            "occurrences": self.occurrences,
            "weight": self.weight,
            "severity": self.severity,
            "rationale": self.rationale,
            "suggested_fix": self.suggested_fix,
            "alternatives": list(self.alternatives),
            "context": self.context,
            "impact": self.impact,
        }


def normalize_phrases(phrases: Optional[Iterable[str]]) -> frozenset[str]:
    """Lower-cased, whitespace-collapsed set of phrases for exclusion checks."""
    if not phrases:
        return frozenset()
    return frozenset(
        " ".join(p.split()).lower() for p in phrases if p and p.strip()
    )


def detect(
    text: str,
    catalog: Optional[PatternCatalog] = None,
    excluded_phrases: Optional[Iterable[str]] = None,
) -> list[Flag]:
    """
    Detect every catalog rule that fires on `text`.

    Args:
        text: The text to scan.
        catalog: Rules to scan with. Defaults to the process-wide catalog.
        excluded_phrases: Phrases the caller already handled in this
            editing session. Flags whose phrase is in this set are dropped.

    Returns:
        Flags sorted by impact, highest first. Ties keep catalog order.
    """
    if not text or not text.strip():
        return []

    cat = catalog if catalog is not None else default_catalog
    excluded = normalize_phrases(excluded_phrases)
    flags: list[Flag] = []

    for rule in cat.all_rules():
        first = None
        count = 0
        for match in cat.compiled(rule.id).finditer(text):
            if not match.group(0):
                continue
            if first is None:
                first = match.group(0)
            count += 1
        if first is None:
            continue
        if " ".join(first.split()).lower() in excluded:
            continue

        flags.append(Flag(
            rule_id=rule.id,
            phrase=first,
            occurrences=count,
            weight=rule.weight,
            severity=rule.resolved_severity,
            rationale=rule.rationale,
            suggested_fix=rule.default_fix,
        ))

    # sorted() is stable, so equal impacts stay in catalog order
    return sorted(flags, key=lambda f: -f.impact)
