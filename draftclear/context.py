"""
Context Classifier

Picks a tone/register bucket for a flagged phrase by looking at the
words around it, then uses that bucket to choose the most fitting
replacement from the rule's alternatives.

Buckets:
  formal_negative, formal_positive, business_formal, formal,
  casual_negative, casual_positive, casual, general

Classification is a pure function of (phrase, surrounding text). The
Result Cache depends on that: the same text must always produce the
same suggested fixes.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Optional

from draftclear.catalog import PatternCatalog, PatternRule, Replacement, catalog as default_catalog
from draftclear.detector import Flag

WINDOW_CHARS = 30

NEGATIVE_WORDS = frozenset({
    "bad", "problem", "problems", "challenge", "challenges", "issue", "issues",
    "difficult", "struggle", "fail", "failed", "failure", "decline", "harm",
    "crisis", "loss", "risk", "damage", "worse",
})
POSITIVE_WORDS = frozenset({
    "good", "success", "successful", "achieve", "gain", "improve", "growth",
    "benefit", "benefits", "great", "progress", "win", "better", "strong",
})
FORMAL_WORDS = frozenset({
    "demonstrate", "methodology", "framework", "analysis", "implement",
    "comprehensive", "research", "study", "significant", "therefore",
    "thus", "hypothesis", "furthermore", "moreover",
})
BUSINESS_WORDS = frozenset({
    "market", "markets", "business", "company", "companies", "revenue",
    "customer", "customers", "profit", "stakeholders", "investment",
    "brand", "sales", "firm", "industry",
})
CASUAL_PRONOUNS = frozenset({"i", "we", "you", "me", "my", "our", "your", "us"})

_WORD_RE = re.compile(r"[a-z]+(?:['’][a-z]+)?")
_CONTRACTION_RE = re.compile(r"[a-z]+['’](?:t|re|ve|ll|d|m)\b")
_SENTENCE_END_RE = re.compile(r"[.!?]")

# Where a refined bucket falls back to when a rule has no list for it
_PARENT_BUCKET = {
    "formal_negative": "formal",
    "formal_positive": "formal",
    "business_formal": "formal",
    "casual_negative": "casual",
    "casual_positive": "casual",
}


def _window(phrase: str, surrounding_text: str) -> str:
    lowered = surrounding_text.lower()
    idx = lowered.find(phrase.lower()) if phrase else -1
    if idx == -1:
        return lowered
    start = max(0, idx - WINDOW_CHARS)
    end = min(len(lowered), idx + len(phrase) + WINDOW_CHARS)
    return lowered[start:end]


def classify(phrase: str, surrounding_text: str) -> str:
    """
    Return the context bucket for `phrase` as it appears in `surrounding_text`.

    Register (formal/business vs casual) takes priority; sentiment refines
    within the register. No markers at all means "general".
    """
    window = _window(phrase, surrounding_text)
    # The flagged phrase itself is not evidence about its own context
    phrase_words = set(_WORD_RE.findall(phrase.lower()))
    words = [w for w in _WORD_RE.findall(window) if w not in phrase_words]
    word_set = set(words)

    negative = bool(word_set & NEGATIVE_WORDS)
    positive = bool(word_set & POSITIVE_WORDS)
    formal = bool(word_set & FORMAL_WORDS)
    business = bool(word_set & BUSINESS_WORDS)
    casual = bool(word_set & CASUAL_PRONOUNS) or bool(_CONTRACTION_RE.search(window))

    if formal or business:
        if negative:
            return "formal_negative"
        if positive:
            return "formal_positive"
        if business:
            return "business_formal"
        return "formal"
    if casual:
        if negative:
            return "casual_negative"
        if positive:
            return "casual_positive"
        return "casual"
    return "general"


def enclosing_sentence(text: str, phrase: str) -> str:
    """The sentence holding the first occurrence of `phrase`, or the whole text."""
    idx = text.lower().find(phrase.lower()) if phrase else -1
    if idx == -1:
        return text

    start = 0
    for m in _SENTENCE_END_RE.finditer(text, 0, idx):
        start = m.end()
    end_match = _SENTENCE_END_RE.search(text, idx + len(phrase))
    end = end_match.end() if end_match else len(text)
    return text[start:end].strip()


def select_replacements(rule: PatternRule, bucket: str) -> tuple[Replacement, ...]:
    """
    Ranked replacements for `bucket`.

    Falls back bucket → parent register → "general" → the rule's first
    list. Empty only when the rule has no alternatives at all; callers
    then use default_fix.
    """
    for key in (bucket, _PARENT_BUCKET.get(bucket), "general"):
        if key and key in rule.alternatives:
            return rule.alternatives[key]
    return next(iter(rule.alternatives.values()), ())


def refine_flags(
    flags: list[Flag],
    text: str,
    catalog: Optional[PatternCatalog] = None,
) -> list[Flag]:
    """Attach context-aware suggested fixes and alternatives to each flag."""
    cat = catalog if catalog is not None else default_catalog
    refined: list[Flag] = []

    for flag in flags:
        rule = cat.get(flag.rule_id)
        if rule is None:
            refined.append(flag)
            continue

        sentence = enclosing_sentence(text, flag.phrase)
        bucket = classify(flag.phrase, sentence)
        options = select_replacements(rule, bucket)
        ranked = sorted(options, key=lambda r: -r.confidence)

        refined.append(replace(
            flag,
            suggested_fix=ranked[0].word if ranked else rule.default_fix,
            alternatives=tuple(r.word for r in ranked),
            context=bucket,
        ))

    return refined
