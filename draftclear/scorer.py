"""
AI Risk Score Calculator

Computes a 0-100 AI-likelihood score from detected flags plus the
shape of the text. Separated from the detector for single-responsibility.

Score = baseline
      + impact × flag_factor for every flag
      + text-shape penalties (short, uniform, long-winded, no contractions, passive)
      - text-shape credits (bursty sentence lengths, conversational contractions)
then floored by the number of critical flags and clamped to [5, 95].

Lexical flags alone miss generated text that avoids buzzwords but keeps a
uniform rhythm; shape signals alone over-flag terse human writing. The
critical-flag floor keeps a cluster of strong indicators from being
washed out by a favorable shape profile.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from draftclear.detector import Flag
from draftclear.flow import TextStats, text_stats


@dataclass(frozen=True)
class ScoringParams:
    """Tunable thresholds and penalties used by the aggregator."""

    baseline: float = 30.0
    flag_factor: float = 0.8

    short_text_words: int = 100
    short_text_penalty: float = 6.0

    variance_min_sentences: int = 3
    low_variance_threshold: float = 8.0
    low_variance_penalty: float = 15.0
    high_variance_threshold: float = 40.0
    high_variance_credit: float = 10.0

    long_sentence_mean: float = 25.0
    long_sentence_penalty: float = 8.0

    contraction_min_words: int = 20
    low_contraction_rate: float = 0.005
    low_contraction_penalty: float = 10.0
    high_contraction_rate: float = 0.03
    high_contraction_credit: float = 10.0

    passive_rate_threshold: float = 0.5
    passive_penalty: float = 8.0

    floor_base: float = 45.0
    floor_per_critical: float = 15.0
    floor_cap: float = 85.0

    min_score: int = 5
    max_score: int = 95


DEFAULT_PARAMS = ScoringParams()

# (upper bound exclusive, band)
SCORE_BANDS = (
    (20, "minimal"),
    (40, "low"),
    (60, "moderate"),
    (80, "high"),
)


def severity_floor(flags: list[Flag], params: ScoringParams = DEFAULT_PARAMS) -> float:
    """Minimum score implied by the number of critical flags (0 when none)."""
    critical = sum(1 for f in flags if f.severity == "critical")
    if critical == 0:
        return 0.0
    return min(params.floor_cap, params.floor_base + params.floor_per_critical * critical)


def apply_bounds(
    raw: float,
    flags: list[Flag],
    params: ScoringParams = DEFAULT_PARAMS,
) -> int:
    """Apply the critical-flag floor, clamp, and round."""
    floored = max(raw, severity_floor(flags, params))
    return int(round(max(params.min_score, min(params.max_score, floored))))


def _shape_terms(stats: TextStats, params: ScoringParams) -> dict[str, float]:
    terms = {
        "short_text_penalty": 0.0,
        "sentence_variance_adjustment": 0.0,
        "long_sentence_penalty": 0.0,
        "contraction_adjustment": 0.0,
        "passive_voice_penalty": 0.0,
    }

    if 0 < stats.word_count < params.short_text_words:
        terms["short_text_penalty"] = params.short_text_penalty

    if stats.sentence_count >= params.variance_min_sentences:
        if stats.sentence_length_variance < params.low_variance_threshold:
            terms["sentence_variance_adjustment"] = params.low_variance_penalty
        elif stats.sentence_length_variance > params.high_variance_threshold:
            terms["sentence_variance_adjustment"] = -params.high_variance_credit

    if stats.sentence_count and stats.mean_sentence_length > params.long_sentence_mean:
        terms["long_sentence_penalty"] = params.long_sentence_penalty

    if stats.word_count >= params.contraction_min_words:
        if stats.contraction_rate < params.low_contraction_rate:
            terms["contraction_adjustment"] = params.low_contraction_penalty
        elif stats.contraction_rate >= params.high_contraction_rate:
            terms["contraction_adjustment"] = -params.high_contraction_credit

    if stats.sentence_count and stats.passive_rate > params.passive_rate_threshold:
        terms["passive_voice_penalty"] = params.passive_penalty

    return terms


def calculate_ai_score(
    text: str,
    flags: list[Flag],
    params: ScoringParams = DEFAULT_PARAMS,
    stats: Optional[TextStats] = None,
) -> tuple[int, dict]:
    """
    Calculate the AI risk score for `text` given its detected flags.

    Returns:
        (score, breakdown) where breakdown lists every term applied.
    """
    stats = stats or text_stats(text)

    flag_terms = [
        {
            "rule_id": f.rule_id,
            "impact": f.impact,
            "contribution": round(f.impact * params.flag_factor, 2),
        }
        for f in flags
    ]
    flag_total = sum(t["contribution"] for t in flag_terms)
    shape = _shape_terms(stats, params)

    raw = params.baseline + flag_total + sum(shape.values())
    floor = severity_floor(flags, params)
    final = apply_bounds(raw, flags, params)

    breakdown: dict = {
        "baseline": params.baseline,
        "flag_contributions": flag_terms,
        "flag_total": round(flag_total, 2),
        **shape,
        "raw_score": round(raw, 2),
        "severity_floor": floor,
        "final_score": final,
    }
    return final, breakdown


def score_band(score: int) -> str:
    for upper, band in SCORE_BANDS:
        if score < upper:
            return band
    return "critical"


def build_reasoning(score: int, flags: list[Flag], breakdown: dict) -> str:
    """Short natural-language summary banding the score."""
    band = score_band(score)
    parts = [f"{band.capitalize()} AI risk (score {score})."]

    if flags:
        top = ", ".join(
            f"'{f.phrase}'" + (f" x{f.occurrences}" if f.occurrences > 1 else "")
            for f in flags[:3]
        )
        parts.append(f"{len(flags)} flagged pattern(s); strongest: {top}.")
    else:
        parts.append("No flagged vocabulary.")

    shape_notes = []
    if breakdown.get("sentence_variance_adjustment", 0) > 0:
        shape_notes.append("sentence lengths are very uniform")
    if breakdown.get("long_sentence_penalty", 0) > 0:
        shape_notes.append("sentences run long")
    if breakdown.get("contraction_adjustment", 0) > 0:
        shape_notes.append("no contractions")
    if breakdown.get("passive_voice_penalty", 0) > 0:
        shape_notes.append("heavy passive voice")
    if breakdown.get("short_text_penalty", 0) > 0:
        shape_notes.append("sample is short")
    if shape_notes:
        parts.append("Structure: " + "; ".join(shape_notes) + ".")

    if breakdown.get("severity_floor", 0) > breakdown.get("raw_score", 0):
        parts.append("Score held at the floor for multiple critical flags.")

    return " ".join(parts)
