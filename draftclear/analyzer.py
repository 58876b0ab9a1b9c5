"""
Analyzer — Analysis Orchestrator

Coordinates the two analysis modes:
  - local: catalog detection + context refinement + score. Deterministic,
           zero API cost, cached by content hash.
  - full:  local analysis blended with a holistic score from the language
           model. The model call is bounded by a timeout; any failure
           falls back to the local result marked "pattern_only".

Input validation and the usage gate run before any pattern work.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Iterable, Optional

from draftclear.cache import ResultCache, result_cache
from draftclear.catalog import CATALOG_VERSION, PatternCatalog, catalog as default_catalog
from draftclear.config import settings
from draftclear.context import refine_flags
from draftclear.detector import Flag, detect, normalize_phrases
from draftclear.errors import AnalysisNotPermittedError, ExternalServiceError, InputError
from draftclear.flow import FlowIssue, TextStats, flow_issues, text_stats
from draftclear.llm import LLMProvider
from draftclear.scorer import (
    DEFAULT_PARAMS,
    ScoringParams,
    apply_bounds,
    build_reasoning,
    calculate_ai_score,
    score_band,
)

logger = logging.getLogger(__name__)


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class AnalysisOptions:
    """Per-request options. The length policy belongs to the caller."""
    excluded_phrases: frozenset[str] = field(default_factory=frozenset)
    min_chars: int = 1
    max_chars: Optional[int] = None

    @classmethod
    def build(
        cls,
        excluded_phrases: Optional[Iterable[str]] = None,
        min_chars: int = 1,
        max_chars: Optional[int] = None,
    ) -> "AnalysisOptions":
        return cls(
            excluded_phrases=normalize_phrases(excluded_phrases),
            min_chars=min_chars,
            max_chars=max_chars,
        )

    def cache_extra(
        self,
        mode: str,
        catalog: PatternCatalog = default_catalog,
        params: ScoringParams = DEFAULT_PARAMS,
    ) -> str:
        """Everything besides the text that changes the result."""
        excluded = "|".join(sorted(self.excluded_phrases))
        return f"{mode}||{catalog.fingerprint}||{params!r}||{excluded}"


@dataclass(frozen=True)
class AnalysisResult:
    """The complete, self-consistent output of analyzing one text."""
    score: int
    flags: tuple[Flag, ...]
    reasoning: str
    band: str
    stats: TextStats
    flow_issues: tuple[FlowIssue, ...]
    breakdown: dict
    source: str = "pattern"          # "pattern" | "model+pattern" | "pattern_only"
    model_score: Optional[int] = None
    model_explanation: Optional[str] = None
    catalog_version: str = CATALOG_VERSION

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "band": self.band,
            "reasoning": self.reasoning,
            "flags": [f.to_dict() for f in self.flags],
            "stats": self.stats.to_dict(),
            "flow_issues": [asdict(i) for i in self.flow_issues],
            "breakdown": self.breakdown,
            "source": self.source,
            "model_score": self.model_score,
            "model_explanation": self.model_explanation,
            "catalog_version": self.catalog_version,
        }


# ============================================================
# LLM PROMPT
# ============================================================

MODEL_SCORE_PROMPT = """You are an assessor estimating whether a short piece of student writing was produced by an AI model.

## Signals already found by the deterministic pattern engine
{local_flags}

## Text statistics
- Words: {word_count}
- Sentences: {sentence_count}
- Sentence length variance: {variance}
- Contractions per word: {contraction_rate}

## Text
{text}

Return ONLY a JSON object with:
- "ai_likelihood": integer 0-100, your estimate that the text is AI-generated
- "explanation": one or two sentences explaining the estimate"""


# ============================================================
# VALIDATION
# ============================================================

def validate_text(text: Optional[str], options: Optional[AnalysisOptions] = None) -> str:
    """Reject missing, blank, or out-of-policy text before doing pattern work."""
    options = options or AnalysisOptions()
    if text is None:
        raise InputError("Text is required.")
    if not isinstance(text, str):
        raise InputError("Text must be a string.")
    if not text.strip():
        raise InputError("Text is empty.")

    length = len(text.strip())
    if length < options.min_chars:
        raise InputError(
            f"Text is too short: {length} characters (minimum {options.min_chars})."
        )
    if options.max_chars is not None and length > options.max_chars:
        raise InputError(
            f"Text is too long: {length} characters (maximum {options.max_chars})."
        )
    return text


# ============================================================
# LOCAL ANALYSIS
# ============================================================

def _compute_local(
    text: str,
    options: AnalysisOptions,
    catalog: PatternCatalog,
    params: ScoringParams,
) -> AnalysisResult:
    flags = detect(text, catalog=catalog, excluded_phrases=options.excluded_phrases)
    flags = refine_flags(flags, text, catalog=catalog)
    stats = text_stats(text)
    score, breakdown = calculate_ai_score(text, flags, params=params, stats=stats)

    return AnalysisResult(
        score=score,
        flags=tuple(flags),
        reasoning=build_reasoning(score, flags, breakdown),
        band=score_band(score),
        stats=stats,
        flow_issues=tuple(flow_issues(text)),
        breakdown=breakdown,
        catalog_version=catalog.version,
    )


def analyze_local(
    text: str,
    options: Optional[AnalysisOptions] = None,
    permitted: bool = True,
    cache: Optional[ResultCache] = None,
    catalog: Optional[PatternCatalog] = None,
    params: ScoringParams = DEFAULT_PARAMS,
) -> AnalysisResult:
    """
    Local-only analysis. Deterministic; repeated calls on the same text
    return the same cached result.

    Raises:
        AnalysisNotPermittedError: the usage gate said no.
        InputError: text is missing, blank, or outside the length policy.
    """
    if not permitted:
        raise AnalysisNotPermittedError("Daily analysis limit reached.")
    options = options or AnalysisOptions()
    validate_text(text, options)

    cat = catalog if catalog is not None else default_catalog
    store = cache if cache is not None else result_cache
    return store.get_or_compute(
        text,
        lambda: _compute_local(text, options, cat, params),
        extra=options.cache_extra("local", cat, params),
    )


# ============================================================
# FULL ANALYSIS (local + model)
# ============================================================

def _parse_model_score(payload: dict) -> tuple[int, str]:
    raw = payload.get("ai_likelihood")
    if isinstance(raw, bool):
        raise ExternalServiceError(f"Malformed ai_likelihood: {raw!r}")
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ExternalServiceError(f"Malformed ai_likelihood: {raw!r}") from e
    # Accept 0-1 probabilities as well as 0-100 percentages
    if 0.0 <= value <= 1.0 and isinstance(raw, float):
        value *= 100
    if not 0.0 <= value <= 100.0:
        raise ExternalServiceError(f"ai_likelihood out of range: {value}")
    explanation = str(payload.get("explanation", "")).strip()
    return int(round(value)), explanation


async def request_model_score(
    text: str,
    llm: LLMProvider,
    local: AnalysisResult,
    timeout: float,
) -> tuple[int, str]:
    """Ask the model for a holistic score. Raises ExternalServiceError on any failure."""
    local_flags = ", ".join(f.phrase for f in local.flags) or "(none)"
    prompt = MODEL_SCORE_PROMPT.format(
        local_flags=local_flags,
        word_count=local.stats.word_count,
        sentence_count=local.stats.sentence_count,
        variance=local.stats.sentence_length_variance,
        contraction_rate=local.stats.contraction_rate,
        text=text,
    )
    try:
        payload = await asyncio.wait_for(
            llm.generate_json(prompt, temperature=0.0), timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise ExternalServiceError(f"Model scoring timed out after {timeout}s") from e
    return _parse_model_score(payload)


def blend_scores(
    local: AnalysisResult,
    model_score: int,
    weight: float,
    params: ScoringParams = DEFAULT_PARAMS,
) -> int:
    """Weighted blend of local and model scores, re-floored and clamped."""
    weight = max(0.0, min(1.0, weight))
    raw = (1 - weight) * local.score + weight * model_score
    return apply_bounds(raw, list(local.flags), params)


async def analyze_full(
    text: str,
    llm: Optional[LLMProvider],
    options: Optional[AnalysisOptions] = None,
    permitted: bool = True,
    timeout: Optional[float] = None,
    cache: Optional[ResultCache] = None,
    catalog: Optional[PatternCatalog] = None,
    params: ScoringParams = DEFAULT_PARAMS,
) -> AnalysisResult:
    """
    Local analysis blended with a model score.

    The model is optional: no provider, a timeout, or a malformed reply all
    produce the local result with source="pattern_only". Only successful
    blends are cached, so a later call can retry the model.
    """
    options = options or AnalysisOptions()
    store = cache if cache is not None else result_cache
    local = analyze_local(
        text, options=options, permitted=permitted, cache=store,
        catalog=catalog, params=params,
    )

    cat = catalog if catalog is not None else default_catalog
    full_key = options.cache_extra("full", cat, params)
    cached = store.get(text, extra=full_key)
    if cached is not None:
        return cached

    if llm is None:
        return replace(local, source="pattern_only")

    timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
    try:
        model_score, explanation = await request_model_score(text, llm, local, timeout)
    except Exception as e:
        logger.warning(
            "Model scoring failed, using pattern score: %s", e,
            extra={"error": str(e), "error_type": type(e).__name__, "scan_mode": "full"},
        )
        return replace(local, source="pattern_only")

    blended = blend_scores(local, model_score, settings.MODEL_SCORE_WEIGHT, params)
    breakdown = {
        **local.breakdown,
        "pattern_score": local.score,
        "model_score": model_score,
        "model_weight": settings.MODEL_SCORE_WEIGHT,
        "final_score": blended,
    }
    result = replace(
        local,
        score=blended,
        band=score_band(blended),
        reasoning=build_reasoning(blended, list(local.flags), breakdown),
        breakdown=breakdown,
        source="model+pattern",
        model_score=model_score,
        model_explanation=explanation or None,
    )
    store.put(text, result, extra=full_key)
    return result
