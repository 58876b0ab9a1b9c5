"""
DraftClear — AI-Style Writing Detector and Fixer

Flags the vocabulary and sentence shapes that make student writing read as
machine-generated, scores the text 5-95, and offers context-aware fixes.

Public API:
  - catalog:         Immutable detection catalog (data-driven rules)
  - detect:          Run the catalog over a text, one Flag per matching rule
  - refine_flags:    Context-aware suggested fixes and alternatives
  - calculate_ai_score: Composite AI-likelihood score from flags + text shape
  - analyze_local:   Deterministic, cached analysis (zero API cost)
  - analyze_full:    Local analysis blended with a model score
  - apply_fixes:     Case-preserving, position-safe phrase substitution
  - fix_text:        Apply fixes and re-score
  - rewrite_text:    Model rewrite verified by re-scoring
  - ResultCache:     LRU + TTL cache keyed by content hash
  - LLMProvider:     Abstract LLM interface for provider swapping

Usage:
    from draftclear import analyze_local, fix_text
    result = analyze_local(text)
    fixed = fix_text(text, list(result.flags))
"""

__version__ = "0.4.0"

from draftclear.catalog import (
    catalog,
    PatternCatalog,
    PatternRule,
    Replacement,
    CATALOG_VERSION,
)
from draftclear.detector import Flag, detect
from draftclear.context import classify, refine_flags
from draftclear.scorer import ScoringParams, calculate_ai_score
from draftclear.analyzer import AnalysisOptions, AnalysisResult, analyze_local, analyze_full
from draftclear.fixer import FixInstruction, FixResult, apply_fixes, fix_text, rewrite_text
from draftclear.cache import ResultCache, result_cache
from draftclear.errors import (
    DraftClearError,
    InputError,
    PatternCatalogError,
    ExternalServiceError,
    AnalysisNotPermittedError,
)
from draftclear.llm import LLMProvider
from draftclear.llm.factory import get_provider

__all__ = [
    "catalog",
    "PatternCatalog",
    "PatternRule",
    "Replacement",
    "CATALOG_VERSION",
    "Flag",
    "detect",
    "classify",
    "refine_flags",
    "ScoringParams",
    "calculate_ai_score",
    "AnalysisOptions",
    "AnalysisResult",
    "analyze_local",
    "analyze_full",
    "FixInstruction",
    "FixResult",
    "apply_fixes",
    "fix_text",
    "rewrite_text",
    "ResultCache",
    "result_cache",
    "DraftClearError",
    "InputError",
    "PatternCatalogError",
    "ExternalServiceError",
    "AnalysisNotPermittedError",
    "LLMProvider",
    "get_provider",
]
