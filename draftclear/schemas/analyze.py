"""
API Schemas — Request and Response Models

Pydantic models for the DraftClear API. Length limits on `text` are a
coarse transport guard; the configurable length policy is enforced by
the analyzer so it can answer with a proper input error.
"""

from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field


# ============================================================
# ANALYZE
# ============================================================

class AnalyzeRequest(BaseModel):
    """POST /analyze request body."""
    text: str = Field("", max_length=100_000,
                      description="The text to analyze.")
    mode: str = Field("local", pattern="^(local|full)$",
                      description="local (patterns only) or full (patterns + language model).")
    excluded_phrases: list[str] = Field(
        default_factory=list, max_length=500,
        description="Phrases already fixed in this editing session; not re-flagged.",
    )

    model_config = {"json_schema_extra": {"examples": [
        {
            "text": "In today's fast-paced world, we utilize cutting-edge tools to facilitate learning.",
            "mode": "local",
            "excluded_phrases": [],
        },
    ]}}


class FlagResponse(BaseModel):
    rule_id: str
    phrase: str
    occurrences: int
    weight: int
    severity: str
    rationale: str
    suggested_fix: str
    alternatives: list[str] = []
    context: str = "general"
    impact: int


class TextStatsResponse(BaseModel):
    word_count: int
    sentence_count: int
    mean_sentence_length: float
    sentence_length_variance: float
    contraction_rate: float
    passive_rate: float


class FlowIssueResponse(BaseModel):
    sentence_index: int
    sentence: str
    issue: str
    severity: str
    detail: str


class AnalyzeResponse(BaseModel):
    """POST /analyze response body."""
    score: int
    band: str
    reasoning: str
    flags: list[FlagResponse]
    stats: TextStatsResponse
    flow_issues: list[FlowIssueResponse]
    breakdown: dict
    source: str
    model_score: Optional[int] = None
    model_explanation: Optional[str] = None
    catalog_version: str
    tier: str = "free"
    total_flags: int = 0
    visible_flags: int = 0
    hidden_flags: int = 0
    usage: Optional[dict] = None


# ============================================================
# FIX
# ============================================================

class FixInstructionModel(BaseModel):
    phrase: str = ""
    suggested_fix: str = ""


class FixRequest(BaseModel):
    """POST /fix request body."""
    text: str = Field("", max_length=100_000)
    flags: Optional[list[FixInstructionModel]] = Field(
        None, description="Phrases to replace. Omit to fix every detected flag.",
    )
    excluded_phrases: list[str] = Field(default_factory=list, max_length=500)


class FixResponse(BaseModel):
    """POST /fix response body."""
    original: str
    fixed: str
    applied: list[str]
    skipped: list[str]
    score_before: int
    score_after: int
    diff_spans: list[dict]


# ============================================================
# REWRITE
# ============================================================

class RewriteRequest(BaseModel):
    """POST /rewrite request body."""
    text: str = Field("", max_length=100_000)
    excluded_phrases: list[str] = Field(default_factory=list, max_length=500)


class RewriteResponse(BaseModel):
    """POST /rewrite response body."""
    original: str
    rewritten: str
    changes_made: list[str]
    score_before: int
    score_after: int
    source: str
    iterations: list[dict] = []
    diff_spans: list[dict] = []
    error: Optional[str] = None


# ============================================================
# HEALTH
# ============================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    catalog_version: str
    patterns: int
    llm_provider: str
    cache_entries: int
