"""
Fixer — Pattern Fixes and Model Rewrites

Two ways to lower a text's AI score:

  1. apply_fixes / fix_text: deterministic substitution of each flagged
     phrase with its suggested fix, case-preserving, rightmost-first so a
     replacement never shifts a match that has not been processed yet.
  2. rewrite_text: freeform rewrite by the language model, verified by
     re-scoring. Falls back to fix_text when the model is missing, slow,
     malformed, or fails to lower the score.

Score changes are never simulated: the "after" score is the same
aggregator run on the fixed text.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

import diff_match_patch as dmp_module

from draftclear.config import settings
from draftclear.context import refine_flags
from draftclear.detector import detect, normalize_phrases
from draftclear.errors import ExternalServiceError
from draftclear.llm import LLMProvider
from draftclear.scorer import calculate_ai_score

logger = logging.getLogger(__name__)

# Singleton diff engine
_dmp = dmp_module.diff_match_patch()

_WORD_CHAR = re.compile(r"\w")

MAX_ITERATIONS = 2


class Fixable(Protocol):
    phrase: str
    suggested_fix: str


@dataclass(frozen=True)
class FixInstruction:
    """Replace `phrase` with `suggested_fix`. A Flag satisfies the same shape."""
    phrase: str
    suggested_fix: str


@dataclass
class FixResult:
    original: str
    fixed: str
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    score_before: int = 0
    score_after: int = 0
    diff_spans: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "original": self.original,
            "fixed": self.fixed,
            "applied": self.applied,
            "skipped": self.skipped,
            "score_before": self.score_before,
            "score_after": self.score_after,
            "diff_spans": self.diff_spans,
        }


# ============================================================
# DETERMINISTIC FIXES
# ============================================================

def _phrase_pattern(phrase: str) -> re.Pattern:
    """Literal phrase, word-bounded at whichever ends are word characters."""
    head = r"\b" if _WORD_CHAR.match(phrase[:1]) else ""
    tail = r"\b" if _WORD_CHAR.match(phrase[-1:]) else ""
    return re.compile(f"{head}{re.escape(phrase)}{tail}", re.IGNORECASE)


def match_case(matched: str, replacement: str) -> str:
    """Carry the casing style of `matched` over to `replacement`."""
    if not replacement:
        return replacement
    if matched.isupper():
        return replacement.upper()
    if matched[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def _last_position(pattern: re.Pattern, text: str) -> int:
    last = -1
    for m in pattern.finditer(text):
        last = m.start()
    return last


def _apply(text: str, flags: Iterable[Fixable]) -> tuple[str, list[str], list[str]]:
    pending = []
    skipped: list[str] = []
    for flag in flags:
        phrase = getattr(flag, "phrase", "") or ""
        fix = getattr(flag, "suggested_fix", None)
        if not phrase.strip() or fix is None:
            skipped.append(phrase)
            continue
        pending.append((phrase, fix, _phrase_pattern(phrase)))

    applied: list[str] = []
    while pending:
        # Re-derive positions from the live text after every replacement
        positioned = [(_last_position(p, text), i) for i, (_, _, p) in enumerate(pending)]
        for pos, i in positioned:
            if pos == -1:
                skipped.append(pending[i][0])
        positioned = [(pos, i) for pos, i in positioned if pos != -1]
        if not positioned:
            break

        # Rightmost last occurrence first; ties keep the caller's order
        _, chosen = max(positioned, key=lambda item: (item[0], -item[1]))
        phrase, fix, pattern = pending[chosen]
        text = pattern.sub(lambda m: match_case(m.group(0), fix), text)
        applied.append(phrase)

        present = {i for _, i in positioned}
        pending = [
            entry for idx, entry in enumerate(pending)
            if idx in present and idx != chosen
        ]

    return text, applied, skipped


def apply_fixes(text: str, flags: Iterable[Fixable]) -> str:
    """
    Replace every flagged phrase with its suggested fix.

    Flags are processed by the position of their phrase's last occurrence,
    rightmost first, re-read from the live text after each step. A flag whose
    phrase has already disappeared (consumed by an overlapping fix) or is
    empty is skipped silently.
    """
    if not text:
        return text
    fixed, _, _ = _apply(text, flags)
    return fixed


def compute_diff_spans(original: str, fixed: str) -> list[dict]:
    """
    Deterministic character diff between original and fixed text.

    Uses diff-match-patch; spans carry type (equal/delete/insert), text
    and offsets into the original and fixed strings.
    """
    diffs = _dmp.diff_main(original, fixed)
    _dmp.diff_cleanupSemantic(diffs)

    spans = []
    orig_pos = 0
    fixed_pos = 0
    for op, chunk in diffs:
        if op == 0:
            spans.append({
                "type": "equal", "text": chunk,
                "orig_start": orig_pos, "orig_end": orig_pos + len(chunk),
                "fixed_start": fixed_pos, "fixed_end": fixed_pos + len(chunk),
            })
            orig_pos += len(chunk)
            fixed_pos += len(chunk)
        elif op == -1:
            spans.append({
                "type": "delete", "text": chunk,
                "orig_start": orig_pos, "orig_end": orig_pos + len(chunk),
            })
            orig_pos += len(chunk)
        else:
            spans.append({
                "type": "insert", "text": chunk,
                "fixed_start": fixed_pos, "fixed_end": fixed_pos + len(chunk),
            })
            fixed_pos += len(chunk)
    return spans


def _score(text: str, excluded: frozenset[str]) -> int:
    flags = refine_flags(detect(text, excluded_phrases=excluded), text)
    score, _ = calculate_ai_score(text, flags)
    return score


def fix_text(
    text: str,
    instructions: Optional[list[Fixable]] = None,
    excluded_phrases: Optional[Iterable[str]] = None,
) -> FixResult:
    """
    Apply fixes and report the before/after score.

    With no instructions, the text is detected and refined first and every
    flag's suggested fix is applied.
    """
    excluded = normalize_phrases(excluded_phrases)
    if instructions is None:
        instructions = refine_flags(detect(text, excluded_phrases=excluded), text)

    fixed, applied, skipped = _apply(text, instructions)
    return FixResult(
        original=text,
        fixed=fixed,
        applied=applied,
        skipped=skipped,
        score_before=_score(text, excluded),
        score_after=_score(fixed, excluded),
        diff_spans=compute_diff_spans(text, fixed),
    )


# ============================================================
# MODEL REWRITE
# ============================================================

REWRITE_PROMPT = """You are helping a student revise their own writing so it reads as natural human prose.

## Rules
1. Keep every factual claim and the student's meaning.
2. Replace the flagged phrases below with plain everyday wording.
3. Vary sentence length. Mix short and long sentences.
4. Use contractions where a student naturally would.
5. Do not add new information, headings, or lists.

## Flagged phrases
{flag_instructions}

## Text
{text}

Return JSON with:
- "rewritten": the revised text
- "changes_made": array of short strings describing each change"""


def _build_flag_instructions(flags) -> str:
    if not flags:
        return "(none flagged; focus on rhythm and tone)"
    lines = []
    for idx, f in enumerate(flags, 1):
        lines.append(
            f'{idx}. "{f.phrase}" (x{f.occurrences}, {f.severity}): {f.rationale} '
            f'Suggested: "{f.suggested_fix}".'
        )
    return "\n".join(lines)


async def _request_rewrite(text: str, llm: LLMProvider, flags, timeout: float) -> dict:
    prompt = REWRITE_PROMPT.format(
        flag_instructions=_build_flag_instructions(flags), text=text,
    )
    try:
        payload = await asyncio.wait_for(
            llm.generate_json(prompt, temperature=0.4), timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        raise ExternalServiceError(f"Rewrite timed out after {timeout}s") from e

    rewritten = payload.get("rewritten")
    if not isinstance(rewritten, str) or not rewritten.strip():
        raise ExternalServiceError("Rewrite response missing 'rewritten' text")
    changes = payload.get("changes_made", [])
    if not isinstance(changes, list):
        changes = []
    return {"rewritten": rewritten.strip(), "changes_made": [str(c) for c in changes]}


def _fallback(text: str, excluded: frozenset[str], error: Optional[str]) -> dict:
    fix = fix_text(text, excluded_phrases=excluded)
    return {
        "original": text,
        "rewritten": fix.fixed,
        "changes_made": [f"Replaced '{p}'" for p in fix.applied],
        "score_before": fix.score_before,
        "score_after": fix.score_after,
        "source": "pattern_fallback",
        "iterations": [],
        "diff_spans": fix.diff_spans,
        "error": error,
    }


async def rewrite_text(
    text: str,
    llm: Optional[LLMProvider],
    timeout: Optional[float] = None,
    excluded_phrases: Optional[Iterable[str]] = None,
) -> dict:
    """
    Rewrite text with the model, verifying each pass by re-scoring.

    Flow:
      1. Detect + refine flags, score the original
      2. Up to MAX_ITERATIONS model passes, each checked by the local scorer
      3. Keep the first pass that lowers the score
      4. Otherwise (or on any model failure) fall back to pattern fixes
    """
    excluded = normalize_phrases(excluded_phrases)
    if llm is None:
        return _fallback(text, excluded, "No language model configured.")

    timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS
    score_before = _score(text, excluded)
    current = text
    iterations: list[dict] = []

    try:
        for i in range(MAX_ITERATIONS):
            flags = refine_flags(detect(current, excluded_phrases=excluded), current)
            result = await _request_rewrite(current, llm, flags, timeout)
            candidate = result["rewritten"]
            score_after = _score(candidate, excluded)
            passed = score_after < score_before
            iterations.append({
                "iteration": i + 1,
                "score": score_after,
                "passed": passed,
            })
            if passed:
                return {
                    "original": text,
                    "rewritten": candidate,
                    "changes_made": result["changes_made"],
                    "score_before": score_before,
                    "score_after": score_after,
                    "source": "model",
                    "iterations": iterations,
                    "diff_spans": compute_diff_spans(text, candidate),
                    "error": None,
                }
            current = candidate
    except Exception as e:
        logger.warning(
            "Model rewrite failed, falling back to pattern fixes: %s", e,
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        fallback = _fallback(text, excluded, str(e))
        fallback["iterations"] = iterations
        return fallback

    logger.info(
        "Model rewrite did not lower the score; using pattern fixes",
        extra={"iterations": len(iterations)},
    )
    fallback = _fallback(text, excluded, None)
    fallback["iterations"] = iterations
    return fallback
