"""
Fixer Tests — Full Coverage

Tests the fixer module:
  1. Case preservation (match_case)
  2. Position-safe sequential replacement (apply_fixes)
  3. Skipped and overlapping fixes
  4. Idempotence: fixed text does not re-trigger the fixed rules
  5. Diff span computation
  6. Model rewrite flow (mocked LLM path + pattern fallback)
"""

from __future__ import annotations

import json

import pytest

from draftclear.context import refine_flags
from draftclear.detector import detect
from draftclear.errors import ExternalServiceError
from draftclear.fixer import (
    FixInstruction,
    _build_flag_instructions,
    apply_fixes,
    compute_diff_spans,
    fix_text,
    match_case,
    rewrite_text,
)
from draftclear.llm import LLMProvider


# ============================================================
# MOCK LLMs
# ============================================================

class MockLLM(LLMProvider):
    """Returns a pre-configured rewrite."""

    def __init__(self, rewritten: str):
        self._rewritten = rewritten
        self.calls = []

    async def generate(self, prompt, system_instruction=None, temperature=0.7, json_mode=False):
        self.calls.append(prompt)
        return json.dumps({
            "rewritten": self._rewritten,
            "changes_made": ["Swapped stiff vocabulary"],
        })


class FailingLLM(LLMProvider):
    async def generate(self, prompt, system_instruction=None, temperature=0.7, json_mode=False):
        raise ExternalServiceError("provider down")


class EmptyRewriteLLM(LLMProvider):
    async def generate(self, prompt, system_instruction=None, temperature=0.7, json_mode=False):
        return json.dumps({"rewritten": "   ", "changes_made": []})


STIFF = "We utilize this tool. We leverage it daily to facilitate learning."


# ============================================================
# CASE PRESERVATION
# ============================================================

class TestMatchCase:

    @pytest.mark.parametrize("matched,expected", [
        ("UTILIZE", "USE"),
        ("Utilize", "Use"),
        ("utilize", "use"),
    ])
    def test_styles(self, matched, expected):
        assert match_case(matched, "use") == expected

    def test_empty_replacement(self):
        assert match_case("Utilize", "") == ""

    @pytest.mark.parametrize("text,expected", [
        ("UTILIZE this.", "USE this."),
        ("Utilize this.", "Use this."),
        ("utilize this.", "use this."),
    ])
    def test_apply_preserves_case(self, text, expected):
        assert apply_fixes(text, [FixInstruction("utilize", "use")]) == expected


# ============================================================
# POSITION SAFETY
# ============================================================

class TestApplyFixes:

    def test_position_safety_any_order(self):
        fixes = [FixInstruction("utilize", "use"), FixInstruction("leverage", "advantage")]
        assert apply_fixes("utilize the leverage", fixes) == "use the advantage"
        assert apply_fixes("utilize the leverage", list(reversed(fixes))) == "use the advantage"

    def test_replaces_every_occurrence(self):
        text = "Utilize a. Then utilize b."
        assert apply_fixes(text, [FixInstruction("utilize", "use")]) == "Use a. Then use b."

    def test_whole_word_only(self):
        text = "Because we use it."
        assert apply_fixes(text, [FixInstruction("use", "employ")]) == "Because we employ it."

    def test_multiword_phrase(self):
        text = "In today's fast-paced world, it works."
        fixed = apply_fixes(text, [FixInstruction("In today's fast-paced world", "today")])
        assert fixed == "Today, it works."

    def test_multiword_phrase_is_word_bounded(self):
        text = "It is a testament to effort, a testament tomorrow will judge."
        fixed = apply_fixes(text, [FixInstruction("a testament to", "a sign of")])
        assert fixed == "It is a sign of effort, a testament tomorrow will judge."

    def test_phrase_ending_in_punctuation(self):
        text = "Furthermore, it works. Furthermore it fails."
        fixed = apply_fixes(text, [FixInstruction("Furthermore,", "Also,")])
        assert fixed == "Also, it works. Furthermore it fails."

    def test_longer_replacement_does_not_corrupt_other_fix(self):
        text = "We foster trust and utilize tools."
        fixes = [
            FixInstruction("foster", "encourage and build"),
            FixInstruction("utilize", "use"),
        ]
        assert apply_fixes(text, fixes) == "We encourage and build trust and use tools."

    def test_empty_text(self):
        assert apply_fixes("", [FixInstruction("utilize", "use")]) == ""

    def test_flags_accepted_directly(self):
        text = "We utilize this tool."
        flags = refine_flags(detect(text), text)
        assert apply_fixes(text, flags) == "We use this tool."


class TestFixText:

    def test_missing_phrase_is_skipped(self):
        result = fix_text("We use this tool.", [FixInstruction("utilize", "use")])
        assert result.fixed == "We use this tool."
        assert result.applied == []
        assert result.skipped == ["utilize"]

    def test_empty_phrase_is_skipped(self):
        result = fix_text("We utilize this.", [FixInstruction("", "x")])
        assert result.fixed == "We utilize this."
        assert result.skipped == [""]

    def test_overlapping_fix_consumed(self):
        text = "Let us delve into this topic."
        result = fix_text(text, [
            FixInstruction("delve into", "look into"),
            FixInstruction("delve", "dig"),
        ])
        assert result.fixed == "Let us look into this topic."
        assert result.applied == ["delve into"]
        assert result.skipped == ["delve"]

    def test_auto_detect_when_no_instructions(self):
        result = fix_text("We utilize this tool.")
        assert result.fixed == "We use this tool."
        assert result.applied == ["utilize"]
        assert result.score_after < result.score_before

    def test_excluded_phrases_left_alone(self):
        result = fix_text("We utilize this tool.", excluded_phrases=["utilize"])
        assert result.fixed == "We utilize this tool."

    def test_idempotent(self):
        text = (
            "In today's fast-paced world, we utilize cutting-edge tools to facilitate "
            "learning. Furthermore, it is important to note that our strategic plan "
            "will foster growth in the realm of science. Moreover, we delve into "
            "various robust methods."
        )
        assert len(detect(text)) >= 10
        fixed = fix_text(text).fixed
        assert detect(fixed) == []
        assert fix_text(fixed).fixed == fixed

    def test_to_dict(self):
        data = fix_text("We utilize this tool.").to_dict()
        assert set(data) == {
            "original", "fixed", "applied", "skipped",
            "score_before", "score_after", "diff_spans",
        }


class TestDiffSpans:

    def test_spans_reconstruct_both_texts(self):
        original = "We utilize this tool."
        fixed = "We use this tool."
        spans = compute_diff_spans(original, fixed)
        assert "".join(s["text"] for s in spans if s["type"] != "insert") == original
        assert "".join(s["text"] for s in spans if s["type"] != "delete") == fixed
        assert any(s["type"] == "delete" for s in spans)
        assert any(s["type"] == "insert" for s in spans)

    def test_identical_texts(self):
        spans = compute_diff_spans("Same.", "Same.")
        assert spans == [{
            "type": "equal", "text": "Same.",
            "orig_start": 0, "orig_end": 5, "fixed_start": 0, "fixed_end": 5,
        }]


# ============================================================
# MODEL REWRITE
# ============================================================

class TestFlagInstructions:

    def test_lists_phrases(self):
        flags = refine_flags(detect(STIFF), STIFF)
        text = _build_flag_instructions(flags)
        assert '"utilize"' in text
        assert '"leverage"' in text

    def test_no_flags(self):
        assert "none flagged" in _build_flag_instructions([])


class TestRewriteText:

    @pytest.mark.asyncio
    async def test_no_llm_uses_pattern_fallback(self):
        result = await rewrite_text(STIFF, llm=None)
        assert result["source"] == "pattern_fallback"
        assert "utilize" not in result["rewritten"].lower()
        assert result["error"]

    @pytest.mark.asyncio
    async def test_model_rewrite_accepted_when_score_drops(self):
        llm = MockLLM("We use this tool. We use it every day, and it's helped us learn.")
        result = await rewrite_text(STIFF, llm=llm)
        assert result["source"] == "model"
        assert result["score_after"] < result["score_before"]
        assert result["iterations"][0]["passed"] is True
        assert result["diff_spans"]
        assert len(llm.calls) == 1
        assert '"utilize"' in llm.calls[0]

    @pytest.mark.asyncio
    async def test_no_improvement_falls_back_after_retries(self):
        llm = MockLLM(STIFF)
        result = await rewrite_text(STIFF, llm=llm)
        assert result["source"] == "pattern_fallback"
        assert len(result["iterations"]) == 2
        assert all(not i["passed"] for i in result["iterations"])
        assert result["error"] is None

    @pytest.mark.asyncio
    async def test_provider_failure_falls_back(self):
        result = await rewrite_text(STIFF, llm=FailingLLM())
        assert result["source"] == "pattern_fallback"
        assert "provider down" in result["error"]

    @pytest.mark.asyncio
    async def test_empty_rewrite_falls_back(self):
        result = await rewrite_text(STIFF, llm=EmptyRewriteLLM())
        assert result["source"] == "pattern_fallback"
        assert "rewritten" in result["error"]
