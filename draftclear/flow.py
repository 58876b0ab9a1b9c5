"""
Flow Diagnostics — Sentence-Level Text Statistics

Computes the structural signals the Score Aggregator consumes
(sentence-length spread, contraction rate, passive density) and the
sentence-level flow issues shown to the student:

  - passive_voice:  sentences dominated by passive constructions
  - uniform_length: runs of sentences with near-identical word counts

All functions are pure and never raise on string input. A statistic
that cannot be computed (no words, no sentences) comes back as 0.0.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_WORD_RE = re.compile(r"[A-Za-z0-9]+(?:['’][A-Za-z]+)?(?:-[A-Za-z0-9]+)*")
_CONTRACTION_RE = re.compile(
    r"\b(?:[A-Za-z]+n['’]t|[A-Za-z]+['’](?:re|ve|ll|d|m)|"
    r"(?:it|that|there|here|he|she|what|who|where|let)['’]s)\b",
    re.IGNORECASE,
)
_PASSIVE_RE = re.compile(
    r"\b(?:is|are|was|were|be|been|being)\s+(?:\w+ly\s+)?\w+(?:ed|en)\b",
    re.IGNORECASE,
)

PASSIVE_SENTENCE_THRESHOLD = 35.0   # percent of words
PASSIVE_SENTENCE_HIGH = 60.0
UNIFORM_CV_THRESHOLD = 15.0         # percent
UNIFORM_CV_HIGH = 10.0
UNIFORM_MIN_SENTENCES = 3
UNIFORM_MAX_REPORTED = 3


@dataclass(frozen=True)
class Sentence:
    index: int      # 1-based
    text: str
    start: int
    end: int

    @property
    def word_count(self) -> int:
        return count_words(self.text)


@dataclass(frozen=True)
class TextStats:
    word_count: int
    sentence_count: int
    mean_sentence_length: float
    sentence_length_variance: float
    contraction_rate: float     # contractions per word
    passive_rate: float         # passive constructions per sentence

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FlowIssue:
    sentence_index: int
    sentence: str
    issue: str          # "passive_voice" | "uniform_length"
    severity: str       # "medium" | "high"
    detail: str

    def to_dict(self) -> dict:
        return asdict(self)


def count_words(text: str) -> int:
    return len(_WORD_RE.findall(text))


def count_contractions(text: str) -> int:
    return len(_CONTRACTION_RE.findall(text))


def count_passive(text: str) -> int:
    return len(_PASSIVE_RE.findall(text))


def parse_sentences(text: str) -> list[Sentence]:
    """Split text into sentences. A trailing fragment without end punctuation counts."""
    if not text:
        return []

    sentences: list[Sentence] = []
    last_end = 0
    for m in _SENTENCE_RE.finditer(text):
        chunk = m.group(0).strip()
        last_end = m.end()
        if chunk and count_words(chunk):
            sentences.append(Sentence(len(sentences) + 1, chunk, m.start(), m.end()))

    tail = text[last_end:].strip()
    if tail and count_words(tail):
        sentences.append(Sentence(len(sentences) + 1, tail, last_end, len(text)))
    return sentences


def _mean_and_variance(values: list[int]) -> tuple[float, float]:
    if not values:
        return 0.0, 0.0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, variance


def text_stats(text: str) -> TextStats:
    sentences = parse_sentences(text)
    lengths = [s.word_count for s in sentences]
    mean, variance = _mean_and_variance(lengths)
    words = count_words(text)

    return TextStats(
        word_count=words,
        sentence_count=len(sentences),
        mean_sentence_length=round(mean, 3),
        sentence_length_variance=round(variance, 3),
        contraction_rate=round(count_contractions(text) / words, 4) if words else 0.0,
        passive_rate=round(count_passive(text) / len(sentences), 4) if sentences else 0.0,
    )


def passive_voice_sentences(text: str) -> list[FlowIssue]:
    issues = []
    for s in parse_sentences(text):
        words = s.word_count
        passive = sum(count_words(m.group(0)) for m in _PASSIVE_RE.finditer(s.text))
        if not words or not passive:
            continue
        pct = passive / words * 100
        if pct > PASSIVE_SENTENCE_THRESHOLD:
            issues.append(FlowIssue(
                sentence_index=s.index,
                sentence=s.text,
                issue="passive_voice",
                severity="high" if pct > PASSIVE_SENTENCE_HIGH else "medium",
                detail=f"{pct:.1f}% of words sit in passive constructions; rewrite in active voice.",
            ))
    return issues


def uniform_length_sentences(text: str) -> list[FlowIssue]:
    sentences = parse_sentences(text)
    if len(sentences) < UNIFORM_MIN_SENTENCES:
        return []

    lengths = [s.word_count for s in sentences]
    mean, variance = _mean_and_variance(lengths)
    if mean == 0:
        return []
    cv = math.sqrt(variance) / mean * 100
    if cv >= UNIFORM_CV_THRESHOLD:
        return []

    severity = "high" if cv < UNIFORM_CV_HIGH else "medium"
    near_mean = [s for s in sentences if abs(s.word_count - mean) < 3]
    return [
        FlowIssue(
            sentence_index=s.index,
            sentence=s.text,
            issue="uniform_length",
            severity=severity,
            detail=(
                f"{s.word_count} words against an average of {mean:.1f} "
                f"(variation {cv:.1f}%). Mix in shorter (5-10 word) or longer "
                f"(25+ word) sentences."
            ),
        )
        for s in near_mean[:UNIFORM_MAX_REPORTED]
    ]


def flow_issues(text: str) -> list[FlowIssue]:
    return passive_voice_sentences(text) + uniform_length_sentences(text)


def flow_summary(issues: list[FlowIssue]) -> dict:
    """Group flow issues by type with the affected sentence numbers."""
    by_type: dict[str, list[int]] = {}
    for issue in issues:
        by_type.setdefault(issue.issue, []).append(issue.sentence_index)
    return {
        "total_issues": len(issues),
        "sentences_with_issues": sorted({i.sentence_index for i in issues}),
        "issues_by_type": by_type,
    }
