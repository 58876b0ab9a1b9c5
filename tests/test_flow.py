"""
Flow Diagnostics Tests

Sentence parsing, text statistics and the sentence-level flow issues
(passive voice, uniform sentence length).
"""

from __future__ import annotations

from draftclear.flow import (
    count_contractions,
    count_passive,
    count_words,
    flow_issues,
    flow_summary,
    parse_sentences,
    passive_voice_sentences,
    text_stats,
    uniform_length_sentences,
)

UNIFORM = (
    "One two three four five. "
    "Six seven eight nine ten. "
    "Eleven twelve thirteen fourteen fifteen."
)


class TestParsing:

    def test_sentences_with_trailing_fragment(self):
        sentences = parse_sentences("One. Two three! Four")
        assert [s.text for s in sentences] == ["One.", "Two three!", "Four"]
        assert [s.index for s in sentences] == [1, 2, 3]

    def test_empty(self):
        assert parse_sentences("") == []
        assert parse_sentences("...") == []

    def test_word_count(self):
        assert count_words("It's a well-known fact, isn't it?") == 6

    def test_contractions(self):
        assert count_contractions("I don't think it's done.") == 2
        assert count_contractions("I do not think it is done.") == 0

    def test_passive(self):
        assert count_passive("The essay was written by me. The results were analyzed.") == 2
        assert count_passive("I wrote the essay.") == 0


class TestTextStats:

    def test_empty_text_is_all_zero(self):
        stats = text_stats("")
        assert stats.word_count == 0
        assert stats.sentence_count == 0
        assert stats.sentence_length_variance == 0.0
        assert stats.contraction_rate == 0.0

    def test_uniform_variance_is_zero(self):
        stats = text_stats(UNIFORM)
        assert stats.sentence_count == 3
        assert stats.mean_sentence_length == 5
        assert stats.sentence_length_variance == 0.0

    def test_variance(self):
        stats = text_stats("One two. Three four five six.")
        assert stats.mean_sentence_length == 3
        assert stats.sentence_length_variance == 1.0

    def test_to_dict(self):
        data = text_stats(UNIFORM).to_dict()
        assert set(data) == {
            "word_count", "sentence_count", "mean_sentence_length",
            "sentence_length_variance", "contraction_rate", "passive_rate",
        }


class TestFlowIssues:

    def test_uniform_length_flagged(self):
        issues = uniform_length_sentences(UNIFORM)
        assert len(issues) == 3
        assert all(i.issue == "uniform_length" for i in issues)
        assert all(i.severity == "high" for i in issues)

    def test_varied_length_not_flagged(self):
        text = "Short one. This sentence is a good deal longer than the first. Ok."
        assert uniform_length_sentences(text) == []

    def test_too_few_sentences(self):
        assert uniform_length_sentences("One two three. Four five six.") == []

    def test_passive_sentence(self):
        issues = passive_voice_sentences("It was written. I wrote the rest of it myself.")
        assert len(issues) == 1
        assert issues[0].sentence_index == 1
        assert issues[0].severity == "high"

    def test_passive_medium(self):
        issues = passive_voice_sentences("The cake was eaten.")
        assert issues[0].severity == "medium"

    def test_summary(self):
        issues = flow_issues("It was written. " + UNIFORM)
        summary = flow_summary(issues)
        assert summary["total_issues"] == len(issues)
        assert 1 in summary["issues_by_type"]["passive_voice"]
        assert summary["sentences_with_issues"] == sorted(set(summary["sentences_with_issues"]))
