"""
Tests for text matching functions

Tests for clean_text, levenshtein_distance/similarity and the match_* rules.
"""

import pytest

from llm_eval_core.scoring.text_scorers import (
    clean_text,
    levenshtein_distance,
    levenshtein_similarity,
    match_exact,
    match_fuzzy,
    match_includes,
    match_regex,
)


class TestCleanText:
    """Tests for clean_text"""

    def test_whitespace_collapsed(self):
        assert clean_text("  hello \n\t world  ") == "hello world"

    def test_case_kept_by_default(self):
        assert clean_text("Hello") == "Hello"

    def test_case_insensitive(self):
        assert clean_text("HeLLo", case_sensitive=False) == "hello"

    def test_nfkc(self):
        # Full-width digits become ASCII
        assert clean_text("４２") == "42"

    def test_empty(self):
        assert clean_text("   ") == ""


class TestLevenshtein:
    """Tests for levenshtein_distance and levenshtein_similarity"""

    @pytest.mark.parametrize("a, b, expected", [
        ("kitten", "sitting", 3),
        ("", "abc", 3),
        ("abc", "", 3),
        ("same", "same", 0),
        ("flaw", "lawn", 2),
    ])
    def test_distance(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected

    def test_similarity_identical(self):
        assert levenshtein_similarity("abc", "abc") == 1.0

    def test_similarity_both_empty(self):
        assert levenshtein_similarity("", "") == 1.0

    def test_similarity_partial(self):
        assert levenshtein_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


class TestMatchRules:
    """Tests for the match_* functions"""

    def test_exact(self):
        assert match_exact("4", "4")
        assert not match_exact("4", "44")

    def test_includes(self):
        assert match_includes("four", "the answer is four")
        assert not match_includes("five", "the answer is four")

    def test_fuzzy_threshold(self):
        assert match_fuzzy("colour", "color", 0.8)
        assert not match_fuzzy("colour", "color", 0.9)

    def test_regex(self):
        assert match_regex(r"\b4\b", "The answer is 4.")
        assert not match_regex(r"^4$", "The answer is 4.")

    def test_regex_case_insensitive(self):
        assert match_regex("paris", "PARIS", case_sensitive=False)
        assert not match_regex("paris", "PARIS")

    def test_invalid_regex_is_no_match(self):
        assert match_regex("([unclosed", "anything") is False
