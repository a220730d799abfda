"""Tests for stemming, keyword matching and markdown cleanup."""

import pytest

from pastself.src.core.similarity import cosine_similarity
from pastself.src.utils.text_utils import custom_keywords, is_mentioned, keyword_threshold, stem, strip_markdown, title_keywords


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_direction_is_one(self):
        assert cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)

    def test_orthogonal_is_zero(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_is_minus_one(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_diagonal(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 1.0]) == pytest.approx(0.7071, abs=1e-4)

    @pytest.mark.parametrize("a, b", [([0.3, -1.2, 2.0], [1.5, 0.4, -0.7]), ([1.0, 2.0], [3.0, 4.0])])
    def test_symmetric(self, a, b):
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    @pytest.mark.parametrize("a, b", [([], [1.0]), (None, [1.0]), ([1.0, 0.0], [1.0]), ([0.0, 0.0], [1.0, 1.0])])
    def test_degenerate_inputs_are_neutral(self, a, b):
        """Missing, mismatched or zero vectors score 0 instead of raising."""
        assert cosine_similarity(a, b) == 0.0


class TestStem:
    """Tests for the crude suffix stemmer."""

    @pytest.mark.parametrize(
        "word, expected",
        [
            ("runs", "run"),
            ("exercising", "exercis"),
            ("walked", "walk"),
            ("pushes", "pushe"),
            ("meditated", "meditat"),
            ("yoga", "yoga"),
        ],
    )
    def test_single_pass_suffixes(self, word, expected):
        assert stem(word) == expected

    def test_only_end_of_string_is_stripped(self):
        assert stem("walked to the gym") == "walked to the gym"


class TestKeywords:
    """Tests for keyword extraction and the match threshold."""

    def test_title_keywords_drop_stopwords_and_short_words(self):
        assert title_keywords("Read with the kids at night") == ["read", "kids", "night"]

    def test_custom_keywords_trimmed_and_filtered(self):
        assert custom_keywords(" Gym, ab ,Lifting,,") == ["gym", "lifting"]

    def test_custom_keywords_empty(self):
        assert custom_keywords(None) == []
        assert custom_keywords("") == []

    @pytest.mark.parametrize("count, expected", [(1, 1), (2, 1), (3, 2), (5, 2), (6, 3), (10, 4)])
    def test_threshold_is_forty_percent_rounded_up(self, count, expected):
        assert keyword_threshold(count) == expected


class TestIsMentioned:
    """Tests for the four matching rules."""

    def test_full_title_substring(self):
        assert is_mentioned("Today I decided to Run A Marathon next year", "run a marathon")

    def test_custom_keyword_substring(self):
        assert is_mentioned("Went to the gym after work", "Get stronger", "gym, lifting")

    def test_stemmed_title(self):
        assert is_mentioned("i meditate daily now", "Meditated")

    def test_keyword_threshold_met(self):
        """'Morning Exercise Routine' needs 2 of its 3 keywords."""
        assert is_mentioned("Did some exercise this morning before coffee", "Morning Exercise Routine")

    def test_keyword_threshold_not_met(self):
        """All three title words count, so one hit is below the threshold of 2."""
        assert not is_mentioned("Did some exercise before coffee", "Morning Exercise Routine")

    def test_unrelated_text(self):
        assert not is_mentioned("Watched a movie with friends", "Learn Spanish", "duolingo, vocabulary")

    def test_empty_text(self):
        assert not is_mentioned("", "Learn Spanish")


class TestStripMarkdown:
    """Tests for display cleanup of model output."""

    def test_headings_bold_italic_and_bullets(self):
        raw = "## Looking back\n**You** were *really* trying.\n- first point\n* second point"
        assert strip_markdown(raw) == "Looking back\nYou were really trying.\n• first point\n• second point"

    def test_blank_runs_collapsed(self):
        assert strip_markdown("one\n\n\n\ntwo") == "one\n\ntwo"

    def test_none_and_empty(self):
        assert strip_markdown(None) == ""
        assert strip_markdown("") == ""
