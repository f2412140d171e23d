"""
Unit tests for answer equivalence.

Tests edit distance, the length-proportional typo budget and acceptance
through the canonical answer or an override.
"""

import pytest

from src.core.config import Config
from src.modules.answers.checker import (
    AnswerChecker,
    is_answer_accepted,
    is_equivalent,
    levenshtein_distance,
    max_allowed_distance,
)


# ============================================================================
# Edit distance
# ============================================================================


@pytest.mark.unit
class TestLevenshteinDistance:

    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("paris", "paris", 0),
            ("", "abc", 3),
            ("abc", "", 3),
            ("paris", "parus", 1),
        ],
    )
    def test_distance(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected

    def test_is_symmetric(self):
        assert levenshtein_distance("gumbo", "gambol") == levenshtein_distance("gambol", "gumbo")


@pytest.mark.unit
class TestMaxAllowedDistance:
    """floor(ratio * length)."""

    @pytest.mark.parametrize(
        ("length", "expected"),
        [(0, 0), (4, 0), (5, 1), (9, 1), (10, 2), (15, 3), (20, 4)],
    )
    def test_default_ratio(self, length, expected):
        assert max_allowed_distance(length, 0.2) == expected

    def test_float_products_floor_to_the_whole_budget(self):
        assert max_allowed_distance(15, 0.2) == 3
        assert max_allowed_distance(10, 0.3) == 3
        assert max_allowed_distance(35, 0.2) == 7


# ============================================================================
# Equivalence
# ============================================================================


@pytest.mark.unit
class TestIsEquivalent:

    def test_one_typo_allowed_for_five_letters(self):
        # Arrange
        checker = AnswerChecker(tolerance_ratio=0.2)

        # Act / Assert
        assert checker.is_equivalent("PARIS", "Paris") is True
        assert checker.is_equivalent("PARUS", "Paris") is True
        assert checker.is_equivalent("PARUX", "Paris") is False

    def test_short_answers_need_an_exact_match(self):
        checker = AnswerChecker(tolerance_ratio=0.2)
        assert checker.is_equivalent("iowa", "Iowa") is True
        assert checker.is_equivalent("iowo", "Iowa") is False

    def test_prefixes_and_diacritics_are_ignored(self):
        checker = AnswerChecker(tolerance_ratio=0.2)
        assert checker.is_equivalent("who is abraham lincoln", "Abraham Lincoln") is True
        assert checker.is_equivalent("Beyonce", "Beyoncé") is True
        assert checker.is_equivalent("what are the Alps", "Alps") is True

    def test_budget_grows_with_candidate_length(self):
        checker = AnswerChecker(tolerance_ratio=0.2)
        assert checker.is_equivalent("mississipi", "Mississippi") is True
        assert checker.is_equivalent("misisipi", "Mississippi") is False

    def test_zero_ratio_requires_exact_match(self):
        checker = AnswerChecker(tolerance_ratio=0.0)
        assert checker.is_equivalent("the beatles", "Beatles") is True
        assert checker.is_equivalent("beatle", "Beatles") is False

    def test_empty_answer_only_matches_empty_candidate(self):
        checker = AnswerChecker(tolerance_ratio=0.2)
        assert checker.is_equivalent("", "") is True
        assert checker.is_equivalent("", "Paris") is False

    @pytest.mark.parametrize("ratio", [-0.1, 1.5])
    def test_rejects_ratio_out_of_range(self, ratio):
        with pytest.raises(ValueError):
            AnswerChecker(tolerance_ratio=ratio)

    def test_default_ratio_comes_from_config(self, monkeypatch):
        # Arrange
        monkeypatch.setattr(Config, "ANSWER_TOLERANCE_RATIO", 0.0)

        # Act
        checker = AnswerChecker()

        # Assert
        assert checker.tolerance_ratio == 0.0
        assert is_equivalent("parus", "Paris") is False


# ============================================================================
# Overrides
# ============================================================================


@pytest.mark.unit
class TestIsAnswerAccepted:

    def test_canonical_answer_accepts(self):
        assert is_answer_accepted("paris", "Paris", []) is True

    def test_override_string_accepts(self):
        # Arrange
        overrides = ["jfk"]

        # Act
        accepted = AnswerChecker(0.2).is_answer_accepted("JFK", "John F. Kennedy", overrides)

        # Assert
        assert accepted is True

    def test_override_objects_with_text_attribute(self, mocker):
        # Arrange
        override = mocker.MagicMock()
        override.text = "city of light"

        # Act / Assert
        assert AnswerChecker(0.2).is_answer_accepted(
            "the city of light", "Paris", [override]
        ) is True

    def test_no_match_anywhere(self):
        assert AnswerChecker(0.2).is_answer_accepted(
            "jfx", "John F. Kennedy", ["jfk"]
        ) is False

    def test_blank_overrides_are_skipped(self):
        assert AnswerChecker(0.2).is_answer_accepted("", "Paris", ["", None]) is False
