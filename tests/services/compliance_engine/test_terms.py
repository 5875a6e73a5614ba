"""
Tests for Term Matching
=======================

Version: 0.1.0
"""

import pytest

from services.compliance_engine.terms import mentions, phrases_overlap, word_tokens


class TestWordTokens:
    """Tests for word_tokens()."""

    def test_plurals_fold_to_singular(self) -> None:
        assert word_tokens("Restaurants, Facilities & Taxes") == ("restaurant", "facility", "tax")

    @pytest.mark.parametrize("word", ["business", "status", "dialysis", "gas"])
    def test_words_ending_in_s_kept(self, word: str) -> None:
        assert word_tokens(word) == (word,)


class TestPhrasesOverlap:
    """Tests for phrases_overlap()."""

    @pytest.mark.parametrize(
        ("left", "right"),
        [
            ("Restaurant", "Restaurants and Food Service"),
            ("full service restaurants", "Restaurant"),
            ("Food Service", "restaurants and food service"),
        ],
    )
    def test_whole_word_overlap(self, left: str, right: str) -> None:
        assert phrases_overlap(left, right)

    @pytest.mark.parametrize(("left", "right"), [("IT", "Hospitality"), ("rest", "Restaurant"), ("", "Retail")])
    def test_fragments_do_not_overlap(self, left: str, right: str) -> None:
        assert not phrases_overlap(left, right)

    def test_mentions_multi_word_term(self) -> None:
        words = word_tokens("Disposal of hazardous waste from dry cleaners")

        assert mentions(words, "hazardous waste")
        assert not mentions(words, "waste hazardous")
