"""
Term Matching
=============

Word-level matching of short descriptors (industries, keywords, category
terms) against rule and profile text.

Matching works on whole words with light plural folding, so "IT" does not
match "Hospitality" while "Restaurant" still matches "Restaurants and Food
Service".

Version: 0.1.0
"""

import re

_WORD = re.compile(r"[a-z0-9]+")


def _singular(word: str) -> str:
    if len(word) <= 3:
        return word
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith(("xes", "ches", "shes", "sses")):
        return word[:-2]
    if word.endswith("s") and not word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word


def word_tokens(text: str) -> tuple[str, ...]:
    """Lowercase words of the text, plurals folded to singular."""
    return tuple(_singular(word) for word in _WORD.findall(text.casefold()))


def contains_phrase(words: tuple[str, ...], phrase: tuple[str, ...]) -> bool:
    """True when `phrase` occurs as consecutive words of `words`."""
    size = len(phrase)
    if not size or size > len(words):
        return False
    return any(words[i : i + size] == phrase for i in range(len(words) - size + 1))


def phrases_overlap(left: str, right: str) -> bool:
    """Either descriptor occurs in the other on word boundaries."""
    left_words, right_words = word_tokens(left), word_tokens(right)
    return contains_phrase(left_words, right_words) or contains_phrase(right_words, left_words)


def mentions(text_words: tuple[str, ...], term: str) -> bool:
    return contains_phrase(text_words, word_tokens(term))
