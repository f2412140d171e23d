"""
Answer text normalization.

Pure functions that canonicalize free text before comparison. Both the
live checker and override storage run through ``normalize_text`` so a
stored override always compares equal to the text that produced it.

Pipeline (``normalize_text``):
    lowercase -> NFD decomposition -> strip combining marks ->
    "&" becomes "and" -> strip punctuation -> collapse whitespace -> trim

``normalize_answer`` adds the answer-matching pass, which drops a leading
interrogative ("what is", "who were", ...) and a leading article.
"""

from __future__ import annotations

import re
import unicodedata

_COMBINING_MARKS = re.compile(r"[\u0300-\u036f]")
_AMPERSAND = re.compile(r"\s*&\s*")
_PUNCTUATION = re.compile(r"[.,/#!$%^*;:{}=\-_`~()]")
_WHITESPACE = re.compile(r"\s+")
_DASH_VARIANTS = re.compile(r"[\u2010-\u2015\u2212\ufe58\ufe63\uff0d-]")

_INTERROGATIVE_PREFIX = re.compile(r"^(what|who) (is|are|was|were) ")
_ARTICLE_PREFIX = re.compile(r"^(the|a|an) ")


def normalize_text(text: str) -> str:
    """
    Canonical comparison form of ``text``.

    Idempotent; ``""`` normalizes to ``""``.

    >>> normalize_text("  Café   Au-Lait! ")
    'cafe aulait'
    >>> normalize_text("Arts & Crafts")
    'arts and crafts'
    """
    if not text:
        return ""
    # Lowercase first: some capitals lowercase to a base letter plus a mark.
    decomposed = unicodedata.normalize("NFD", text.lower())
    cleaned = _COMBINING_MARKS.sub("", decomposed)
    cleaned = _AMPERSAND.sub(" and ", cleaned)
    cleaned = _PUNCTUATION.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def strip_answer_prefixes(text: str) -> str:
    """
    Drop leading interrogatives and articles from already-normalized text.

    Repeats until nothing more matches so the result is a fixed point.

    >>> strip_answer_prefixes("who is the beatles")
    'beatles'
    """
    previous = None
    while previous != text:
        previous = text
        text = _INTERROGATIVE_PREFIX.sub("", text)
        text = _ARTICLE_PREFIX.sub("", text)
    return text


def normalize_answer(text: str) -> str:
    """Full answer-matching normalization."""
    return strip_answer_prefixes(normalize_text(text))


def normalize_override_text(text: str) -> str:
    """
    Storage form of an override phrasing.

    Dash variants separate words here ("Jean-Paul" is stored as
    "jean paul") before the shared ``normalize_text`` pipeline runs.
    """
    if not text:
        return ""
    return normalize_text(_DASH_VARIANTS.sub(" ", text))
