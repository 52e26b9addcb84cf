# ABOUTME: Text normalization and similarity scoring for titles and author names.
# ABOUTME: Used by the dedupe identity rule and by fuzzy catalog matching.

import re
import unicodedata
from collections.abc import Iterable
from difflib import SequenceMatcher

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_UNDERSCORE_RE = re.compile(r"_+")


def normalize_text(text: str) -> str:
    """Casefold, strip accents and punctuation, and collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    text = text.casefold()
    text = _PUNCTUATION_RE.sub(" ", text)
    text = _UNDERSCORE_RE.sub(" ", text)
    return " ".join(text.split())


def normalize_author(name: str) -> str:
    """Normalize 'Last, First' to 'First Last', then apply normalize_text."""
    name = name.strip()
    if "," in name:
        parts = [p.strip() for p in name.split(",", 1)]
        name = f"{parts[1]} {parts[0]}"
    return normalize_text(name)


def string_similarity(a: str, b: str) -> float:
    """Similarity ratio of two already-normalized strings using SequenceMatcher."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return SequenceMatcher(None, a, b).ratio()


def title_similarity(a: str, b: str) -> float:
    """Similarity of two titles after normalization. Empty titles never match."""
    na, nb = normalize_text(a), normalize_text(b)
    if not na or not nb:
        return 0.0
    return string_similarity(na, nb)


def author_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Best similarity between any author on one side and any on the other.

    When either side lacks author info we can't infer a match, so the
    score is 0 rather than 1.
    """
    left = [n for n in (normalize_author(x) for x in a) if n]
    right = [n for n in (normalize_author(x) for x in b) if n]
    if not left or not right:
        return 0.0
    return max(string_similarity(x, y) for x in left for y in right)
