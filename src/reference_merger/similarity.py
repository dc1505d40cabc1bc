"""Record fingerprints and normalized edit-distance similarity."""
from __future__ import annotations

from rapidfuzz.distance import Levenshtein

from .normalization import alnum_only

TITLE_PREFIX_LENGTH = 50
TEXT_PREFIX_LENGTH = 150


def build_fingerprint(author: str, year: str, title: str, body: str) -> str:
    """Return a metadata signature when any field exists, else a text signature."""
    if author or year or title:
        return f"meta|{author}|{year}|{title[:TITLE_PREFIX_LENGTH]}"
    return f"text|{alnum_only(body)[:TEXT_PREFIX_LENGTH]}"


def similarity(first: str, second: str) -> float:
    """``1 - distance / max(len)``; two empty strings count as identical."""
    return Levenshtein.normalized_similarity(first, second)
