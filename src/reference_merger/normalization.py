"""Normalization helpers for record extraction, fingerprinting and ordering."""
from __future__ import annotations

import html
import re
import unicodedata
from typing import Tuple, Union

TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NON_LETTER = re.compile(r"[^a-z]")
_NON_DIGIT = re.compile(r"\D")
_NUMBER_CHUNKS = re.compile(r"(\d+)")

SortChunk = Tuple[int, Union[int, str]]


def strip_tags(value: str | None, replacement: str = " ") -> str:
    if not value:
        return ""
    return TAG_PATTERN.sub(replacement, value)


def collapse_whitespace(value: str | None) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def body_text(content: str | None) -> str:
    """Tag-stripped, whitespace-normalized lowercase text of a record."""
    return collapse_whitespace(strip_tags(content)).lower()


def alnum_only(value: str | None) -> str:
    return _NON_ALNUM.sub("", (value or "").lower())


def letters_only(value: str | None) -> str:
    return _NON_LETTER.sub("", (value or "").lower())


def digits_only(value: str | None) -> str:
    return _NON_DIGIT.sub("", value or "")


def preview_text(content: str | None, limit: int = 100) -> str:
    """Short plain-text excerpt used in scan logs and conflict listings."""
    excerpt = strip_tags((content or "")[:limit], "").strip()
    return f"{excerpt}..."


def normalize_text(value: str | None) -> str:
    """Fold accents, entities, case and punctuation for comparisons."""
    if not value:
        return ""
    text = html.unescape(value)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text.replace("&", " and ").lower()
    text = re.sub(r"[^\w\s]", " ", text)
    return collapse_whitespace(text)


def natural_sort_key(value: str | None) -> Tuple[SortChunk, ...]:
    """Case-insensitive, punctuation-blind key that orders digit runs numerically."""
    chunks = []
    for part in _NUMBER_CHUNKS.split(normalize_text(value)):
        if not part:
            continue
        if part.isdigit():
            chunks.append((0, int(part)))
        else:
            chunks.append((1, part))
    return tuple(chunks)
