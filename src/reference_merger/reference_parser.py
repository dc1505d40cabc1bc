"""Extraction of reference blocks from XML-like markup."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .models import Record
from .normalization import alnum_only, body_text, digits_only, letters_only, strip_tags
from .similarity import build_fingerprint

logger = logging.getLogger(__name__)

MIN_BODY_LENGTH = 5
SORT_PREFIX_LENGTH = 50


@dataclass(frozen=True)
class RecordPattern:
    """Describes the delimiting element of a record and its optional sub-elements."""

    element: str = "ce:bib-reference"
    id_attribute: str = "id"
    label_element: str = "ce:label"
    field_prefixes: Tuple[str, ...] = ("ce", "sb")

    def start_tag(self) -> re.Pattern:
        return re.compile(rf"<{re.escape(self.element)}\b([^>]*)>")

    def end_tag(self) -> re.Pattern:
        return re.compile(rf"</{re.escape(self.element)}\s*>")

    def id_attr(self) -> re.Pattern:
        return re.compile(rf"(?:^|\s){re.escape(self.id_attribute)}=\"([^\"]*)\"")

    def label(self) -> re.Pattern:
        name = re.escape(self.label_element)
        return re.compile(rf"<{name}>(.*?)</{name}>", re.DOTALL)

    def sub_element(self, local_name: str) -> re.Pattern:
        prefixes = "|".join(re.escape(p) for p in self.field_prefixes)
        return re.compile(rf"<(?:{prefixes}):{local_name}>(.*?)</(?:{prefixes}):{local_name}>", re.DOTALL)


DEFAULT_PATTERN = RecordPattern()


@dataclass
class RecordSpan:
    """A located record block before field extraction."""

    start: int
    end: int
    attributes: str
    content: str
    raw_text: str


class RecordExtractor:
    """Scans text for record blocks and extracts their identifying fields.

    Malformed blocks (an opening tag without a closing one, self-closing
    elements) are skipped rather than reported.
    """

    def __init__(self, pattern: RecordPattern = DEFAULT_PATTERN):
        self.pattern = pattern
        self._start = pattern.start_tag()
        self._end = pattern.end_tag()
        self._id = pattern.id_attr()
        self._label = pattern.label()
        self._surname = pattern.sub_element("surname")
        self._year = pattern.sub_element("year")
        self._date = pattern.sub_element("date")
        self._title = pattern.sub_element("title")

    def scan(self, text: str) -> Iterator[RecordSpan]:
        position = 0
        while True:
            start = self._start.search(text, position)
            if not start:
                return
            if start.group(1).rstrip().endswith("/"):
                position = start.end()
                continue
            end = self._end.search(text, start.end())
            if not end:
                logger.debug("Unterminated record block at offset %d", start.start())
                return
            yield RecordSpan(
                start=start.start(),
                end=end.end(),
                attributes=start.group(1),
                content=text[start.end() : end.start()],
                raw_text=text[start.start() : end.end()],
            )
            position = end.end()

    def extract(self, text: str) -> List[Record]:
        records: List[Record] = []
        for span in self.scan(text or ""):
            record = self._build_record(span)
            if record is not None:
                records.append(record)
        logger.debug("Extracted %d records", len(records))
        return records

    def _build_record(self, span: RecordSpan) -> Optional[Record]:
        content = span.content
        record_id = self._first(self._id, span.attributes)
        label = self._first(self._label, content).strip()
        author = letters_only(strip_tags(self._first(self._surname, content), ""))
        year_text = self._first(self._year, content) or self._first(self._date, content)
        year = digits_only(strip_tags(year_text, ""))
        title = alnum_only(strip_tags(self._first(self._title, content), ""))
        body = body_text(content)

        is_synthetic = False
        if not label and author and year:
            label = f"{author}, {year}"
            is_synthetic = True

        if not (label or author or len(body) > MIN_BODY_LENGTH):
            return None

        return Record(
            raw_text=span.raw_text,
            content=content,
            record_id=record_id,
            label=label,
            is_synthetic_label=is_synthetic,
            author=author,
            year=year,
            title=title,
            body_text=body,
            fingerprint=build_fingerprint(author, year, title, body),
            sort_key=label or body[:SORT_PREFIX_LENGTH],
        )

    @staticmethod
    def _first(pattern: re.Pattern, text: str) -> str:
        match = pattern.search(text)
        return match.group(1) if match else ""


def extract_records(text: str, pattern: RecordPattern = DEFAULT_PATTERN) -> List[Record]:
    return RecordExtractor(pattern).extract(text)
