"""Namespace-aware allocation of record and cross-reference identifiers."""
from __future__ import annotations

import logging
import re
from typing import Dict, Tuple

from .reference_parser import DEFAULT_PATTERN, RecordPattern

logger = logging.getLogger(__name__)

ID_STEP = 5
ID_FLOOR = 3000
RECORD_PREFIX = "bb"
LEGACY_RECORD_PREFIX = "bib"

# element name -> identifier prefix of its namespace
NAMESPACES: Tuple[Tuple[str, str], ...] = (
    ("sb:reference", "rf"),
    ("ce:source-text", "st"),
    ("ce:inter-ref", "ir"),
    ("sb:inter-ref", "ir"),
    ("ce:other-ref", "or"),
    ("ce:textref", "tr"),
)
_PREFIX_BY_ELEMENT: Dict[str, str] = dict(NAMESPACES)
_INTERNAL_ID = re.compile(
    r"(<(?P<name>" + "|".join(re.escape(name) for name, _ in NAMESPACES) + r")(?=[\s>/])[^>]*?\s)"
    r"id=\"[^\"]*\""
)


def seed_counter(document: str, prefix: str, floor: int = ID_FLOOR) -> int:
    """First free id number for ``prefix``: above every existing one, on a multiple of five."""
    counter = floor
    for match in re.finditer(rf"id=\"{re.escape(prefix)}(\d+)\"", document or ""):
        value = int(match.group(1))
        if value >= counter:
            counter = -(-(value + ID_STEP) // ID_STEP) * ID_STEP
    return counter


class NamespaceRenumberer:
    """Hands out fresh identifiers per namespace for one merge run."""

    def __init__(self, original_document: str, pattern: RecordPattern = DEFAULT_PATTERN):
        self.pattern = pattern
        prefixes = {RECORD_PREFIX} | {prefix for _, prefix in NAMESPACES}
        self.counters: Dict[str, int] = {
            prefix: seed_counter(original_document, prefix) for prefix in sorted(prefixes)
        }
        self._start = pattern.start_tag()
        self._id = pattern.id_attr()

    def next_id(self, prefix: str) -> str:
        value = self.counters[prefix]
        self.counters[prefix] = value + ID_STEP
        return f"{prefix}{value}"

    def new_record_id(self) -> str:
        return self.next_id(RECORD_PREFIX)

    def record_id_for(self, original_id: str) -> str:
        """Keep the original id unless it carries the legacy prefix."""
        if original_id.startswith(LEGACY_RECORD_PREFIX):
            replacement = self.new_record_id()
            logger.debug("Replacing legacy id %s with %s", original_id, replacement)
            return replacement
        return original_id

    def renumber_internal(self, raw_text: str) -> str:
        def _replace(match: re.Match) -> str:
            prefix = _PREFIX_BY_ELEMENT[match.group("name")]
            return f'{match.group(1)}id="{self.next_id(prefix)}"'

        return _INTERNAL_ID.sub(_replace, raw_text)

    def set_record_id(self, raw_text: str, record_id: str) -> str:
        """Write ``record_id`` into the record's opening tag, adding the attribute if needed."""
        start = self._start.match(raw_text)
        if not start:
            return raw_text
        attributes = start.group(1)
        existing = self._id.search(attributes)
        if existing:
            attributes = attributes[: existing.start(1)] + record_id + attributes[existing.end(1) :]
        else:
            attributes = f' {self.pattern.id_attribute}="{record_id}"' + attributes
        return raw_text[: start.start(1)] + attributes + raw_text[start.end(1) :]
