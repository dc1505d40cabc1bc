"""Label formatting for merged reference blocks."""
from __future__ import annotations

import re

from .options import MergeOptions
from .reference_parser import DEFAULT_PATTERN, RecordPattern

AMPERSAND_ENTITY = "&amp;"
_AND_WORD = re.compile(r"\band\b")


class LabelFormatter:
    """Applies label options and writes labels back into record markup.

    Only the label text is touched; the rest of the record is left byte for byte.
    """

    def __init__(self, options: MergeOptions, pattern: RecordPattern = DEFAULT_PATTERN):
        self.options = options
        self.pattern = pattern
        self._label = pattern.label()

    def format(self, label: str) -> str:
        if not label:
            return label
        if self.options.ampersand_normalization:
            label = _AND_WORD.sub(AMPERSAND_ENTITY, label)
        return label

    def apply(self, raw_text: str, label: str) -> str:
        """Replace the first label sub-element's text, if the record has one."""
        match = self._label.search(raw_text)
        if not match:
            return raw_text
        current = match.group(1)
        if current.strip() == label:
            return raw_text
        leading = current[: len(current) - len(current.lstrip())]
        trailing = current[len(current.rstrip()) :]
        return raw_text[: match.start(1)] + leading + label + trailing + raw_text[match.end(1) :]

    def reformat(self, raw_text: str, label: str) -> str:
        return self.apply(raw_text, self.format(label))
