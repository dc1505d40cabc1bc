"""Logic for pairing original reference records with updated ones."""
from __future__ import annotations

import logging
import math
from typing import List, Mapping, Optional, Sequence, Tuple

from .errors import EmptyInput
from .formatter import LabelFormatter
from .models import Decision, DecisionLog, DecisionStatus, MatchKind, Record
from .normalization import preview_text
from .options import MergeOptions
from .similarity import similarity

logger = logging.getLogger(__name__)

CONTENT_MATCH_THRESHOLD = 0.82
UNLABELED = "Unlabeled"
NO_ID = "N/A"

RESOLVE_UPDATE = "update"
RESOLVE_IGNORE = "ignore"


def _percent(score: float) -> int:
    # half-up rounding, so 0.825 reports as 83 rather than banker's 82
    return int(math.floor(score * 100 + 0.5))


class ReferenceMatcher:
    """Match original records to updated records by label or content fingerprint."""

    def __init__(self, options: MergeOptions, formatter: Optional[LabelFormatter] = None):
        self.options = options
        self.formatter = formatter or LabelFormatter(options)

    def match(
        self,
        originals: Sequence[Record],
        updates: Sequence[Record],
        resolutions: Optional[Mapping[int, str]] = None,
    ) -> DecisionLog:
        """Build a fresh decision log.

        ``resolutions`` maps original indices involved in a label conflict to
        ``"update"`` or ``"ignore"``; those indices bypass the normal strategy.
        """
        if not originals and not updates:
            raise EmptyInput("Nothing to analyze: no reference blocks found in either document.", "both")
        if not originals:
            raise EmptyInput("Nothing to analyze: no reference blocks found in the original document.", "original")
        if not updates:
            raise EmptyInput("Nothing to analyze: no reference blocks found in the updated document.", "updated")

        resolutions = resolutions or {}
        consumed = [False] * len(updates)
        decisions: List[Decision] = []

        for index, original in enumerate(originals):
            if index in resolutions:
                found = self._resolved_candidate(original, updates, consumed, resolutions[index])
            else:
                found = self._find_match(original, updates, consumed)

            if found is None:
                decisions.append(self._unchanged(index, original))
                continue

            updated_index, kind, score = found
            consumed[updated_index] = True
            logger.debug(
                "Matched original #%d to update #%d by %s (%d)", index, updated_index, kind.value, score
            )
            decisions.append(self._matched(index, original, updated_index, updates[updated_index], kind, score))

        for updated_index, record in enumerate(updates):
            if not consumed[updated_index]:
                decisions.append(self._unmatched(updated_index, record))

        log = DecisionLog(decisions)
        logger.info(
            "Analysis: %d original, %d updated, %d matched",
            len(originals),
            len(updates),
            len(log.matched_updates()),
        )
        return log

    def _find_match(
        self, original: Record, updates: Sequence[Record], consumed: List[bool]
    ) -> Optional[Tuple[int, MatchKind, int]]:
        label_index = self._label_candidate(original, updates, consumed)
        if self.options.fuzzy_matching:
            best_index, best_score = self._best_content_candidate(original, updates, consumed)
            if best_index is not None and best_score > CONTENT_MATCH_THRESHOLD:
                return best_index, MatchKind.CONTENT, _percent(best_score)
        if label_index is not None:
            return label_index, MatchKind.LABEL, 100
        return None

    def _resolved_candidate(
        self, original: Record, updates: Sequence[Record], consumed: List[bool], choice: str
    ) -> Optional[Tuple[int, MatchKind, int]]:
        if choice == RESOLVE_IGNORE:
            return None
        if choice != RESOLVE_UPDATE:
            raise ValueError(f"Unknown resolution {choice!r}; expected 'update' or 'ignore'")
        label_index = self._label_candidate(original, updates, consumed)
        if label_index is None:
            return None
        return label_index, MatchKind.LABEL, 100

    @staticmethod
    def _label_candidate(original: Record, updates: Sequence[Record], consumed: List[bool]) -> Optional[int]:
        if not original.label:
            return None
        for idx, candidate in enumerate(updates):
            if not consumed[idx] and candidate.label == original.label:
                return idx
        return None

    @staticmethod
    def _best_content_candidate(
        original: Record, updates: Sequence[Record], consumed: List[bool]
    ) -> Tuple[Optional[int], float]:
        best_index: Optional[int] = None
        best_score = 0.0
        for idx, candidate in enumerate(updates):
            if consumed[idx]:
                continue
            score = similarity(candidate.fingerprint, original.fingerprint)
            # strict comparison keeps the first candidate on ties
            if score > best_score:
                best_index, best_score = idx, score
        return best_index, best_score

    def _labels_for(self, record: Record) -> Tuple[str, str]:
        display = self.formatter.format(record.label)
        sort_key = display if record.label else record.sort_key
        return display, sort_key

    def _unchanged(self, index: int, original: Record) -> Decision:
        display, sort_key = self._labels_for(original)
        return Decision(
            status=DecisionStatus.UNCHANGED,
            original_ref=index,
            selected=True,
            display_label=display,
            sort_key=sort_key,
            record_id=original.record_id,
            preview=preview_text(original.content),
        )

    def _matched(
        self,
        index: int,
        original: Record,
        updated_index: int,
        updated: Record,
        kind: MatchKind,
        score: int,
    ) -> Decision:
        display, sort_key = self._labels_for(original)
        return Decision(
            status=DecisionStatus.SMART_MATCH if kind == MatchKind.CONTENT else DecisionStatus.UPDATE,
            original_ref=index,
            updated_ref=updated_index,
            match_kind=kind,
            match_score=score,
            selected=True,
            display_label=display,
            sort_key=sort_key,
            record_id=original.record_id,
            preview=preview_text(updated.content),
        )

    def _unmatched(self, updated_index: int, record: Record) -> Decision:
        display, sort_key = self._labels_for(record)
        include = self.options.include_unmatched_updates
        return Decision(
            status=DecisionStatus.ADD if include else DecisionStatus.ORPHAN,
            updated_ref=updated_index,
            selected=include,
            display_label=display or UNLABELED,
            sort_key=sort_key,
            record_id=NO_ID,
            preview=preview_text(record.content),
        )
