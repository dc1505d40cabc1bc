"""Detection and resolution of ambiguous label matches."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from .errors import UnresolvedConflict
from .matcher import RESOLVE_IGNORE, RESOLVE_UPDATE, ReferenceMatcher
from .models import ConflictCandidate, ConflictGroup, DecisionLog, Record
from .normalization import preview_text
from .options import MergeOptions

logger = logging.getLogger(__name__)

VALID_CHOICES = {RESOLVE_UPDATE, RESOLVE_IGNORE}


class ConflictResolver:
    """Surfaces label collisions and folds explicit choices back into the decision log."""

    def __init__(self, options: MergeOptions):
        self.options = options

    def detect(self, originals: Sequence[Record], updates: Sequence[Record]) -> List[ConflictGroup]:
        """Return one group per label shared by several originals and targeted by an update.

        Content matching assigns by fingerprint, so collisions only matter when
        labels are the active strategy.
        """
        if self.options.fuzzy_matching:
            return []

        by_label: Dict[str, List[int]] = {}
        for idx, record in enumerate(originals):
            if record.label:
                by_label.setdefault(record.label, []).append(idx)

        groups: List[ConflictGroup] = []
        seen = set()
        for updated_index, update in enumerate(updates):
            indices = by_label.get(update.label)
            if not indices or len(indices) < 2 or update.label in seen:
                continue
            seen.add(update.label)
            groups.append(
                ConflictGroup(
                    label=update.label,
                    updated_ref=updated_index,
                    candidates=[
                        ConflictCandidate(
                            index=idx,
                            record_id=originals[idx].record_id,
                            preview=preview_text(originals[idx].content),
                        )
                        for idx in indices
                    ],
                )
            )
        if groups:
            logger.warning("Found %d ambiguous label group(s): %s", len(groups), [g.label for g in groups])
        return groups

    @staticmethod
    def pending(groups: Sequence[ConflictGroup], resolutions: Mapping[int, str]) -> List[int]:
        return [idx for group in groups for idx in group.candidate_indices if idx not in resolutions]

    def ensure_resolved(self, groups: Sequence[ConflictGroup], resolutions: Mapping[int, str]) -> None:
        for idx, choice in resolutions.items():
            if choice not in VALID_CHOICES:
                raise ValueError(f"Unknown resolution {choice!r} for original #{idx}")
        missing = self.pending(groups, resolutions)
        if missing:
            raise UnresolvedConflict(groups, missing)

    def apply(
        self,
        log: DecisionLog,
        originals: Sequence[Record],
        updates: Sequence[Record],
        resolutions: Mapping[int, str],
        matcher: ReferenceMatcher,
        keep_order: bool = False,
    ) -> DecisionLog:
        """Rebuild the log from the already extracted records using the given choices.

        Selection flags carry over by record identity; with ``keep_order`` the
        previous arrangement is kept and new entries go to the end.
        """
        rebuilt = matcher.match(originals, updates, resolutions)
        previous = {decision.identity: (pos, decision) for pos, decision in enumerate(log)}
        for decision in rebuilt:
            carried = previous.get(decision.identity)
            if carried is not None:
                decision.selected = carried[1].selected
        if not keep_order:
            return rebuilt

        fallback = len(previous)
        ordered = sorted(
            enumerate(rebuilt),
            key=lambda item: (
                previous[item[1].identity][0] if item[1].identity in previous else fallback + item[0]
            ),
        )
        return rebuilt.reordered([decision for _, decision in ordered])
