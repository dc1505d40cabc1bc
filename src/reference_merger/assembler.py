"""Stitches merge decisions into the final record text."""
from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .formatter import LabelFormatter
from .models import Decision, MergeStats, Record
from .options import MergeOptions
from .renumber import NamespaceRenumberer

logger = logging.getLogger(__name__)


class MergeAssembler:
    """Emits record markup for each projected decision, in order."""

    def __init__(self, options: MergeOptions, formatter: LabelFormatter | None = None):
        self.options = options
        self.formatter = formatter or LabelFormatter(options)

    def assemble(
        self,
        sequence: Sequence[Decision],
        originals: Sequence[Record],
        updates: Sequence[Record],
        renumberer: NamespaceRenumberer,
    ) -> Tuple[str, MergeStats]:
        stats = MergeStats(total=len(originals))
        emitted: List[str] = []

        for decision in sequence:
            if decision.is_backbone:
                original = originals[decision.original_ref]
                if decision.is_match and decision.selected and decision.updated_ref is not None:
                    emitted.append(self._updated(decision, original, updates[decision.updated_ref], renumberer))
                    stats.updated += 1
                else:
                    emitted.append(self._relabel(original.raw_text, original, decision.display_label))
                    stats.unchanged += 1
            elif decision.selected and decision.updated_ref is not None:
                emitted.append(self._added(updates[decision.updated_ref], renumberer))
                stats.added += 1

        stats.skipped = len(updates) - stats.updated - stats.added
        logger.info(
            "Merge: %d updated, %d unchanged, %d added, %d skipped",
            stats.updated,
            stats.unchanged,
            stats.added,
            stats.skipped,
        )
        return "\n".join(emitted), stats

    def _relabel(self, raw_text: str, source: Record, label: str) -> str:
        # derived author/year labels never existed in the markup
        if source.is_synthetic_label or not source.label:
            return raw_text
        return self.formatter.apply(raw_text, label)

    def _updated(
        self, decision: Decision, original: Record, updated: Record, renumberer: NamespaceRenumberer
    ) -> str:
        text = updated.raw_text
        if not updated.is_synthetic_label and updated.label:
            if original.label and not original.is_synthetic_label:
                label = decision.display_label
            else:
                label = self.formatter.format(updated.label)
            text = self.formatter.apply(text, label)
        if self.options.preserve_ids and original.record_id:
            text = renumberer.set_record_id(text, renumberer.record_id_for(original.record_id))
        if self.options.renumber_internal:
            text = renumberer.renumber_internal(text)
        return text

    def _added(self, updated: Record, renumberer: NamespaceRenumberer) -> str:
        text = self._relabel(updated.raw_text, updated, self.formatter.format(updated.label))
        text = renumberer.set_record_id(text, renumberer.new_record_id())
        return renumberer.renumber_internal(text)
