"""High-level orchestrator for reference merge workflows."""
from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from .assembler import MergeAssembler
from .conflicts import ConflictResolver
from .diffing import diff_documents, diff_summary
from .errors import EmptyInput, MergeFailure, UnresolvedConflict
from .formatter import LabelFormatter
from .matcher import ReferenceMatcher
from .models import ConflictGroup, Decision, DecisionLog, DecisionStatus, MergeResult, MergeStats, Record
from .options import MergeOptions
from .reference_parser import DEFAULT_PATTERN, RecordExtractor, RecordPattern
from .renumber import NamespaceRenumberer
from .report import render_report
from .sequencer import OrderingEvent, OrderingMode, Sequencer, initial_mode, next_mode

logger = logging.getLogger(__name__)


def analysis_stats(log: DecisionLog, total: int) -> MergeStats:
    stats = MergeStats(total=total)
    for decision in log:
        if decision.is_match:
            stats.updated += 1
        elif decision.status == DecisionStatus.UNCHANGED:
            stats.unchanged += 1
        elif decision.status == DecisionStatus.ADD:
            stats.added += 1
        else:
            stats.skipped += 1
    return stats


class MergeSession:
    """Coordinates extraction, matching, conflict resolution, ordering and merging.

    A session owns one pair of documents. ``analyze`` replaces the decision log
    wholesale; toggles, drags and conflict choices then act on that log until
    the next ``analyze``.
    """

    def __init__(
        self,
        original_document: str,
        updated_document: str,
        options: MergeOptions | None = None,
        pattern: RecordPattern = DEFAULT_PATTERN,
    ):
        self.original_document = original_document or ""
        self.updated_document = updated_document or ""
        self.options = options or MergeOptions()
        self.pattern = pattern
        self.extractor = RecordExtractor(pattern)
        self.formatter = LabelFormatter(self.options, pattern)
        self.matcher = ReferenceMatcher(self.options, self.formatter)
        self.resolver = ConflictResolver(self.options)
        self.sequencer = Sequencer()
        self.assembler = MergeAssembler(self.options, self.formatter)

        self.originals: List[Record] = []
        self.updates: List[Record] = []
        self.log: Optional[DecisionLog] = None
        self.mode: OrderingMode = initial_mode(self.options.auto_sort)
        self.pending_conflicts: List[ConflictGroup] = []
        self.resolutions: Dict[int, str] = {}
        self.conflicts_resolved = False
        self.last_result: Optional[MergeResult] = None

    @property
    def analyzed(self) -> bool:
        return self.log is not None

    def analyze(self) -> DecisionLog:
        if not self.original_document.strip() or not self.updated_document.strip():
            raise EmptyInput("Paste both Original and Updated XML.")
        originals = self.extractor.extract(self.original_document)
        updates = self.extractor.extract(self.updated_document)
        log = self.matcher.match(originals, updates)

        self.originals, self.updates, self.log = originals, updates, log
        self.mode = initial_mode(self.options.auto_sort)
        self.pending_conflicts = []
        self.resolutions = {}
        self.conflicts_resolved = False
        return log

    def stats(self) -> MergeStats:
        return analysis_stats(self._require_log(), len(self.originals))

    def toggle(self, index: int, selected: Optional[bool] = None) -> Decision:
        """Flip (or set) the selection of the log entry at ``index``."""
        decision = self._require_log()[index]
        decision.selected = (not decision.selected) if selected is None else bool(selected)
        return decision

    def display_order(self) -> List[Decision]:
        return self.sequencer.order(self._require_log(), self.mode)

    def drag(self, source: int, target: int) -> List[Decision]:
        self.log, self.mode = self.sequencer.drag(self._require_log(), self.mode, source, target)
        return self.display_order()

    def set_auto_sort(self, enabled: bool) -> OrderingMode:
        event = OrderingEvent.ENABLE_AUTO_SORT if enabled else OrderingEvent.DISABLE_AUTO_SORT
        if not enabled and self.mode == OrderingMode.AUTO and self.log is not None:
            # keep what the user currently sees as the manual starting point
            self.log = self.log.reordered(self.display_order())
        self.mode = next_mode(self.mode, event)
        return self.mode

    def conflicts(self) -> List[ConflictGroup]:
        if self.log is None:
            self.analyze()
        return self.resolver.detect(self.originals, self.updates)

    def cancel_resolution(self) -> None:
        self.pending_conflicts = []

    def merge(self, resolutions: Mapping[int, str] | None = None) -> MergeResult:
        """Produce the merged document, stopping if label conflicts need choices.

        Choices are remembered for the session. Passing choices that differ
        from the applied ones re-runs resolution on the current log, keeping
        selections and, in manual mode, the arrangement.
        """
        if self.log is None:
            self.analyze()

        if self.conflicts_resolved and resolutions:
            if {**self.resolutions, **resolutions} != self.resolutions:
                self.conflicts_resolved = False

        if not self.conflicts_resolved:
            groups = self.resolver.detect(self.originals, self.updates)
            if groups:
                choices = dict(self.resolutions)
                choices.update(resolutions or {})
                try:
                    self.resolver.ensure_resolved(groups, choices)
                except UnresolvedConflict:
                    # partial choices are kept for the next attempt
                    self.resolutions = choices
                    self.pending_conflicts = groups
                    raise
                self.log = self.resolver.apply(
                    self._require_log(),
                    self.originals,
                    self.updates,
                    choices,
                    self.matcher,
                    keep_order=self.mode == OrderingMode.MANUAL,
                )
                self.resolutions = choices
            self.pending_conflicts = []
            self.conflicts_resolved = True

        try:
            result = self._assemble()
        except Exception as exc:
            logger.exception("Merge failed")
            raise MergeFailure() from exc

        self.last_result = result
        logger.info(result.message)
        return result

    def report(self) -> str:
        if self.last_result is not None:
            result = self.last_result
            return render_report(
                self.display_order(), result.stats, message=result.message, diff_summary=result.diff_summary
            )
        return render_report(self.display_order(), self.stats())

    def _assemble(self) -> MergeResult:
        log = self._require_log()
        sequence = self.sequencer.project(log, self.mode)
        renumberer = NamespaceRenumberer(self.original_document, self.pattern)
        merged, stats = self.assembler.assemble(sequence, self.originals, self.updates, renumberer)
        return MergeResult(
            merged_document=merged,
            decision_log=log,
            diff_rows=diff_documents(self.original_document, merged),
            stats=stats,
            diff_summary=diff_summary(self.original_document, merged),
        )

    def _require_log(self) -> DecisionLog:
        if self.log is None:
            raise RuntimeError("Run analyze() before working with the decision log")
        return self.log


def merge_documents(
    original_document: str,
    updated_document: str,
    options: MergeOptions | None = None,
    resolutions: Mapping[int, str] | None = None,
) -> MergeResult:
    """One-shot convenience wrapper: analyze and merge two documents."""
    session = MergeSession(original_document, updated_document, options)
    session.analyze()
    return session.merge(resolutions)
