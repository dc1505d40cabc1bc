"""Data models for reference merge workflows."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple


class DecisionStatus(str, Enum):
    UPDATE = "update"
    SMART_MATCH = "smart_match"
    UNCHANGED = "unchanged"
    ORPHAN = "orphan"
    ADD = "add"


class MatchKind(str, Enum):
    NONE = "none"
    LABEL = "label"
    CONTENT = "content"


@dataclass
class Record:
    """One reference block extracted from a document."""

    raw_text: str
    content: str = ""
    record_id: str = ""
    label: str = ""
    is_synthetic_label: bool = False
    author: str = ""
    year: str = ""
    title: str = ""
    body_text: str = ""
    fingerprint: str = ""
    sort_key: str = ""


@dataclass
class Decision:
    """Outcome of matching for one original record or one unmatched update."""

    status: DecisionStatus
    original_ref: Optional[int] = None
    updated_ref: Optional[int] = None
    match_kind: MatchKind = MatchKind.NONE
    match_score: Optional[int] = None
    selected: bool = True
    display_label: str = ""
    sort_key: str = ""
    record_id: str = ""
    preview: str = ""

    @property
    def is_backbone(self) -> bool:
        return self.original_ref is not None

    @property
    def is_match(self) -> bool:
        return self.status in (DecisionStatus.UPDATE, DecisionStatus.SMART_MATCH)

    @property
    def identity(self) -> Tuple[str, int]:
        """Stable key: the original record for backbone entries, else the updated one."""
        if self.original_ref is not None:
            return ("original", self.original_ref)
        return ("updated", self.updated_ref if self.updated_ref is not None else -1)

    def method_label(self) -> str:
        if self.match_kind == MatchKind.LABEL:
            return "Strict"
        if self.match_kind == MatchKind.CONTENT:
            return f"Smart ({self.match_score}%)"
        return ""


class DecisionLog:
    """Ordered decisions: original records first, then unmatched updates."""

    def __init__(self, entries: Sequence[Decision] = ()):
        self._entries: List[Decision] = list(entries)

    def __iter__(self) -> Iterator[Decision]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> Decision:
        return self._entries[index]

    @property
    def entries(self) -> List[Decision]:
        return list(self._entries)

    def index_of(self, decision: Decision) -> int:
        for idx, entry in enumerate(self._entries):
            if entry is decision:
                return idx
        raise ValueError("decision is not part of this log")

    def matched_updates(self) -> List[int]:
        return [d.updated_ref for d in self._entries if d.is_match and d.updated_ref is not None]

    def reordered(self, entries: Sequence[Decision]) -> "DecisionLog":
        """Return a log holding the same decisions in a new order."""
        if len(entries) != len(self._entries) or {id(d) for d in entries} != {
            id(d) for d in self._entries
        }:
            raise ValueError("reordering must keep exactly the same decisions")
        return DecisionLog(entries)


@dataclass
class MergeStats:
    total: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    added: int = 0


@dataclass
class ConflictCandidate:
    index: int
    record_id: str
    preview: str
    score: int = 100


@dataclass
class ConflictGroup:
    """Original records sharing a label that one updated record targets."""

    label: str
    updated_ref: int
    candidates: List[ConflictCandidate] = field(default_factory=list)

    @property
    def candidate_indices(self) -> List[int]:
        return [c.index for c in self.candidates]


@dataclass
class DiffSegment:
    text: str
    change: str = "equal"  # "equal", "removed" or "added"


@dataclass
class DiffRow:
    """One side-by-side row; a side is None when that document has no line here."""

    kind: str
    left_number: Optional[int]
    right_number: Optional[int]
    left: Optional[List[DiffSegment]]
    right: Optional[List[DiffSegment]]

    @property
    def left_text(self) -> Optional[str]:
        return None if self.left is None else "".join(s.text for s in self.left)

    @property
    def right_text(self) -> Optional[str]:
        return None if self.right is None else "".join(s.text for s in self.right)


@dataclass
class MergeResult:
    merged_document: str
    decision_log: DecisionLog
    diff_rows: List[DiffRow]
    stats: MergeStats
    diff_summary: str = ""

    @property
    def message(self) -> str:
        return f"Merged {self.stats.updated} and added {self.stats.added} references."
