"""Errors surfaced by the merge pipeline."""
from __future__ import annotations

from typing import List, Sequence

from .models import ConflictGroup


class ReferenceMergeError(Exception):
    """Base class for user-facing merge errors."""


class EmptyInput(ReferenceMergeError):
    """Raised when a document is blank or yields no records."""

    def __init__(self, message: str, which: str = "both"):
        super().__init__(message)
        self.which = which


class UnresolvedConflict(ReferenceMergeError):
    """Raised when label collisions need an explicit choice before merging."""

    def __init__(self, groups: Sequence[ConflictGroup], pending: Sequence[int]):
        labels = ", ".join(group.label for group in groups)
        super().__init__(f"Resolve ambiguous matches before merging: {labels}")
        self.groups: List[ConflictGroup] = list(groups)
        self.pending: List[int] = sorted(pending)


class MergeFailure(ReferenceMergeError):
    """Raised when assembling the merged output fails unexpectedly."""

    def __init__(self, message: str = "Merge failed."):
        super().__init__(message)
