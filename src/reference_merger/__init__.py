"""Reference list matching and merge toolkit."""

from .app import MergeSession, merge_documents
from .errors import EmptyInput, MergeFailure, ReferenceMergeError, UnresolvedConflict
from .models import Decision, DecisionLog, DecisionStatus, MatchKind, MergeResult, MergeStats, Record
from .options import MergeOptions
from .reference_parser import DEFAULT_PATTERN, RecordExtractor, RecordPattern, extract_records
from .sequencer import OrderingEvent, OrderingMode

__all__ = [
    "MergeSession",
    "merge_documents",
    "MergeOptions",
    "Record",
    "Decision",
    "DecisionLog",
    "DecisionStatus",
    "MatchKind",
    "MergeResult",
    "MergeStats",
    "RecordPattern",
    "RecordExtractor",
    "DEFAULT_PATTERN",
    "extract_records",
    "OrderingMode",
    "OrderingEvent",
    "ReferenceMergeError",
    "EmptyInput",
    "UnresolvedConflict",
    "MergeFailure",
]
