"""Merge reporting utilities."""
from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd

from .models import ConflictGroup, Decision, MergeStats

LOG_COLUMNS = ["Ref", "ID", "Method", "Status", "Selected", "Preview"]


def status_label(decision: Decision) -> str:
    return decision.status.value.replace("_", " ")


def decision_log_frame(decisions: Iterable[Decision]) -> pd.DataFrame:
    """Tabular scan log, one row per decision in the given order."""
    rows = [
        {
            "Ref": decision.display_label,
            "ID": decision.record_id,
            "Method": decision.method_label(),
            "Status": status_label(decision),
            "Selected": decision.selected,
            "Preview": decision.preview,
        }
        for decision in decisions
    ]
    return pd.DataFrame(rows, columns=LOG_COLUMNS)


def render_conflicts(groups: Iterable[ConflictGroup]) -> str:
    lines = ["Resolve Ambiguous Matches"]
    for group in groups:
        lines.append(f"Target update: {group.label}")
        for candidate in group.candidates:
            lines.append(
                f"  #{candidate.index} ID: {candidate.record_id or 'N/A'} | Match: {candidate.score}% | {candidate.preview}"
            )
    return "\n".join(lines)


def render_report(
    decisions: Iterable[Decision],
    stats: MergeStats,
    message: Optional[str] = None,
    diff_summary: Optional[str] = None,
) -> str:
    """Return a human-readable report of the scan log and counts."""

    lines: List[str] = ["Reference Merge Report"]
    lines.append(f"Original references: {stats.total}")
    lines.append(f"Updated: {stats.updated}")
    lines.append(f"Unchanged: {stats.unchanged}")
    lines.append(f"Added: {stats.added}")
    lines.append(f"Skipped: {stats.skipped}")
    if diff_summary:
        lines.append(f"Changes: {diff_summary}")
    if message:
        lines.append(message)

    entries = list(decisions)
    if not entries:
        return "\n".join(lines)

    lines.append("Scan log:")
    for decision in entries:
        line = f"[{status_label(decision).upper()}] {decision.display_label}"
        method = decision.method_label()
        if method:
            line += f" ({method})"
        if not decision.selected:
            line += " [deselected]"
        if decision.preview:
            line += f" -> {decision.preview}"
        lines.append(line)
    return "\n".join(lines)
