"""Side-by-side line and word diffs for auditing merged output."""
from __future__ import annotations

import re
from html import escape
from itertools import groupby
from typing import Hashable, List, Sequence, Tuple

from .models import DiffRow, DiffSegment

_WORD_TOKENS = re.compile(r"\w+|\s+|[^\w\s]")

Opcode = Tuple[str, int, int, int, int]

_LEFT_CHANGES = {"equal", "removed"}
_RIGHT_CHANGES = {"equal", "added"}

REMOVED_CLASS = "bg-rose-100 text-rose-900 line-through"
ADDED_CLASS = "bg-emerald-100 text-emerald-900 font-medium"
ROW_CLASSES = {
    "delete": ("bg-rose-50", ""),
    "insert": ("", "bg-emerald-50"),
    "replace": ("bg-rose-50", "bg-emerald-50"),
    "equal": ("", ""),
}


def tokenize_words(text: str) -> List[str]:
    """Split into word, whitespace and punctuation tokens."""
    return _WORD_TOKENS.findall(text)


def _edit_steps(left: Sequence[Hashable], right: Sequence[Hashable]) -> List[str]:
    """Walk a longest-common-subsequence table, removals before additions on ties."""
    rows, cols = len(left), len(right)
    # table[i][j] is the LCS length of left[i:] and right[j:]
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows - 1, -1, -1):
        row, below, item = table[i], table[i + 1], left[i]
        for j in range(cols - 1, -1, -1):
            row[j] = below[j + 1] + 1 if item == right[j] else max(below[j], row[j + 1])

    steps: List[str] = []
    i = j = 0
    while i < rows or j < cols:
        if i < rows and j < cols and left[i] == right[j]:
            steps.append("equal")
            i += 1
            j += 1
        elif i < rows and (j == cols or table[i + 1][j] >= table[i][j + 1]):
            steps.append("delete")
            i += 1
        else:
            steps.append("insert")
            j += 1
    return steps


def lcs_opcodes(left: Sequence[Hashable], right: Sequence[Hashable]) -> List[Opcode]:
    """Minimal alignment as ``(tag, i1, i2, j1, j2)`` opcodes.

    Tags are ``equal``, ``delete``, ``insert`` and ``replace`` (removals and
    additions with no common item between them). Common prefix and suffix are
    trimmed before the quadratic table is built.
    """
    total_left, total_right = len(left), len(right)
    prefix = 0
    while prefix < total_left and prefix < total_right and left[prefix] == right[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < total_left - prefix
        and suffix < total_right - prefix
        and left[total_left - 1 - suffix] == right[total_right - 1 - suffix]
    ):
        suffix += 1

    middle = _edit_steps(left[prefix : total_left - suffix], right[prefix : total_right - suffix])
    steps = ["equal"] * prefix + middle + ["equal"] * suffix

    opcodes: List[Opcode] = []
    i = j = 0
    for is_equal, run in groupby(steps, key=lambda step: step == "equal"):
        run = list(run)
        if is_equal:
            opcodes.append(("equal", i, i + len(run), j, j + len(run)))
            i += len(run)
            j += len(run)
            continue
        removed = run.count("delete")
        added = len(run) - removed
        tag = "replace" if removed and added else ("delete" if removed else "insert")
        opcodes.append((tag, i, i + removed, j, j + added))
        i += removed
        j += added
    return opcodes


def word_diff(left: str, right: str) -> List[DiffSegment]:
    left_tokens = tokenize_words(left)
    right_tokens = tokenize_words(right)
    segments: List[DiffSegment] = []
    for tag, i1, i2, j1, j2 in lcs_opcodes(left_tokens, right_tokens):
        if tag == "equal":
            segments.append(DiffSegment("".join(left_tokens[i1:i2]), "equal"))
            continue
        if i2 > i1:
            segments.append(DiffSegment("".join(left_tokens[i1:i2]), "removed"))
        if j2 > j1:
            segments.append(DiffSegment("".join(right_tokens[j1:j2]), "added"))
    return segments


def split_lines(segments: Sequence[DiffSegment], changes: set) -> List[List[DiffSegment]]:
    """Cut a segment stream into per-line segment lists, keeping one side's changes."""
    lines: List[List[DiffSegment]] = [[]]
    for segment in segments:
        if segment.change not in changes:
            continue
        for position, piece in enumerate(segment.text.split("\n")):
            if position:
                lines.append([])
            if not piece:
                continue
            current = lines[-1]
            if current and current[-1].change == segment.change:
                current[-1] = DiffSegment(current[-1].text + piece, segment.change)
            else:
                current.append(DiffSegment(piece, segment.change))
    return lines


def _block_lines(lines: Sequence[str], change: str) -> List[List[DiffSegment]]:
    return [[DiffSegment(line, change)] if line else [] for line in lines]


def diff_documents(original: str, merged: str) -> List[DiffRow]:
    """Line-level diff, refined to words for replaced line blocks."""
    left_lines = (original or "").splitlines()
    right_lines = (merged or "").splitlines()

    rows: List[DiffRow] = []
    left_number = right_number = 1
    for tag, i1, i2, j1, j2 in lcs_opcodes(left_lines, right_lines):
        if tag == "equal":
            left_side = _block_lines(left_lines[i1:i2], "equal")
            right_side = _block_lines(right_lines[j1:j2], "equal")
        elif tag == "replace":
            segments = word_diff("\n".join(left_lines[i1:i2]), "\n".join(right_lines[j1:j2]))
            left_side = split_lines(segments, _LEFT_CHANGES)
            right_side = split_lines(segments, _RIGHT_CHANGES)
        elif tag == "delete":
            left_side = _block_lines(left_lines[i1:i2], "removed")
            right_side = []
        else:
            left_side = []
            right_side = _block_lines(right_lines[j1:j2], "added")

        for r in range(max(len(left_side), len(right_side))):
            left = left_side[r] if r < len(left_side) else None
            right = right_side[r] if r < len(right_side) else None
            rows.append(
                DiffRow(
                    kind=tag,
                    left_number=left_number if left is not None else None,
                    right_number=right_number if right is not None else None,
                    left=left,
                    right=right,
                )
            )
            if left is not None:
                left_number += 1
            if right is not None:
                right_number += 1
    return rows


def change_counts(original: str, merged: str) -> Tuple[int, int]:
    """Characters (line breaks included) on added and removed lines."""
    left_lines = (original or "").splitlines()
    right_lines = (merged or "").splitlines()
    added = removed = 0
    for tag, i1, i2, j1, j2 in lcs_opcodes(left_lines, right_lines):
        if tag in ("replace", "delete"):
            removed += sum(len(line) + 1 for line in left_lines[i1:i2])
        if tag in ("replace", "insert"):
            added += sum(len(line) + 1 for line in right_lines[j1:j2])
    return added, removed


def diff_summary(original: str, merged: str) -> str:
    added, removed = change_counts(original, merged)
    return f"{added} added, {removed} removed"


def _render_side(segments: Sequence[DiffSegment] | None) -> str:
    if segments is None:
        return ""
    parts = []
    for segment in segments:
        text = escape(segment.text)
        if segment.change == "removed":
            parts.append(f'<span class="{REMOVED_CLASS}">{text}</span>')
        elif segment.change == "added":
            parts.append(f'<span class="{ADDED_CLASS}">{text}</span>')
        else:
            parts.append(text)
    return "".join(parts)


def render_html(rows: Sequence[DiffRow]) -> str:
    """Render diff rows as a four-column HTML table (number, original, number, merged)."""
    body = []
    for row in rows:
        left_class, right_class = ROW_CLASSES.get(row.kind, ("", ""))
        left_number = "" if row.left_number is None else str(row.left_number)
        right_number = "" if row.right_number is None else str(row.right_number)
        body.append(
            "<tr class=\"border-b border-gray-100\">"
            f"<td class=\"w-10 text-right text-xs text-gray-400 p-1 {left_class}\">{left_number}</td>"
            f"<td class=\"p-1 font-mono text-xs whitespace-pre-wrap {left_class}\">{_render_side(row.left)}</td>"
            f"<td class=\"w-10 text-right text-xs text-gray-400 p-1 {right_class}\">{right_number}</td>"
            f"<td class=\"p-1 font-mono text-xs whitespace-pre-wrap {right_class}\">{_render_side(row.right)}</td>"
            "</tr>"
        )
    return "<table class=\"w-full table-fixed border-collapse\"><tbody>" + "".join(body) + "</tbody></table>"
