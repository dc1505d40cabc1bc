"""Command line interface for merging reference lists."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from .app import MergeSession
from .diffing import render_html
from .errors import EmptyInput, MergeFailure, UnresolvedConflict
from .models import Decision, MergeStats
from .options import MergeOptions
from .report import decision_log_frame, render_conflicts, render_report


def _serialize_decision(decision: Decision) -> Dict[str, Any]:
    return {
        "label": decision.display_label,
        "id": decision.record_id,
        "status": decision.status.value,
        "original_ref": decision.original_ref,
        "updated_ref": decision.updated_ref,
        "match_kind": decision.match_kind.value,
        "match_score": decision.match_score,
        "selected": decision.selected,
        "preview": decision.preview,
    }


def _serialize_stats(stats: MergeStats) -> Dict[str, int]:
    return {
        "total": stats.total,
        "updated": stats.updated,
        "unchanged": stats.unchanged,
        "skipped": stats.skipped,
        "added": stats.added,
    }


def _parse_resolutions(values: List[str] | None) -> Dict[int, str]:
    resolutions: Dict[int, str] = {}
    for value in values or []:
        index, _, choice = value.partition("=")
        if not index.strip().isdigit() or choice.strip() not in {"update", "ignore"}:
            raise argparse.ArgumentTypeError(f"Invalid --resolve value {value!r}; use INDEX=update|ignore")
        resolutions[int(index)] = choice.strip()
    return resolutions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge corrected references into an original reference list")
    parser.add_argument("original", type=Path, help="Original XML document")
    parser.add_argument("updated", type=Path, help="Updated/corrected XML document")
    parser.add_argument("--fuzzy", action="store_true", help="Match by content fingerprint as well as label")
    parser.add_argument(
        "--include-unmatched",
        action="store_true",
        help="Add updated references that match nothing instead of skipping them",
    )
    parser.add_argument("--no-preserve-ids", action="store_true", help="Keep the updated records' own ids")
    parser.add_argument(
        "--no-renumber-internal",
        action="store_true",
        help="Leave ids inside updated records untouched",
    )
    parser.add_argument("--no-auto-sort", action="store_true", help="Keep decision-log order instead of sorting additions")
    parser.add_argument("--ampersand", action="store_true", help="Write 'and' as &amp; inside labels")
    parser.add_argument(
        "--resolve",
        action="append",
        metavar="INDEX=CHOICE",
        help="Choice for an ambiguous original reference (update or ignore); can be repeated",
    )
    parser.add_argument("--analyze-only", action="store_true", help="Print the scan log without merging")
    parser.add_argument("--output", type=Path, help="Write the merged XML to this file instead of stdout")
    parser.add_argument("--json-output", type=Path, help="Write the decision log and counts as JSON")
    parser.add_argument("--log-csv", type=Path, help="Write the decision log as CSV")
    parser.add_argument("--diff-html", type=Path, help="Write the side-by-side diff as an HTML table")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    try:
        resolutions = _parse_resolutions(args.resolve)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    options = MergeOptions(
        preserve_ids=not args.no_preserve_ids,
        renumber_internal=not args.no_renumber_internal,
        include_unmatched_updates=args.include_unmatched,
        fuzzy_matching=args.fuzzy,
        auto_sort=not args.no_auto_sort,
        ampersand_normalization=args.ampersand,
    )
    session = MergeSession(args.original.read_text(), args.updated.read_text(), options)

    try:
        session.analyze()
        result = None if args.analyze_only else session.merge(resolutions)
    except UnresolvedConflict as exc:
        print(render_conflicts(exc.groups))
        print(f"Pending choices for: {', '.join(str(idx) for idx in exc.pending)}", file=sys.stderr)
        return 2
    except (EmptyInput, MergeFailure) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(session.report())

    if result is not None:
        if args.output:
            args.output.write_text(result.merged_document)
        else:
            print(result.merged_document)
        if args.diff_html:
            args.diff_html.write_text(render_html(result.diff_rows))

    if args.json_output:
        stats = result.stats if result is not None else session.stats()
        payload = {
            "decisions": [_serialize_decision(d) for d in session.display_order()],
            "stats": _serialize_stats(stats),
            "mode": session.mode.value,
        }
        args.json_output.write_text(json.dumps(payload, indent=2))

    if args.log_csv:
        decision_log_frame(session.display_order()).to_csv(args.log_csv, index=False)

    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
