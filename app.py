from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from reference_merger.app import MergeSession  # noqa: E402
from reference_merger.diffing import render_html  # noqa: E402
from reference_merger.errors import EmptyInput, MergeFailure, UnresolvedConflict  # noqa: E402
from reference_merger.options import MergeOptions  # noqa: E402
from reference_merger.report import decision_log_frame  # noqa: E402
from reference_merger.sequencer import OrderingMode  # noqa: E402


SESSION_KEY = "merge_session"
CHOICES_KEY = "merge_choices"

TOGGLE_HELP = {
    "fuzzy_matching": "Match references by author/year/title fingerprint when labels differ.",
    "include_unmatched_updates": "Select updated references that match nothing so they are added.",
    "preserve_ids": "Keep the original record id on updated references.",
    "renumber_internal": "Give nested elements fresh ids so they do not collide.",
    "ampersand_normalization": "Write 'and' as &amp; inside labels.",
}


def _options_from_sidebar() -> MergeOptions:
    st.sidebar.header("Merge options")
    return MergeOptions(
        fuzzy_matching=st.sidebar.toggle(
            "Numbered style (smart fingerprinting)", value=False, help=TOGGLE_HELP["fuzzy_matching"]
        ),
        include_unmatched_updates=st.sidebar.toggle(
            "Add new orphans", value=False, help=TOGGLE_HELP["include_unmatched_updates"]
        ),
        preserve_ids=st.sidebar.toggle("Preserve IDs", value=True, help=TOGGLE_HELP["preserve_ids"]),
        renumber_internal=st.sidebar.toggle(
            "Renumber internal IDs", value=True, help=TOGGLE_HELP["renumber_internal"]
        ),
        ampersand_normalization=st.sidebar.toggle(
            "Use &amp; in labels", value=False, help=TOGGLE_HELP["ampersand_normalization"]
        ),
    )


def _current_session() -> Optional[MergeSession]:
    return st.session_state.get(SESSION_KEY)


def _start_session(original: str, updated: str, options: MergeOptions) -> None:
    session = MergeSession(original, updated, options)
    try:
        session.analyze()
    except EmptyInput as exc:
        st.warning(str(exc))
        st.session_state.pop(SESSION_KEY, None)
        return
    st.session_state[SESSION_KEY] = session
    st.session_state[CHOICES_KEY] = {}


def _render_scan_log(session: MergeSession) -> None:
    stats = session.stats()
    cols = st.columns(4)
    cols[0].metric("Updated", stats.updated)
    cols[1].metric("Unchanged", stats.unchanged)
    cols[2].metric("Added", stats.added)
    cols[3].metric("Skipped", stats.skipped)

    auto_sort = st.toggle("Auto-sort additions", value=session.mode == OrderingMode.AUTO)
    if auto_sort != (session.mode == OrderingMode.AUTO):
        session.set_auto_sort(auto_sort)
        st.rerun()

    shown = session.display_order()
    frame = decision_log_frame(shown)
    edited = st.data_editor(
        frame,
        use_container_width=True,
        hide_index=False,
        disabled=[column for column in frame.columns if column != "Selected"],
        key=f"scan_log_{id(session.log)}_{session.mode.value}",
    )
    for position, decision in enumerate(shown):
        selected = bool(edited.iloc[position]["Selected"])
        if selected != decision.selected:
            session.toggle(session.log.index_of(decision), selected)

    if len(shown) > 1:
        with st.expander("Reorder entries"):
            move_cols = st.columns([2, 2, 1])
            source = move_cols[0].number_input("Move row", min_value=0, max_value=len(shown) - 1, step=1)
            target = move_cols[1].number_input("To position", min_value=0, max_value=len(shown) - 1, step=1)
            if move_cols[2].button("Move"):
                session.drag(int(source), int(target))
                st.rerun()


def _render_conflicts(session: MergeSession) -> Dict[int, str]:
    choices: Dict[int, str] = dict(st.session_state.get(CHOICES_KEY, {}))
    st.subheader("Resolve Ambiguous Matches")
    st.caption("Found multiple original references sharing the same label. Choose which one to update.")
    for group in session.pending_conflicts:
        st.markdown(f"**Target update: {group.label}**")
        for candidate in group.candidates:
            current = choices.get(candidate.index)
            picked = st.radio(
                f"ID: {candidate.record_id or 'N/A'} | Match: {candidate.score}% | {candidate.preview}",
                options=["update", "ignore"],
                index=None if current is None else ["update", "ignore"].index(current),
                horizontal=True,
                key=f"choice_{candidate.index}",
            )
            if picked:
                choices[candidate.index] = picked
    st.session_state[CHOICES_KEY] = choices
    return choices


def _merge(session: MergeSession, choices: Optional[Dict[int, str]] = None) -> None:
    try:
        result = session.merge(choices)
    except UnresolvedConflict:
        st.info("Some labels match several original references. Pick one below.")
        return
    except (EmptyInput, MergeFailure) as exc:
        st.error(str(exc))
        return
    st.success(result.message)


def main() -> None:
    st.set_page_config(page_title="Reference Merger", layout="wide")
    st.title("Reference Merger")
    st.caption("Smart-merge corrections into existing lists using exact labels or fuzzy content fingerprinting.")

    options = _options_from_sidebar()

    left, right = st.columns(2)
    original = left.text_area("Original XML source", placeholder="Paste full article reference list...", height=260)
    updated = right.text_area("Updated corrections", placeholder="Paste corrections or new items...", height=260)

    if st.button("Analyze"):
        _start_session(original, updated, options)

    session = _current_session()
    if session is None:
        return

    if session.options != options or session.original_document != original or session.updated_document != updated:
        st.info("Inputs or options changed since the last analysis. Click Analyze to refresh.")

    scan_tab, merged_tab, diff_tab = st.tabs(["Scan Log", "Merged XML", "Diff View"])

    with scan_tab:
        _render_scan_log(session)
        if st.button("Merge Updates", type="primary"):
            _merge(session)
        if session.pending_conflicts:
            choices = _render_conflicts(session)
            action_cols = st.columns(2)
            if action_cols[0].button("Apply Choices & Merge"):
                _merge(session, choices)
                st.rerun()
            if action_cols[1].button("Cancel"):
                session.cancel_resolution()
                st.rerun()

    result = session.last_result
    with merged_tab:
        if result is None:
            st.info("Merge to see the combined XML.")
        else:
            st.code(result.merged_document, language="xml")
            st.download_button(
                "Download merged XML",
                data=result.merged_document,
                file_name="merged-references.xml",
                mime="application/xml",
            )
            st.download_button(
                "Download scan log (CSV)",
                data=decision_log_frame(session.display_order()).to_csv(index=False),
                file_name="scan-log.csv",
                mime="text/csv",
            )

    with diff_tab:
        if result is None:
            st.info("Merge to compare the original and merged documents.")
        else:
            st.caption(result.diff_summary)
            st.markdown(render_html(result.diff_rows), unsafe_allow_html=True)
            changed = pd.DataFrame(
                [
                    {"Original": row.left_text or "", "Merged": row.right_text or ""}
                    for row in result.diff_rows
                    if row.kind != "equal"
                ]
            )
            if not changed.empty:
                st.dataframe(changed, use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
