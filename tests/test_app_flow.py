import pytest

from reference_merger.app import MergeSession, merge_documents
from reference_merger.errors import EmptyInput, MergeFailure
from reference_merger.formatter import LabelFormatter
from reference_merger.options import MergeOptions
from reference_merger.sequencer import OrderingMode


def test_merge_replaces_matched_record_and_keeps_original_id(
    original_document, updated_document, original_records, corrected_second
):
    result = merge_documents(original_document, updated_document)

    expected = corrected_second.replace('id="bb9000"', 'id="bb3005"')
    assert result.merged_document == "\n".join([original_records[0], expected, original_records[2]])
    assert result.stats.total == 3
    assert result.stats.updated == 1
    assert result.stats.unchanged == 2
    assert result.stats.added == 0
    assert result.stats.skipped == 1
    assert result.message == "Merged 1 and added 0 references."


def test_additions_get_fresh_ids_and_sorted_position(original_document, updated_document, new_fourth):
    options = MergeOptions(include_unmatched_updates=True)
    session = MergeSession(original_document, updated_document.replace("[4]", "[2a]"), options)
    session.analyze()

    result = session.merge()

    merged = result.merged_document.split("\n")
    assert len(merged) == 4
    assert merged[2] == new_fourth.replace("[4]", "[2a]").replace(
        "<ce:bib-reference>", '<ce:bib-reference id="bb3015">'
    )
    assert result.stats.added == 1
    assert result.stats.skipped == 0
    assert result.message == "Merged 1 and added 1 references."


def test_without_preserve_ids_updated_record_keeps_its_own_id(original_document, updated_document):
    result = merge_documents(original_document, updated_document, MergeOptions(preserve_ids=False))

    assert 'id="bb9000"' in result.merged_document
    assert 'id="bb3005"' not in result.merged_document


def test_internal_ids_renumbered_only_when_enabled(reference):
    original = reference("[1]", "bb3000", "Smith", "2019", "Title", inner_id="rf3000")
    updated = reference("[1]", "bb1", "Smith", "2019", "Title fixed", inner_id="rf1")

    renumbered = merge_documents(original, updated).merged_document
    untouched = merge_documents(original, updated, MergeOptions(renumber_internal=False)).merged_document

    assert '<sb:reference id="rf3005">' in renumbered
    assert '<sb:reference id="rf1">' in untouched
    assert '<ce:bib-reference id="bb3000">' in renumbered


def test_legacy_original_id_is_replaced(reference):
    original = "\n".join(
        [
            reference("[1]", "bb3000", "Smith", "2019", "Title"),
            reference("[2]", "bib7", "Lee", "2020", "Other"),
        ]
    )
    updated = reference("[2]", None, "Lee", "2020", "Other, corrected")

    merged = merge_documents(original, updated).merged_document

    assert '<ce:bib-reference id="bb3005">' in merged
    assert "bib7" not in merged


def test_round_trip_reproduces_document(original_document):
    options = MergeOptions(fuzzy_matching=True, preserve_ids=True)

    result = merge_documents(original_document, original_document, options)

    assert result.merged_document == original_document
    assert result.diff_summary == "0 added, 0 removed"
    assert all(row.kind == "equal" for row in result.diff_rows)


def test_round_trip_with_internal_ids_when_renumbering_is_off(reference):
    document = "\n".join(
        [
            reference("[1]", "bb3000", "Smith", "2019", "Title", inner_id="rf3000"),
            reference("[2]", "bb3005", "Lee", "2020", "Other", inner_id="rf3005"),
        ]
    )
    options = MergeOptions(fuzzy_matching=True, renumber_internal=False)

    assert merge_documents(document, document, options).merged_document == document


def test_merge_is_deterministic(original_document, updated_document):
    options = MergeOptions(include_unmatched_updates=True, fuzzy_matching=True)

    first = merge_documents(original_document, updated_document, options)
    second = merge_documents(original_document, updated_document, options)

    assert first.merged_document == second.merged_document
    assert first.diff_rows == second.diff_rows
    assert [d.status for d in first.decision_log] == [d.status for d in second.decision_log]


def test_ampersand_normalization_is_idempotent(reference):
    formatter = LabelFormatter(MergeOptions(ampersand_normalization=True))
    once = formatter.format("Smith and Jones, 2019")

    assert once == "Smith &amp; Jones, 2019"
    assert formatter.format(once) == once

    original = reference("Smith and Jones, 2019", "bb3000", "Smith", "2019", "Title")
    merged = merge_documents(
        original, original, MergeOptions(ampersand_normalization=True, renumber_internal=False)
    ).merged_document
    assert "<ce:label>Smith &amp; Jones, 2019</ce:label>" in merged


def test_deselected_match_keeps_original_text(original_document, updated_document, original_records):
    session = MergeSession(original_document, updated_document)
    session.analyze()
    session.toggle(1)

    result = session.merge()

    assert result.merged_document == "\n".join(original_records)
    assert result.stats.updated == 0
    assert result.stats.unchanged == 3


def test_manual_order_drives_output(original_document, updated_document, original_records):
    session = MergeSession(original_document, updated_document, MergeOptions(include_unmatched_updates=True))
    session.analyze()

    session.drag(3, 0)
    assert session.mode == OrderingMode.MANUAL

    merged = session.merge().merged_document.split("\n")
    assert "[4]" in merged[0]
    assert merged[1] == original_records[0]


def test_disabling_auto_sort_keeps_shown_order(reference):
    original = "\n".join([reference("[1]", "bb1", "A", "2001", "X"), reference("[3]", "bb2", "B", "2002", "Y")])
    updated = reference("[2]", None, "C", "2003", "Z")
    session = MergeSession(original, updated, MergeOptions(include_unmatched_updates=True))
    session.analyze()
    shown = [d.display_label for d in session.display_order()]

    assert session.set_auto_sort(False) == OrderingMode.MANUAL
    assert [d.display_label for d in session.display_order()] == shown == ["[1]", "[2]", "[3]"]
    assert session.set_auto_sort(True) == OrderingMode.AUTO


def test_blank_input_raises_empty_input():
    with pytest.raises(EmptyInput):
        MergeSession("   ", "<ce:bib-reference/>").analyze()


def test_failed_merge_keeps_previous_result(original_document, updated_document, monkeypatch):
    session = MergeSession(original_document, updated_document)
    first = session.merge()

    def _boom(*args, **kwargs):
        raise RuntimeError("assembly exploded")

    monkeypatch.setattr(session.assembler, "assemble", _boom)

    with pytest.raises(MergeFailure) as excinfo:
        session.merge()

    assert str(excinfo.value) == "Merge failed."
    assert session.last_result is first


def test_reanalyze_replaces_log(original_document, updated_document):
    session = MergeSession(original_document, updated_document)
    session.analyze()
    session.toggle(1)
    session.drag(0, 1)

    session.analyze()

    assert session.mode == OrderingMode.AUTO
    assert all(d.selected for d in session.log if d.is_backbone)
    assert session.stats().updated == 1


def test_report_lists_scan_log(original_document, updated_document):
    session = MergeSession(original_document, updated_document)
    session.merge()

    report = session.report()

    assert report.startswith("Reference Merge Report")
    assert "Updated: 1" in report
    assert "[UPDATE] [2] (Strict)" in report
    assert "[ORPHAN] [4] [deselected]" in report
    assert "Merged 1 and added 0 references." in report


def test_reenabling_auto_sort_drops_manual_backbone_moves(reference):
    original = "\n".join(
        [
            reference("[1]", "bb1", "A", "2001", "X"),
            reference("[3]", "bb2", "B", "2002", "Y"),
            reference("[5]", "bb3", "C", "2003", "Z"),
        ]
    )
    updated = reference("[4]", None, "D", "2004", "W")
    session = MergeSession(original, updated, MergeOptions(include_unmatched_updates=True))
    session.analyze()

    session.drag(0, 2)
    assert [d.display_label for d in session.display_order()] == ["[3]", "[4]", "[1]", "[5]"]

    session.set_auto_sort(True)

    shown = session.display_order()
    assert [d.original_ref for d in shown if d.is_backbone] == [0, 1, 2]
    assert [d.display_label for d in shown] == ["[1]", "[3]", "[4]", "[5]"]
