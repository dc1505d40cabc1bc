from reference_merger.app import MergeSession
from reference_merger.options import MergeOptions
from reference_merger.report import LOG_COLUMNS, decision_log_frame, render_conflicts


def test_decision_log_frame_has_one_row_per_decision(original_document, updated_document):
    session = MergeSession(original_document, updated_document)
    session.analyze()

    frame = decision_log_frame(session.display_order())

    assert list(frame.columns) == LOG_COLUMNS
    assert len(frame) == 4
    assert frame["Ref"].tolist() == ["[1]", "[2]", "[3]", "[4]"]
    assert frame["Method"].tolist() == ["", "Strict", "", ""]
    assert frame["Status"].tolist() == ["unchanged", "update", "unchanged", "orphan"]
    assert frame["Selected"].tolist() == [True, True, True, False]
    assert frame["ID"].tolist()[-1] == "N/A"


def test_empty_frame_keeps_columns():
    frame = decision_log_frame([])

    assert frame.empty
    assert list(frame.columns) == LOG_COLUMNS


def test_render_conflicts_lists_candidates(ambiguous_document, ambiguous_update):
    session = MergeSession(ambiguous_document, ambiguous_update)

    text = render_conflicts(session.conflicts())

    assert text.splitlines()[0] == "Resolve Ambiguous Matches"
    assert "Target update: A" in text
    assert "#0 ID: bb3000 | Match: 100%" in text
    assert "#1 ID: bb3005 | Match: 100%" in text


def test_options_from_mapping_reads_form_values():
    options = MergeOptions.from_mapping(
        {"fuzzy_matching": "on", "preserve_ids": "false", "auto_sort": 0, "unknown": "1"}
    )

    assert options.fuzzy_matching
    assert not options.preserve_ids
    assert not options.auto_sort
    assert options.renumber_internal
