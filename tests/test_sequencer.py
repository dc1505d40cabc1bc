import pytest

from reference_merger.models import Decision, DecisionLog, DecisionStatus
from reference_merger.sequencer import OrderingEvent, OrderingMode, Sequencer, initial_mode, next_mode


def _backbone(index, label):
    return Decision(status=DecisionStatus.UNCHANGED, original_ref=index, display_label=label, sort_key=label)


def _addition(index, label, selected=True):
    return Decision(
        status=DecisionStatus.ADD if selected else DecisionStatus.ORPHAN,
        updated_ref=index,
        selected=selected,
        display_label=label,
        sort_key=label,
    )


@pytest.fixture()
def log():
    return DecisionLog(
        [
            _backbone(0, "[1]"),
            _backbone(1, "[3]"),
            _backbone(2, "[5]"),
            _addition(0, "[10]"),
            _addition(1, "[4]"),
            _addition(2, "[2]", selected=False),
        ]
    )


def _labels(decisions):
    return [d.display_label for d in decisions]


def test_auto_mode_interleaves_additions(log):
    ordered = Sequencer().order(log, OrderingMode.AUTO)

    assert _labels(ordered) == ["[1]", "[2]", "[3]", "[4]", "[5]", "[10]"]


def test_projection_drops_deselected_additions_only(log):
    log[1].selected = False

    projected = Sequencer().project(log, OrderingMode.AUTO)

    assert _labels(projected) == ["[1]", "[3]", "[4]", "[5]", "[10]"]


def test_backbone_keeps_document_order():
    log = DecisionLog([_backbone(0, "[3]"), _backbone(1, "[1]"), _addition(0, "[2]")])

    ordered = Sequencer().order(log, OrderingMode.AUTO)

    assert _labels(ordered) == ["[2]", "[3]", "[1]"]


def test_manual_mode_uses_log_order(log):
    assert _labels(Sequencer().order(log, OrderingMode.MANUAL)) == ["[1]", "[3]", "[5]", "[10]", "[4]", "[2]"]


def test_drag_moves_shown_entry_and_switches_to_manual(log):
    reordered, mode = Sequencer().drag(log, OrderingMode.AUTO, 5, 0)

    assert mode == OrderingMode.MANUAL
    assert _labels(reordered) == ["[10]", "[1]", "[2]", "[3]", "[4]", "[5]"]
    # the original log is left untouched
    assert _labels(log) == ["[1]", "[3]", "[5]", "[10]", "[4]", "[2]"]


def test_drag_rejects_out_of_range_positions(log):
    with pytest.raises(IndexError):
        Sequencer().drag(log, OrderingMode.MANUAL, 6, 0)
    with pytest.raises(IndexError):
        Sequencer().drag(log, OrderingMode.MANUAL, 0, -1)


def test_only_explicit_toggle_returns_to_auto():
    assert next_mode(OrderingMode.AUTO, OrderingEvent.DRAG) == OrderingMode.MANUAL
    assert next_mode(OrderingMode.MANUAL, OrderingEvent.DRAG) == OrderingMode.MANUAL
    assert next_mode(OrderingMode.MANUAL, OrderingEvent.DISABLE_AUTO_SORT) == OrderingMode.MANUAL
    assert next_mode(OrderingMode.MANUAL, OrderingEvent.ENABLE_AUTO_SORT) == OrderingMode.AUTO
    assert initial_mode(True) == OrderingMode.AUTO
    assert initial_mode(False) == OrderingMode.MANUAL


def test_reordered_requires_same_entries(log):
    with pytest.raises(ValueError):
        log.reordered(log.entries[:-1])


def test_auto_order_restores_original_backbone_order(log):
    reordered, mode = Sequencer().drag(log, OrderingMode.MANUAL, 0, 2)
    assert mode == OrderingMode.MANUAL

    ordered = Sequencer().order(reordered, next_mode(mode, OrderingEvent.ENABLE_AUTO_SORT))

    assert [d.original_ref for d in ordered if d.is_backbone] == [0, 1, 2]
    assert _labels(ordered) == ["[1]", "[2]", "[3]", "[4]", "[5]", "[10]"]
