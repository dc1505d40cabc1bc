from reference_merger.diffing import change_counts, diff_documents, diff_summary, lcs_opcodes, render_html, word_diff


def test_identical_documents_produce_equal_rows():
    rows = diff_documents("a\nb", "a\nb")

    assert [row.kind for row in rows] == ["equal", "equal"]
    assert [(row.left_number, row.right_number) for row in rows] == [(1, 1), (2, 2)]
    assert diff_summary("a\nb", "a\nb") == "0 added, 0 removed"


def test_word_diff_marks_changed_words():
    segments = word_diff("the old title", "the new title")

    assert [(s.text, s.change) for s in segments] == [
        ("the ", "equal"),
        ("old", "removed"),
        ("new", "added"),
        (" title", "equal"),
    ]


def test_replaced_line_is_refined_per_side():
    rows = diff_documents("keep\nthe old title", "keep\nthe new title")

    changed = rows[1]
    assert changed.kind == "replace"
    assert changed.left_text == "the old title"
    assert changed.right_text == "the new title"
    assert ("old", "removed") in [(s.text, s.change) for s in changed.left]
    assert ("new", "added") in [(s.text, s.change) for s in changed.right]
    assert all(s.change != "added" for s in changed.left)


def test_inserted_lines_have_no_left_side():
    rows = diff_documents("a\nc", "a\nb\nc")

    inserted = [row for row in rows if row.kind == "insert"]
    assert len(inserted) == 1
    assert inserted[0].left is None
    assert inserted[0].left_number is None
    assert inserted[0].right_number == 2
    assert rows[-1].left_number == 2
    assert rows[-1].right_number == 3


def test_change_counts_include_line_breaks():
    assert change_counts("a\nb", "a\nc") == (2, 2)
    assert change_counts("a", "a\nnew") == (4, 0)
    assert diff_summary("a", "a\nnew") == "4 added, 0 removed"


def test_render_html_escapes_markup():
    html = render_html(diff_documents("<ce:label>1</ce:label>", "<ce:label>2</ce:label>"))

    assert "&lt;ce:label&gt;" in html
    assert "<ce:label>" not in html
    assert "line-through" in html


def test_line_alignment_keeps_longest_common_subsequence():
    rows = diff_documents("a\nb\nb\nc\na\nb\na", "b\nb\na\nb")

    equal = [row for row in rows if row.kind == "equal"]
    assert [row.left_text for row in equal] == ["b", "b", "a", "b"]
    assert [row.right_number for row in equal] == [1, 2, 3, 4]
    assert change_counts("a\nb\nb\nc\na\nb\na", "b\nb\na\nb") == (0, 6)


def test_opcodes_cover_both_sequences():
    left, right = list("xabcabba"), list("cbabac")

    opcodes = lcs_opcodes(left, right)

    assert opcodes[0][1] == 0 and opcodes[0][3] == 0
    assert opcodes[-1][2] == len(left) and opcodes[-1][4] == len(right)
    assert sum(i2 - i1 for tag, i1, i2, _, _ in opcodes if tag == "equal") == 4
