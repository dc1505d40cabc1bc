import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))

import pytest


def make_reference(label, ref_id, surname, year, title, inner_id=None):
    """Build one bibliography record in the markup the extractor expects."""

    id_attr = f' id="{ref_id}"' if ref_id else ""
    inner_attr = f' id="{inner_id}"' if inner_id else ""
    label_xml = f"<ce:label>{label}</ce:label>" if label is not None else ""
    return (
        f"<ce:bib-reference{id_attr}>{label_xml}"
        f"<sb:reference{inner_attr}><sb:contribution><sb:authors><sb:author>"
        f"<ce:surname>{surname}</ce:surname></sb:author></sb:authors>"
        f"<sb:title><sb:maintitle>{title}</sb:maintitle></sb:title></sb:contribution>"
        f"<sb:host><sb:issue><sb:date>{year}</sb:date></sb:issue></sb:host>"
        "</sb:reference></ce:bib-reference>"
    )


@pytest.fixture()
def reference():
    return make_reference


@pytest.fixture()
def original_records():
    return [
        make_reference("[1]", "bb3000", "Smith", "2019", "Testing reference tools"),
        make_reference("[2]", "bb3005", "Lee", "2020", "Another study on testing"),
        make_reference("[3]", "bb3010", "Patel", "2018", "Data validation handbook"),
    ]


@pytest.fixture()
def original_document(original_records):
    return "\n".join(original_records)


@pytest.fixture()
def corrected_second():
    return make_reference("[2]", "bb9000", "Lee", "2021", "Another study on testing, revised")


@pytest.fixture()
def new_fourth():
    return make_reference("[4]", None, "Adams", "2023", "Preprint on reference integrity")


@pytest.fixture()
def updated_document(corrected_second, new_fourth):
    return "\n".join([corrected_second, new_fourth])


@pytest.fixture()
def ambiguous_originals():
    return [
        make_reference("A", "bb3000", "Smith", "2019", "First paper with label A"),
        make_reference("A", "bb3005", "Smith", "2019", "Second paper with label A"),
        make_reference("B", "bb3010", "Jones", "2017", "Paper with label B"),
    ]


@pytest.fixture()
def ambiguous_document(ambiguous_originals):
    return "\n".join(ambiguous_originals)


@pytest.fixture()
def ambiguous_update():
    return make_reference("A", "bb9000", "Smith", "2019", "Second paper with label A, corrected")
