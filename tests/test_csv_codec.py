import json
from datetime import datetime

from testdeck.models import schemas
from testdeck.utils.csv_codec import (
    EXPORT_HEADERS,
    UTF8_BOM,
    export_cases_csv,
    export_cases_json,
    is_blank_row,
    parse_csv,
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


def _case(title, steps, section_id=None, **kwargs):
    return schemas.TestCase(
        id=f"id-{title}",
        project_id="p1",
        author_id="u1",
        section_id=section_id,
        title=title,
        steps=[schemas.TestStep(step=s, expected=e) for s, e in steps],
        created_at=NOW,
        updated_at=NOW,
        **kwargs,
    )


class TestParseCsv:
    def test_empty_input(self):
        assert parse_csv("") == []

    def test_simple_rows(self):
        assert parse_csv("a,b\nc,d\n") == [["a", "b"], ["c", "d"]]

    def test_trailing_row_without_newline(self):
        assert parse_csv("a,b\nc,d") == [["a", "b"], ["c", "d"]]

    def test_quoted_fields(self):
        text = '"Say ""hi""","one, two","multi\nline"\r\nnext,row'
        assert parse_csv(text) == [['Say "hi"', "one, two", "multi\nline"], ["next", "row"]]

    def test_carriage_return_separators(self):
        assert parse_csv("a\rb\r\nc") == [["a"], ["b"], ["c"]]

    def test_empty_cells_are_kept(self):
        assert parse_csv(",x,\n") == [["", "x", ""]]

    def test_strips_byte_order_mark(self):
        assert parse_csv(UTF8_BOM + "Title\nLogin") == [["Title"], ["Login"]]

    def test_unterminated_quote_does_not_raise(self):
        assert parse_csv('a,"broken\nrest') == [["a", "broken\nrest"]]


def test_is_blank_row():
    assert is_blank_row([])
    assert is_blank_row(["", "  ", ""])
    assert not is_blank_row(["", "x"])


def test_export_csv_layout():
    section = schemas.Section(id="s1", project_id="p1", title="Auth")
    case = _case(
        "Login",
        [("Open\npage", "Form shown"), ("Submit", 'Says "hi"')],
        section_id="s1",
        priority=schemas.CasePriority.HIGH,
        precondition="line1\nline2",
    )

    text = export_cases_csv([case], [section])
    assert text.startswith(UTF8_BOM)

    lines = text[len(UTF8_BOM):].split("\n")
    assert lines[0] == ",".join(f'"{h}"' for h in EXPORT_HEADERS)
    assert lines[1] == '"Auth","Login","HIGH","FUNCTIONAL","line1\\nline2","","Open\\npage","Form shown"'
    assert lines[2] == '"","","","","","","Submit","Says ""hi"""'
    assert len(lines) == 3


def test_export_csv_unknown_section_is_blank():
    text = export_cases_csv([_case("Orphan", [("a", "b")], section_id="gone")], [])
    rows = parse_csv(text)
    assert rows[1][0] == ""
    assert rows[1][1] == "Orphan"


def test_export_json_is_indented_backup():
    text = export_cases_json([_case("Login", [("a", "b")])])
    assert text.startswith("[\n  {")
    data = json.loads(text)
    assert data[0]["title"] == "Login"
    assert data[0]["steps"][0]["expected"] == "b"
