import pytest

from testdeck.models.schemas import CasePriority, CaseType, ImportField, PlatformType
from testdeck.services.import_pipeline import (
    CaseGroup,
    classify_header,
    detect_header_row,
    group_rows,
    headers_suggest_app,
    infer_column_mapping,
    materialize_case,
    materialize_cases,
    preview_row,
)


def _import(rows, mode=PlatformType.WEB):
    detection = detect_header_row(rows)
    mapping = infer_column_mapping(detection.headers)
    groups = group_rows(rows, detection.index, mapping[ImportField.TITLE])
    return groups, materialize_cases(groups, mapping, mode)


class TestHeaderDetection:
    def test_keyword_row_below_banner_wins(self):
        rows = [
            ["Regression suite v2", ""],
            ["", ""],
            ["Section", "Title", "Priority", "Step", "Expected"],
            ["Auth", "Login", "H", "Click", "OK"],
        ]
        detection = detect_header_row(rows)
        assert detection.index == 2
        assert detection.headers == rows[2]

    def test_ties_resolve_to_first_row(self):
        rows = [["title", "x"], ["title", "y"]]
        assert detect_header_row(rows).index == 0

    def test_falls_back_to_first_non_blank_row(self):
        rows = [["", ""], ["foo", "bar"], ["baz", "qux"]]
        assert detect_header_row(rows).index == 1

    def test_scan_limit_bounds_the_search(self):
        rows = [["a"]] * 25 + [["title", "step", "expected"]]
        assert detect_header_row(rows, scan_limit=20).index == 0

    @pytest.mark.parametrize("rows", [
        [["x"]],
        [[""], [""], ["a", "b"]],
        [["제목", "단계"], ["로그인", "클릭"]],
        [["1", "2"], ["note", "remarks"], ["3"]],
    ])
    def test_index_is_always_in_range(self, rows):
        assert 0 <= detect_header_row(rows).index < len(rows)

    def test_empty_matrix_is_rejected(self):
        with pytest.raises(ValueError):
            detect_header_row([])


class TestColumnMapping:
    @pytest.mark.parametrize("header,expected", [
        ("Title", ImportField.TITLE),
        ("테스트 제목", ImportField.TITLE),
        ("Folder", ImportField.SECTION),
        ("중요도", ImportField.PRIORITY),
        ("Test Type", ImportField.TYPE),
        ("Precondition", ImportField.PRECONDITION),
        ("사전 조건", ImportField.PRECONDITION),
        ("Action", ImportField.STEP),
        ("Expected Result", ImportField.EXPECTED),
        ("예상 결과", ImportField.EXPECTED),
        ("Remarks", ImportField.NOTE),
        ("", None),
        ("Owner", None),
    ])
    def test_classify_header(self, header, expected):
        assert classify_header(header) == expected

    def test_last_matching_header_wins(self):
        mapping = infer_column_mapping(["Title", "Step", "Sub title"])
        assert mapping[ImportField.TITLE] == 2
        assert mapping[ImportField.STEP] == 1

    def test_unmapped_fields_are_absent(self):
        mapping = infer_column_mapping(["Title", "Owner"])
        assert mapping == {ImportField.TITLE: 0}

    def test_app_hint(self):
        assert headers_suggest_app(["Title", "iOS Result"])
        assert headers_suggest_app(["AOS"])
        assert not headers_suggest_app(["Title", "Step"])


def test_scenario_title_without_steps_is_dropped():
    groups, cases = _import([["Title", "Priority"], ["Login works", "HIGH"]])
    assert len(groups) == 1
    assert groups[0].title == "Login works"
    assert cases == []


def test_scenario_continuation_rows_add_steps():
    rows = [["제목", "단계", "기대결과"], ["로그인", "버튼 클릭", "성공 메시지"], ["", "재시도", "에러 없음"]]
    _, cases = _import(rows)

    assert len(cases) == 1
    case = cases[0]
    assert case.title == "로그인"
    assert [(s.step, s.expected) for s in case.steps] == [("버튼 클릭", "성공 메시지"), ("재시도", "에러 없음")]
    assert case.steps[0].id != case.steps[1].id


def test_scenario_differing_preconditions_become_markers():
    rows = [
        ["Title", "Precondition", "Step", "Expected"],
        ["Checkout", "A", "Pay", "Paid"],
        ["", "B", "Refund", "Refunded"],
    ]
    _, cases = _import(rows)

    case = cases[0]
    assert case.precondition == ""
    assert case.steps[0].step.startswith("[조건: A]")
    assert case.steps[1].step.startswith("[조건: B]")


def test_shared_precondition_and_note_stay_on_the_case():
    rows = [
        ["Title", "Precondition", "Note", "Step"],
        ["Search", "Logged in", "smoke", "Type query"],
        ["", "Logged in", "smoke", "Press enter"],
    ]
    _, cases = _import(rows)

    case = cases[0]
    assert case.precondition == "Logged in"
    assert case.note == "smoke"
    assert [s.step for s in case.steps] == ["Type query", "Press enter"]


def test_blank_row_precondition_gets_no_marker():
    group = CaseGroup(title="T", rows=[["T", "A", "one"], ["", "", "two"]])
    mapping = {ImportField.TITLE: 0, ImportField.PRECONDITION: 1, ImportField.STEP: 2}
    case = materialize_case(group, mapping, PlatformType.WEB)

    assert case.steps[0].step == "[조건: A]\none"
    assert case.steps[1].step == "two"


def test_first_row_fields_are_normalized():
    rows = [
        ["Section", "Title", "Priority", "Type", "Step"],
        [" Auth ", " Login ", "상", "보안", "Enter password"],
    ]
    _, cases = _import(rows, mode=PlatformType.APP)

    case = cases[0]
    assert case.section_title == "Auth"
    assert case.title == "Login"
    assert case.priority == CasePriority.HIGH
    assert case.type == CaseType.SECURITY
    assert case.platform_type == PlatformType.APP


def test_grouping_skips_blank_rows_and_leading_orphans():
    rows = [
        ["Title", "Step"],
        ["", "orphan step"],
        ["First", "a"],
        ["", ""],
        ["", "b"],
        ["Second", "c"],
    ]
    groups = group_rows(rows, 0, 0)
    assert [g.title for g in groups] == ["First", "Second"]
    assert len(groups[0].rows) == 2


def test_grouping_invariant():
    rows = [
        ["Title", "Step", "Expected"],
        ["A", "", ""],
        ["B", "b1", ""],
        ["", "", "b2"],
        ["C", "", ""],
        ["", "", ""],
        ["D", "d1", "e1"],
    ]
    groups, cases = _import(rows)
    titled = sum(1 for r in rows[1:] if r[0].strip())

    assert len(cases) <= titled
    assert all(len(c.steps) >= 1 for c in cases)
    assert [c.title for c in cases] == ["B", "D"]


def test_preview_prefers_titled_row():
    rows = [["Title", "Step"], ["", "stray"], ["Login", "go"]]
    assert preview_row(rows, 0, 0) == ["Login", "go"]
    assert preview_row(rows, 0, None) == ["", "stray"]
    assert preview_row([["Title"]], 0, 0) is None
