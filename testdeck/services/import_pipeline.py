"""
CSV import pipeline: rows -> header row -> column mapping -> case groups -> cases.

All functions here are pure and synchronous; persistence happens in
``TestCaseService.import_cases``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from testdeck.models.schemas import ImportedCase, ImportField, PlatformType, TestStep
from testdeck.utils.csv_codec import is_blank_row
from testdeck.utils.normalizers import normalize_priority, normalize_type
from testdeck.utils.step_markers import inject_markers

HEADER_KEYWORDS = (
    "title", "제목",
    "section", "섹션", "folder", "폴더",
    "priority", "우선순위", "중요도",
    "type", "유형",
    "step", "단계", "절차", "action",
    "expected", "기대", "결과", "예상",
    "note", "비고", "노트", "remarks",
)

# Ordered classification rules; the first rule whose keyword occurs in the header wins
COLUMN_RULES = (
    (ImportField.TITLE, ("title", "제목")),
    (ImportField.SECTION, ("section", "folder", "섹션")),
    (ImportField.PRIORITY, ("priority", "우선순위", "중요도")),
    (ImportField.TYPE, ("type", "유형")),
    (ImportField.PRECONDITION, ("precondition", "사전")),
    (ImportField.STEP, ("step", "action", "단계", "절차")),
    (ImportField.EXPECTED, ("expected", "result", "기대", "예상")),
    (ImportField.NOTE, ("note", "비고", "노트", "remarks")),
)

APP_HEADER_HINTS = ("ios", "aos", "android")

PREVIEW_WINDOW = 5


@dataclass
class HeaderDetection:
    index: int
    headers: List[str]


@dataclass
class CaseGroup:
    title: str
    rows: List[List[str]] = field(default_factory=list)


def _cell(row: Sequence[str], index: Optional[int]) -> str:
    if index is None or index < 0 or index >= len(row):
        return ""
    return row[index] or ""


def score_header_row(row: Sequence[str]) -> int:
    score = 0
    for cell in row:
        value = (cell or "").lower().strip()
        if value and any(keyword in value for keyword in HEADER_KEYWORDS):
            score += 1
    return score


def detect_header_row(rows: Sequence[Sequence[str]], scan_limit: int = 20) -> HeaderDetection:
    """Pick the best keyword-scoring row among the first ``scan_limit`` rows.

    Ties resolve to the earliest row. When no row scores, the first non-blank
    row is used. ``rows`` must not be empty.
    """
    if not rows:
        raise ValueError("cannot detect a header row in an empty matrix")

    limit = min(len(rows), scan_limit)
    best_index = 0
    best_score = -1

    for i in range(limit):
        if is_blank_row(rows[i]):
            continue
        score = score_header_row(rows[i])
        if score > best_score:
            best_score = score
            best_index = i

    if best_score <= 0:
        for i in range(limit):
            if not is_blank_row(rows[i]):
                best_index = i
                break

    return HeaderDetection(index=best_index, headers=list(rows[best_index]))


def classify_header(header: str) -> Optional[ImportField]:
    value = (header or "").lower().strip()
    if not value:
        return None
    for import_field, keywords in COLUMN_RULES:
        if any(keyword in value for keyword in keywords):
            return import_field
    return None


def infer_column_mapping(headers: Sequence[str]) -> Dict[ImportField, int]:
    """Assign each header to at most one field, scanning left to right.

    A later header classified as the same field replaces the earlier one.
    """
    mapping: Dict[ImportField, int] = {}
    for index, header in enumerate(headers):
        import_field = classify_header(header)
        if import_field is not None:
            mapping[import_field] = index
    return mapping


def headers_suggest_app(headers: Sequence[str]) -> bool:
    for header in headers:
        value = (header or "").lower()
        if any(hint in value for hint in APP_HEADER_HINTS):
            return True
    return False


def group_rows(
    rows: Sequence[Sequence[str]], header_row_index: int, title_column: int
) -> List[CaseGroup]:
    """Partition body rows into cases; a non-blank title cell starts a new case"""
    groups: List[CaseGroup] = []
    current: Optional[CaseGroup] = None

    for row in rows[header_row_index + 1:]:
        if is_blank_row(row):
            continue
        title = _cell(row, title_column).strip()
        if title:
            current = CaseGroup(title=title)
            groups.append(current)
        # Rows before the first titled row have no case to attach to
        if current is not None:
            current.rows.append(list(row))

    return groups


def materialize_case(
    group: CaseGroup, mapping: Mapping[ImportField, int], mode: PlatformType
) -> Optional[ImportedCase]:
    """Build a case from one group, or None when no row carries step data"""

    def value(row: Sequence[str], import_field: ImportField) -> str:
        return _cell(row, mapping.get(import_field))

    preconditions = [value(r, ImportField.PRECONDITION).strip() for r in group.rows]
    notes = [value(r, ImportField.NOTE).strip() for r in group.rows]
    same_precondition = all(p == preconditions[0] for p in preconditions)
    same_note = all(n == notes[0] for n in notes)

    first = group.rows[0]
    steps: List[TestStep] = []
    for index, row in enumerate(group.rows):
        action = value(row, ImportField.STEP)
        expected = value(row, ImportField.EXPECTED)
        if not action.strip() and not expected.strip():
            continue
        action = inject_markers(
            action,
            precondition="" if same_precondition else preconditions[index],
            note="" if same_note else notes[index],
        )
        steps.append(TestStep(step=action, expected=expected))

    if not steps:
        return None

    return ImportedCase(
        section_title=value(first, ImportField.SECTION).strip(),
        title=group.title,
        priority=normalize_priority(value(first, ImportField.PRIORITY)),
        type=normalize_type(value(first, ImportField.TYPE)),
        precondition=preconditions[0] if same_precondition else "",
        note=notes[0] if same_note else "",
        steps=steps,
        platform_type=mode,
    )


def materialize_cases(
    groups: Sequence[CaseGroup], mapping: Mapping[ImportField, int], mode: PlatformType
) -> List[ImportedCase]:
    cases = []
    for group in groups:
        case = materialize_case(group, mapping, mode)
        if case is not None:
            cases.append(case)
    return cases


def preview_row(
    rows: Sequence[Sequence[str]], header_row_index: int, title_column: Optional[int]
) -> Optional[List[str]]:
    """First titled row within the next few body rows, else the first body row"""
    first_body = header_row_index + 1
    if len(rows) <= first_body:
        return None
    if title_column is not None:
        for row in rows[first_body:first_body + PREVIEW_WINDOW]:
            if _cell(row, title_column).strip():
                return list(row)
    return list(rows[first_body])
