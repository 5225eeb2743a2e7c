"""
Delimited-text reading and writing for test case import/export.

``parse_csv`` is a forgiving single-pass tokenizer: it honours double-quoted
fields (``""`` inside quotes is a literal quote), treats ``\\n``, ``\\r`` and
``\\r\\n`` as row separators outside quotes and never raises on malformed
quoting; an unterminated quote simply runs to the end of the input.
"""

import json
from typing import Dict, Iterable, List, Sequence

from testdeck.models.schemas import Section, TestCase

UTF8_BOM = "\ufeff"

EXPORT_HEADERS = [
    "Section",
    "Title",
    "Priority",
    "Type",
    "Precondition",
    "Note",
    "Step",
    "Expected Result",
]


def parse_csv(text: str) -> List[List[str]]:
    """Split raw text into rows of string cells"""
    rows: List[List[str]] = []
    if not text:
        return rows
    if text.startswith(UTF8_BOM):
        text = text[1:]

    row: List[str] = []
    field: List[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        next_char = text[i + 1] if i + 1 < length else ""

        if in_quotes:
            if char == '"' and next_char == '"':
                field.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                field.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            row.append("".join(field))
            field = []
        elif char in ("\n", "\r"):
            if char == "\r" and next_char == "\n":
                i += 1
            row.append("".join(field))
            field = []
            rows.append(row)
            row = []
        else:
            field.append(char)
        i += 1

    # Trailing row without a terminating newline
    if field or row:
        row.append("".join(field))
        rows.append(row)
    return rows


def is_blank_row(row: Sequence[str]) -> bool:
    return not any(cell and cell.strip() for cell in row)


def _escape_newlines(value: str) -> str:
    return (value or "").replace("\n", "\\n")


def _quote(value: str) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def export_cases_csv(cases: Iterable[TestCase], sections: Iterable[Section]) -> str:
    """Render cases as CSV: one header row per case, one continuation row per extra step.

    The result starts with a UTF-8 byte-order mark so spreadsheet tools pick
    the right encoding.
    """
    section_titles: Dict[str, str] = {s.id: s.title for s in sections}
    rows: List[List[str]] = [list(EXPORT_HEADERS)]

    for case in cases:
        first = case.steps[0] if case.steps else None
        rows.append([
            section_titles.get(case.section_id or "", ""),
            case.title,
            case.priority.value,
            case.type.value,
            _escape_newlines(case.precondition),
            _escape_newlines(case.note),
            _escape_newlines(first.step if first else ""),
            _escape_newlines(first.expected if first else ""),
        ])
        for step in case.steps[1:]:
            rows.append(["", "", "", "", "", "", _escape_newlines(step.step), _escape_newlines(step.expected)])

    body = "\n".join(",".join(_quote(cell) for cell in row) for row in rows)
    return UTF8_BOM + body


def export_cases_json(cases: Iterable[TestCase]) -> str:
    return json.dumps([case.model_dump(mode="json") for case in cases], indent=2, ensure_ascii=False)
