"""
Inline markers that carry row-level precondition/note values inside step text.

When an imported case's rows disagree on precondition or note, the value of
each row is folded into that row's step action as a bracketed line:

    [조건: logged out]
    [비고: staging only]
    Click the login button

``split_step_text`` reverses this for display. It is a heuristic: at most one
marker of each kind is recognised. The two leading marker lines may come in
either order, and the note may instead sit at the very end of the text.
"""

import re
from dataclasses import dataclass

from testdeck.utils.normalizers import format_text_with_numbers

PRECONDITION_LABEL = "조건"
NOTE_LABEL = "비고"

_LEADING_PRECONDITION = re.compile(r"^\[조건:\s*(.*?)\](?:\n|\Z)", re.S)
_LEADING_NOTE = re.compile(r"^\[비고:\s*(.*?)\](?:\n|\Z)", re.S)
_TRAILING_NOTE = re.compile(r"\n*\[비고:\s*(.*?)\]\Z", re.S)


@dataclass
class StepParts:
    precondition: str
    content: str
    note: str


def marker_line(label: str, value: str) -> str:
    return f"[{label}: {value}]"


def inject_markers(action: str, precondition: str = "", note: str = "") -> str:
    """Prefix ``action`` with marker lines for the non-blank values"""
    lines = []
    if precondition:
        lines.append(marker_line(PRECONDITION_LABEL, precondition))
    if note:
        lines.append(marker_line(NOTE_LABEL, note))
    if not lines:
        return action
    lines.append(action)
    return "\n".join(lines)


def split_step_text(text: str) -> StepParts:
    if not text:
        return StepParts("", "", "")

    content = text
    precondition = ""
    note = ""

    # Note line may come before the precondition line
    match = _LEADING_NOTE.match(content)
    if match:
        note = match.group(1)
        content = content[match.end():]

    match = _LEADING_PRECONDITION.match(content)
    if match:
        precondition = match.group(1)
        content = content[match.end():]

    if not note:
        match = _LEADING_NOTE.match(content) or _TRAILING_NOTE.search(content)
        if match:
            note = match.group(1)
            content = content[:match.start()] + content[match.end():]

    return StepParts(precondition, format_text_with_numbers(content.strip()), note)
