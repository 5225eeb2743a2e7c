import re
from typing import Optional

from testdeck.models.schemas import CasePriority, CaseType

_HIGH_TOKENS = {"HIGH", "H", "상", "A", "1", "URGENT"}
_LOW_TOKENS = {"LOW", "L", "하", "C", "3"}

# Checked in order; first containment wins
_TYPE_RULES = (
    (CaseType.UI, ("UI", "유저", "화면")),
    (CaseType.PERFORMANCE, ("PERF", "성능")),
    (CaseType.SECURITY, ("SEC", "보안")),
)

_ENUMERATOR = re.compile(r"([^\n\d])(\d+\.)")


def normalize_priority(value: Optional[str]) -> CasePriority:
    """Map free-text priority onto HIGH/MEDIUM/LOW, defaulting to MEDIUM"""
    token = value.upper().strip() if value else ""
    if token in _HIGH_TOKENS:
        return CasePriority.HIGH
    if token in _LOW_TOKENS:
        return CasePriority.LOW
    return CasePriority.MEDIUM


def normalize_type(value: Optional[str]) -> CaseType:
    """Map free-text case type onto the closed set, defaulting to FUNCTIONAL"""
    token = value.upper().strip() if value else ""
    for case_type, needles in _TYPE_RULES:
        if any(needle in token for needle in needles):
            return case_type
    return CaseType.FUNCTIONAL


def format_text_with_numbers(text: Optional[str]) -> str:
    """Break ``1. foo 2. bar`` onto separate lines for display"""
    if not text:
        return ""
    return _ENUMERATOR.sub(r"\1\n\2", text)
