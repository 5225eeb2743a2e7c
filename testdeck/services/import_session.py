"""
Server-side import session: UPLOAD -> MAP -> (back to UPLOAD | commit).

A session holds the parsed row matrix and the user's mapping choices
between requests. It never touches persistence; ``ImportService`` hands
the materialized cases to the sink and calls ``reset`` on success.
"""

from typing import Dict, List, Optional

import structlog

from testdeck.core.exceptions import CsvParseError, ImportStateError, ImportValidationError
from testdeck.models.schemas import (
    ImportedCase,
    ImportField,
    ImportSessionView,
    ImportState,
    PlatformType,
    generate_id,
)
from testdeck.services.import_pipeline import (
    detect_header_row,
    group_rows,
    headers_suggest_app,
    infer_column_mapping,
    materialize_cases,
    preview_row,
)
from testdeck.utils.csv_codec import is_blank_row, parse_csv

logger = structlog.get_logger()


class ImportSession:
    def __init__(self, project_id: str, scan_limit: int = 20, session_id: Optional[str] = None):
        self.id = session_id or generate_id()
        self.project_id = project_id
        self.scan_limit = scan_limit
        self.reset()

    def reset(self) -> None:
        """Back to a fresh UPLOAD state"""
        self.state = ImportState.UPLOAD
        self.mode = PlatformType.WEB
        self.rows: List[List[str]] = []
        self.header_row_index = 0
        self.headers: List[str] = []
        self.mapping: Dict[ImportField, int] = {}

    def _require(self, state: ImportState) -> None:
        if self.state != state:
            raise ImportStateError(f"Import session is in {self.state.value}, expected {state.value}")

    def load_text(self, text: str) -> None:
        """Parse pasted or uploaded text and move to MAP.

        Raises CsvParseError, leaving the session in UPLOAD, when the text
        yields no non-blank row.
        """
        self._require(ImportState.UPLOAD)
        rows = parse_csv(text or "")
        if not any(not is_blank_row(row) for row in rows):
            logger.warning("Import text produced no rows", session_id=self.id, length=len(text or ""))
            raise CsvParseError("No rows could be read from the supplied text")

        detection = detect_header_row(rows, self.scan_limit)
        self.rows = rows
        self.header_row_index = detection.index
        self.headers = detection.headers
        self.mapping = infer_column_mapping(detection.headers)
        if headers_suggest_app(detection.headers):
            self.mode = PlatformType.APP
        self.state = ImportState.MAP

        logger.info(
            "Import text parsed",
            session_id=self.id,
            rows=len(rows),
            header_row=detection.index,
            mapped=sorted(f.value for f in self.mapping),
            mode=self.mode.value,
        )

    def set_mapping(self, overrides: Dict[ImportField, Optional[int]]) -> None:
        """Assign or clear (None) the column of individual fields"""
        self._require(ImportState.MAP)
        for import_field, column in overrides.items():
            if column is None:
                self.mapping.pop(import_field, None)
                continue
            if column < 0 or column >= len(self.headers):
                raise ImportValidationError(f"Column {column} does not exist for field {import_field.value}")
            self.mapping[import_field] = column

    def set_mode(self, mode: PlatformType) -> None:
        self._require(ImportState.MAP)
        self.mode = mode

    def back(self) -> None:
        self._require(ImportState.MAP)
        self.reset()

    def build_cases(self) -> List[ImportedCase]:
        """Group and materialize the body rows; the session stays in MAP on failure"""
        self._require(ImportState.MAP)
        title_column = self.mapping.get(ImportField.TITLE)
        if title_column is None:
            raise ImportValidationError("The title column must be mapped before importing")

        groups = group_rows(self.rows, self.header_row_index, title_column)
        cases = materialize_cases(groups, self.mapping, self.mode)
        if not cases:
            raise ImportValidationError("No cases to import")
        return cases

    def view(self) -> ImportSessionView:
        preview: Dict[str, str] = {}
        if self.state == ImportState.MAP:
            row = preview_row(self.rows, self.header_row_index, self.mapping.get(ImportField.TITLE))
            if row is not None:
                for import_field, column in self.mapping.items():
                    preview[import_field.value] = row[column] if column < len(row) else ""

        return ImportSessionView(
            id=self.id,
            project_id=self.project_id,
            state=self.state,
            mode=self.mode,
            header_row_index=self.header_row_index,
            headers=self.headers,
            mapping={f.value: c for f, c in self.mapping.items()},
            row_count=max(len(self.rows) - self.header_row_index - 1, 0) if self.rows else 0,
            preview=preview,
        )
