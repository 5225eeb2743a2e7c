from typing import Dict, Optional

import structlog

from testdeck.core.cache import SlidingTTLStore
from testdeck.core.exceptions import NotFoundError
from testdeck.models.schemas import (
    ImportCommitResponse,
    ImportField,
    ImportSessionView,
    PlatformType,
    User,
)
from testdeck.services.import_session import ImportSession
from testdeck.services.test_case_service import TestCaseService

logger = structlog.get_logger()


class ImportService:
    """Keeps open import sessions between requests and drives their transitions"""

    def __init__(self, ttl_seconds: float, scan_limit: int = 20, max_sessions: int = 256):
        self.scan_limit = scan_limit
        self.sessions = SlidingTTLStore(ttl_seconds=ttl_seconds, max_items=max_sessions)

    def open_session(self, project_id: str) -> ImportSessionView:
        session = ImportSession(project_id, scan_limit=self.scan_limit)
        self.sessions.put(session.id, session)
        logger.info("Import session opened", session_id=session.id, project_id=project_id)
        return session.view()

    def get_session(self, session_id: str) -> ImportSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Import session {session_id} not found or expired")
        return session

    def upload(self, session_id: str, text: str) -> ImportSessionView:
        session = self.get_session(session_id)
        session.load_text(text)
        return session.view()

    def set_mapping(self, session_id: str, overrides: Dict[ImportField, Optional[int]]) -> ImportSessionView:
        session = self.get_session(session_id)
        session.set_mapping(overrides)
        return session.view()

    def set_mode(self, session_id: str, mode: PlatformType) -> ImportSessionView:
        session = self.get_session(session_id)
        session.set_mode(mode)
        return session.view()

    def back(self, session_id: str) -> ImportSessionView:
        session = self.get_session(session_id)
        session.back()
        return session.view()

    async def commit(self, session_id: str, test_case_service: TestCaseService, actor: User) -> ImportCommitResponse:
        """Persist the session's cases; the session returns to UPLOAD only on success"""
        session = self.get_session(session_id)
        cases = session.build_cases()
        stored, sections_created = await test_case_service.import_cases(session.project_id, cases, actor)
        session.reset()
        logger.info("Import session committed", session_id=session_id, imported=len(stored))
        return ImportCommitResponse(imported=len(stored), sections_created=sections_created)

    def close(self, session_id: str) -> None:
        self.sessions.pop(session_id)

    def shutdown(self) -> int:
        """Stop the purge thread and drop every open session; returns how many were open"""
        self.sessions.stop()
        open_sessions = len(self.sessions)
        self.sessions.clear()
        return open_sessions
