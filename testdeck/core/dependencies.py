from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from testdeck.config.settings import settings
from testdeck.core.database import get_database
from testdeck.core.exceptions import AuthenticationError
from testdeck.models.schemas import User
from testdeck.repositories.interfaces.history_repository import IHistoryRepository
from testdeck.repositories.interfaces.project_repository import IProjectRepository
from testdeck.repositories.interfaces.section_repository import ISectionRepository
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository
from testdeck.repositories.interfaces.user_repository import IUserRepository

from testdeck.repositories.implementations.local_repositories import (
    LocalHistoryRepository,
    LocalJsonStore,
    LocalProjectRepository,
    LocalSectionRepository,
    LocalTestCaseRepository,
    LocalTestResultRepository,
    LocalTestRunRepository,
    LocalUserRepository,
)
from testdeck.repositories.implementations.sql_history_repository import SQLHistoryRepository
from testdeck.repositories.implementations.sql_project_repository import SQLProjectRepository
from testdeck.repositories.implementations.sql_section_repository import SQLSectionRepository
from testdeck.repositories.implementations.sql_test_case_repository import SQLTestCaseRepository
from testdeck.repositories.implementations.sql_test_result_repository import SQLTestResultRepository
from testdeck.repositories.implementations.sql_test_run_repository import SQLTestRunRepository
from testdeck.repositories.implementations.sql_user_repository import SQLUserRepository

from testdeck.services.dashboard_service import DashboardService
from testdeck.services.history_service import HistoryService
from testdeck.services.import_service import ImportService
from testdeck.services.project_service import ProjectService
from testdeck.services.run_service import RunService
from testdeck.services.test_case_service import TestCaseService
from testdeck.services.user_service import UserService


class Container:
    """Dependency injection container"""

    def __init__(self, storage_backend: Optional[str] = None):
        self.storage_backend = storage_backend or settings.storage_backend
        self._local_store = None
        self._import_service = None

    @property
    def uses_local_store(self) -> bool:
        return self.storage_backend == "local"

    def local_store(self) -> LocalJsonStore:
        """Get the JSON-file store (singleton)"""
        if self._local_store is None:
            self._local_store = LocalJsonStore(settings.local_storage_dir)
        return self._local_store

    # Repositories; ``db`` is ignored by the local backend

    def user_repository(self, db: Session) -> IUserRepository:
        return LocalUserRepository(self.local_store()) if self.uses_local_store else SQLUserRepository(db)

    def project_repository(self, db: Session) -> IProjectRepository:
        return LocalProjectRepository(self.local_store()) if self.uses_local_store else SQLProjectRepository(db)

    def section_repository(self, db: Session) -> ISectionRepository:
        return LocalSectionRepository(self.local_store()) if self.uses_local_store else SQLSectionRepository(db)

    def test_case_repository(self, db: Session) -> ITestCaseRepository:
        return LocalTestCaseRepository(self.local_store()) if self.uses_local_store else SQLTestCaseRepository(db)

    def test_run_repository(self, db: Session) -> ITestRunRepository:
        return LocalTestRunRepository(self.local_store()) if self.uses_local_store else SQLTestRunRepository(db)

    def test_result_repository(self, db: Session) -> ITestResultRepository:
        if self.uses_local_store:
            return LocalTestResultRepository(self.local_store())
        return SQLTestResultRepository(db)

    def history_repository(self, db: Session) -> IHistoryRepository:
        return LocalHistoryRepository(self.local_store()) if self.uses_local_store else SQLHistoryRepository(db)

    # Services

    def history_service(self, db: Session) -> HistoryService:
        return HistoryService(self.history_repository(db))

    def user_service(self, db: Session) -> UserService:
        return UserService(self.user_repository(db))

    def project_service(self, db: Session) -> ProjectService:
        return ProjectService(
            project_repository=self.project_repository(db),
            section_repository=self.section_repository(db),
            test_case_repository=self.test_case_repository(db),
            test_run_repository=self.test_run_repository(db),
            test_result_repository=self.test_result_repository(db),
            history_repository=self.history_repository(db),
        )

    def test_case_service(self, db: Session) -> TestCaseService:
        return TestCaseService(
            test_case_repository=self.test_case_repository(db),
            section_repository=self.section_repository(db),
            history_service=self.history_service(db),
        )

    def run_service(self, db: Session) -> RunService:
        return RunService(
            test_run_repository=self.test_run_repository(db),
            test_result_repository=self.test_result_repository(db),
            test_case_repository=self.test_case_repository(db),
            history_service=self.history_service(db),
        )

    def dashboard_service(self, db: Session) -> DashboardService:
        return DashboardService(
            test_case_repository=self.test_case_repository(db),
            test_run_repository=self.test_run_repository(db),
            test_result_repository=self.test_result_repository(db),
        )

    def import_service(self) -> ImportService:
        """Get import session service instance (singleton)"""
        if self._import_service is None:
            self._import_service = ImportService(
                ttl_seconds=settings.import_session_ttl_seconds,
                scan_limit=settings.import_scan_limit,
            )
        return self._import_service


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_user_service(db: Session = Depends(get_database)) -> UserService:
    return container.user_service(db)


def get_project_service(db: Session = Depends(get_database)) -> ProjectService:
    return container.project_service(db)


def get_test_case_service(db: Session = Depends(get_database)) -> TestCaseService:
    return container.test_case_service(db)


def get_run_service(db: Session = Depends(get_database)) -> RunService:
    return container.run_service(db)


def get_history_service(db: Session = Depends(get_database)) -> HistoryService:
    return container.history_service(db)


def get_dashboard_service(db: Session = Depends(get_database)) -> DashboardService:
    return container.dashboard_service(db)


def get_import_service() -> ImportService:
    return container.import_service()


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    service: UserService = Depends(get_user_service),
) -> User:
    """Acting user resolved from the ``X-User-Id`` request header"""
    try:
        return await service.resolve(x_user_id)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
