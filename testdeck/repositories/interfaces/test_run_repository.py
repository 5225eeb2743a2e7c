from abc import ABC, abstractmethod
from typing import List, Optional
from testdeck.models.schemas import TestRun


class ITestRunRepository(ABC):
    """Interface for test run storage"""

    @abstractmethod
    async def create(self, run: TestRun) -> TestRun:
        pass

    @abstractmethod
    async def get_by_id(self, run_id: str) -> Optional[TestRun]:
        pass

    @abstractmethod
    async def list_by_project(self, project_id: str) -> List[TestRun]:
        """Runs of a project, newest first"""
        pass

    @abstractmethod
    async def update(self, run: TestRun) -> TestRun:
        pass

    @abstractmethod
    async def delete(self, run_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_by_project(self, project_id: str) -> int:
        pass
