from abc import ABC, abstractmethod
from typing import List, Optional
from testdeck.models.schemas import Project


class IProjectRepository(ABC):
    """Interface for project storage"""

    @abstractmethod
    async def create(self, project: Project) -> Project:
        pass

    @abstractmethod
    async def get_by_id(self, project_id: str) -> Optional[Project]:
        pass

    @abstractmethod
    async def get_all(self) -> List[Project]:
        """All projects, newest first"""
        pass

    @abstractmethod
    async def update(self, project: Project) -> Project:
        pass

    @abstractmethod
    async def delete(self, project_id: str) -> bool:
        pass
