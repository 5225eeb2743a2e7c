from abc import ABC, abstractmethod
from typing import List, Optional
from testdeck.models.schemas import Section


class ISectionRepository(ABC):
    """Interface for section (folder) storage"""

    @abstractmethod
    async def create(self, section: Section) -> Section:
        pass

    @abstractmethod
    async def get_by_id(self, section_id: str) -> Optional[Section]:
        pass

    @abstractmethod
    async def list_by_project(self, project_id: str) -> List[Section]:
        pass

    @abstractmethod
    async def update(self, section: Section) -> Section:
        pass

    @abstractmethod
    async def delete(self, section_id: str) -> bool:
        pass

    @abstractmethod
    async def delete_by_project(self, project_id: str) -> int:
        pass
