from abc import ABC, abstractmethod
from typing import List, Optional
from testdeck.models.schemas import HistoryLog


class IHistoryRepository(ABC):
    """Interface for the append-only change log"""

    @abstractmethod
    async def append(self, log: HistoryLog) -> HistoryLog:
        pass

    @abstractmethod
    async def append_many(self, logs: List[HistoryLog]) -> List[HistoryLog]:
        pass

    @abstractmethod
    async def get_by_id(self, log_id: str) -> Optional[HistoryLog]:
        pass

    @abstractmethod
    async def list_by_entity(self, entity_id: str) -> List[HistoryLog]:
        """Logs of one entity, newest first"""
        pass

    @abstractmethod
    async def delete_by_entities(self, entity_ids: List[str]) -> int:
        pass
