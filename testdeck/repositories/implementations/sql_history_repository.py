from typing import List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.history_repository import IHistoryRepository
from testdeck.models.database import HistoryLogModel
from testdeck.models.schemas import HistoryLog


def _to_model(log: HistoryLog) -> HistoryLogModel:
    data = log.model_dump(exclude={"changes"})
    data["changes"] = [c.model_dump(mode="json") for c in log.changes]
    return HistoryLogModel(**data)


class SQLHistoryRepository(IHistoryRepository):
    """SQLAlchemy implementation of history log repository"""

    def __init__(self, db: Session):
        self.db = db

    async def append(self, log: HistoryLog) -> HistoryLog:
        db_log = _to_model(log)
        self.db.add(db_log)
        self.db.commit()
        self.db.refresh(db_log)
        return HistoryLog.model_validate(db_log)

    async def append_many(self, logs: List[HistoryLog]) -> List[HistoryLog]:
        db_logs = [_to_model(log) for log in logs]
        self.db.add_all(db_logs)
        self.db.commit()
        return logs

    async def get_by_id(self, log_id: str) -> Optional[HistoryLog]:
        db_log = self.db.query(HistoryLogModel).filter(HistoryLogModel.id == log_id).first()
        return HistoryLog.model_validate(db_log) if db_log else None

    async def list_by_entity(self, entity_id: str) -> List[HistoryLog]:
        db_logs = (
            self.db.query(HistoryLogModel)
            .filter(HistoryLogModel.entity_id == entity_id)
            .order_by(HistoryLogModel.timestamp.desc())
            .all()
        )
        return [HistoryLog.model_validate(log) for log in db_logs]

    async def delete_by_entities(self, entity_ids: List[str]) -> int:
        if not entity_ids:
            return 0
        deleted = (
            self.db.query(HistoryLogModel)
            .filter(HistoryLogModel.entity_id.in_(entity_ids))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
