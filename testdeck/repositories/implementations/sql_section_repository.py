from typing import List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.section_repository import ISectionRepository
from testdeck.models.database import SectionModel
from testdeck.models.schemas import Section


class SQLSectionRepository(ISectionRepository):
    """SQLAlchemy implementation of section repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, section: Section) -> Section:
        db_section = SectionModel(**section.model_dump())
        self.db.add(db_section)
        self.db.commit()
        self.db.refresh(db_section)
        return Section.model_validate(db_section)

    async def get_by_id(self, section_id: str) -> Optional[Section]:
        db_section = self.db.query(SectionModel).filter(SectionModel.id == section_id).first()
        return Section.model_validate(db_section) if db_section else None

    async def list_by_project(self, project_id: str) -> List[Section]:
        db_sections = self.db.query(SectionModel).filter(SectionModel.project_id == project_id).all()
        return [Section.model_validate(s) for s in db_sections]

    async def update(self, section: Section) -> Section:
        db_section = self.db.query(SectionModel).filter(SectionModel.id == section.id).first()
        db_section.title = section.title
        db_section.parent_id = section.parent_id
        self.db.commit()
        self.db.refresh(db_section)
        return Section.model_validate(db_section)

    async def delete(self, section_id: str) -> bool:
        deleted = self.db.query(SectionModel).filter(SectionModel.id == section_id).delete()
        self.db.commit()
        return deleted > 0

    async def delete_by_project(self, project_id: str) -> int:
        deleted = self.db.query(SectionModel).filter(SectionModel.project_id == project_id).delete()
        self.db.commit()
        return deleted
