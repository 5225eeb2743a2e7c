from typing import List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.project_repository import IProjectRepository
from testdeck.models.database import ProjectModel
from testdeck.models.schemas import Project


class SQLProjectRepository(IProjectRepository):
    """SQLAlchemy implementation of project repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, project: Project) -> Project:
        db_project = ProjectModel(**project.model_dump())
        self.db.add(db_project)
        self.db.commit()
        self.db.refresh(db_project)
        return Project.model_validate(db_project)

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        db_project = self.db.query(ProjectModel).filter(ProjectModel.id == project_id).first()
        return Project.model_validate(db_project) if db_project else None

    async def get_all(self) -> List[Project]:
        db_projects = self.db.query(ProjectModel).order_by(ProjectModel.created_at.desc()).all()
        return [Project.model_validate(p) for p in db_projects]

    async def update(self, project: Project) -> Project:
        db_project = self.db.query(ProjectModel).filter(ProjectModel.id == project.id).first()
        for field, value in project.model_dump(exclude={"id", "created_at"}).items():
            setattr(db_project, field, value)
        self.db.commit()
        self.db.refresh(db_project)
        return Project.model_validate(db_project)

    async def delete(self, project_id: str) -> bool:
        db_project = self.db.query(ProjectModel).filter(ProjectModel.id == project_id).first()
        if not db_project:
            return False
        self.db.delete(db_project)
        self.db.commit()
        return True
