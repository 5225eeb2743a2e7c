from typing import List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository
from testdeck.models.database import TestRunModel
from testdeck.models.schemas import TestRun


class SQLTestRunRepository(ITestRunRepository):
    """SQLAlchemy implementation of test run repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, run: TestRun) -> TestRun:
        db_run = TestRunModel(**run.model_dump())
        self.db.add(db_run)
        self.db.commit()
        self.db.refresh(db_run)
        return TestRun.model_validate(db_run)

    async def get_by_id(self, run_id: str) -> Optional[TestRun]:
        db_run = self.db.query(TestRunModel).filter(TestRunModel.id == run_id).first()
        return TestRun.model_validate(db_run) if db_run else None

    async def list_by_project(self, project_id: str) -> List[TestRun]:
        db_runs = (
            self.db.query(TestRunModel)
            .filter(TestRunModel.project_id == project_id)
            .order_by(TestRunModel.created_at.desc())
            .all()
        )
        return [TestRun.model_validate(r) for r in db_runs]

    async def update(self, run: TestRun) -> TestRun:
        db_run = self.db.query(TestRunModel).filter(TestRunModel.id == run.id).first()
        db_run.title = run.title
        db_run.status = run.status
        db_run.assigned_to_id = run.assigned_to_id
        self.db.commit()
        self.db.refresh(db_run)
        return TestRun.model_validate(db_run)

    async def delete(self, run_id: str) -> bool:
        deleted = self.db.query(TestRunModel).filter(TestRunModel.id == run_id).delete()
        self.db.commit()
        return deleted > 0

    async def delete_by_project(self, project_id: str) -> int:
        deleted = self.db.query(TestRunModel).filter(TestRunModel.project_id == project_id).delete()
        self.db.commit()
        return deleted
