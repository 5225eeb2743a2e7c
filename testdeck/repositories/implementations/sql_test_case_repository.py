from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.models.database import TestCaseModel
from testdeck.models.schemas import TestCase


class SQLTestCaseRepository(ITestCaseRepository):
    """SQLAlchemy implementation of test case repository"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(TestCaseModel)

    async def create(self, test_case: TestCase) -> TestCase:
        """Create a new test case"""
        db_test_case = TestCaseModel(**test_case.model_dump())
        self.db.add(db_test_case)
        self.db.commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def create_many(self, test_cases: List[TestCase]) -> List[TestCase]:
        """Insert a batch of test cases in a single commit"""
        db_test_cases = [TestCaseModel(**tc.model_dump()) for tc in test_cases]
        self.db.add_all(db_test_cases)
        self.db.commit()
        for db_test_case in db_test_cases:
            self.db.refresh(db_test_case)
        return [TestCase.model_validate(tc) for tc in db_test_cases]

    async def get_by_id(self, test_case_id: str) -> Optional[TestCase]:
        """Get test case by ID"""
        db_test_case = self._query().filter(TestCaseModel.id == test_case_id).first()
        if db_test_case:
            return TestCase.model_validate(db_test_case)
        return None

    async def list_by_project(self, project_id: str) -> List[TestCase]:
        db_test_cases = (
            self._query()
            .filter(TestCaseModel.project_id == project_id)
            .order_by(TestCaseModel.sequence_id, TestCaseModel.created_at)
            .all()
        )
        return [TestCase.model_validate(tc) for tc in db_test_cases]

    async def list_by_ids(self, test_case_ids: List[str]) -> List[TestCase]:
        if not test_case_ids:
            return []
        db_test_cases = self._query().filter(TestCaseModel.id.in_(test_case_ids)).all()
        return [TestCase.model_validate(tc) for tc in db_test_cases]

    async def count_by_project(self, project_id: str) -> int:
        return self._query().filter(TestCaseModel.project_id == project_id).count()

    async def max_sequence_id(self, project_id: str) -> int:
        value = (
            self.db.query(func.max(TestCaseModel.sequence_id))
            .filter(TestCaseModel.project_id == project_id)
            .scalar()
        )
        return value or 0

    async def update(self, test_case: TestCase) -> TestCase:
        """Replace the stored state of an existing test case"""
        db_test_case = self._query().filter(TestCaseModel.id == test_case.id).first()
        update_data = test_case.model_dump(exclude={"id", "project_id", "author_id", "created_at"})
        for field, value in update_data.items():
            setattr(db_test_case, field, value)

        self.db.commit()
        self.db.refresh(db_test_case)
        return TestCase.model_validate(db_test_case)

    async def delete(self, test_case_id: str) -> bool:
        """Delete a test case"""
        db_test_case = self._query().filter(TestCaseModel.id == test_case_id).first()
        if not db_test_case:
            return False

        self.db.delete(db_test_case)
        self.db.commit()
        return True

    async def delete_by_section(self, section_id: str) -> int:
        deleted = self._query().filter(TestCaseModel.section_id == section_id).delete()
        self.db.commit()
        return deleted

    async def delete_by_project(self, project_id: str) -> int:
        deleted = self._query().filter(TestCaseModel.project_id == project_id).delete()
        self.db.commit()
        return deleted
