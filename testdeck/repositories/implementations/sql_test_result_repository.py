from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.models.database import TestResultModel
from testdeck.models.schemas import DevicePlatform, TestResult

# Stored in JSON columns; nested datetimes must be serialized first
_JSON_FIELDS = ("issues", "step_results", "history")


def _row_values(result: TestResult) -> Dict[str, Any]:
    data = result.model_dump(exclude=set(_JSON_FIELDS))
    data.update(result.model_dump(mode="json", include=set(_JSON_FIELDS)))
    return data


class SQLTestResultRepository(ITestResultRepository):
    """SQLAlchemy implementation of test result repository"""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, run_id: str, case_id: str, device_platform: DevicePlatform):
        return (
            self.db.query(TestResultModel)
            .filter(
                TestResultModel.run_id == run_id,
                TestResultModel.case_id == case_id,
                TestResultModel.device_platform == device_platform,
            )
            .first()
        )

    async def get(self, run_id: str, case_id: str, device_platform: DevicePlatform) -> Optional[TestResult]:
        db_result = self._find(run_id, case_id, device_platform)
        return TestResult.model_validate(db_result) if db_result else None

    async def list_by_run(self, run_id: str) -> List[TestResult]:
        db_results = self.db.query(TestResultModel).filter(TestResultModel.run_id == run_id).all()
        return [TestResult.model_validate(r) for r in db_results]

    async def list_by_runs(self, run_ids: List[str]) -> List[TestResult]:
        if not run_ids:
            return []
        db_results = self.db.query(TestResultModel).filter(TestResultModel.run_id.in_(run_ids)).all()
        return [TestResult.model_validate(r) for r in db_results]

    async def save(self, result: TestResult) -> TestResult:
        values = _row_values(result)
        db_result = self._find(result.run_id, result.case_id, result.device_platform)
        if db_result is None:
            db_result = TestResultModel(**values)
            self.db.add(db_result)
        else:
            for field, value in values.items():
                if field != "id":
                    setattr(db_result, field, value)
        self.db.commit()
        self.db.refresh(db_result)
        return TestResult.model_validate(db_result)

    async def delete_by_runs(self, run_ids: List[str]) -> int:
        if not run_ids:
            return 0
        deleted = (
            self.db.query(TestResultModel)
            .filter(TestResultModel.run_id.in_(run_ids))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted
