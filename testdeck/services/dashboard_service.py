import math
from datetime import date, timedelta
from typing import Optional

import structlog

from testdeck.models.schemas import DailyResultCount, DashboardStats, RunStatus, TestStatus, utc_now
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository

logger = structlog.get_logger()

CHART_DAYS = 7


class DashboardService:
    """Per-project summary figures"""

    def __init__(
        self,
        test_case_repository: ITestCaseRepository,
        test_run_repository: ITestRunRepository,
        test_result_repository: ITestResultRepository,
    ):
        self.test_case_repository = test_case_repository
        self.test_run_repository = test_run_repository
        self.test_result_repository = test_result_repository

    async def get_stats(self, project_id: str, today: Optional[date] = None) -> DashboardStats:
        total_cases = await self.test_case_repository.count_by_project(project_id)
        runs = await self.test_run_repository.list_by_project(project_id)
        results = await self.test_result_repository.list_by_runs([r.id for r in runs])

        passed = sum(1 for r in results if r.status == TestStatus.PASS)
        # Half-up rounding of the percentage
        pass_rate = math.floor(passed * 100 / len(results) + 0.5) if results else 0

        today = today or utc_now().date()
        chart_data = []
        for offset in range(CHART_DAYS - 1, -1, -1):
            day = today - timedelta(days=offset)
            daily = [r for r in results if r.timestamp.date() == day]
            chart_data.append(DailyResultCount(
                name=day.strftime("%m-%d"),
                passed=sum(1 for r in daily if r.status == TestStatus.PASS),
                failed=sum(1 for r in daily if r.status == TestStatus.FAIL),
            ))

        stats = DashboardStats(
            total_cases=total_cases,
            active_runs=sum(1 for r in runs if r.status == RunStatus.OPEN),
            pass_rate=pass_rate,
            defect_count=sum(len(r.issues) for r in results),
            chart_data=chart_data,
        )
        logger.debug("Dashboard stats computed", project_id=project_id, results=len(results))
        return stats
