from typing import Dict, List, Optional

import structlog

from testdeck.core.exceptions import NotFoundError
from testdeck.models.schemas import (
    CaseProgress,
    DefectEntry,
    DevicePlatform,
    ExecutionHistoryItem,
    HistoryAction,
    HistoryEntityType,
    PlatformType,
    RunReport,
    RunStats,
    StepResult,
    StepResultUpdate,
    TestResult,
    TestResultSave,
    TestRun,
    TestRunCreate,
    TestRunUpdate,
    TestStatus,
    User,
    generate_id,
    utc_now,
)
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository
from testdeck.services.history_service import HistoryService

logger = structlog.get_logger()

# Fields of a result that are diffed into EXECUTE history logs
EXECUTION_FIELDS = ("status", "actual_result", "comment", "issues", "step_results")


def calculate_case_status(step_results: List[StepResult], total_steps: int) -> TestStatus:
    """Overall case status derived from its step results"""
    tested = [r.status for r in step_results if r.status != TestStatus.UNTESTED]
    for status in (TestStatus.FAIL, TestStatus.BLOCK, TestStatus.NA, TestStatus.RETEST):
        if status in tested:
            return status
    if tested and len(tested) >= total_steps:
        return TestStatus.PASS
    return TestStatus.UNTESTED


def aggregate_platform_status(
    platform_type: PlatformType,
    results: Dict[DevicePlatform, TestResult],
) -> TestStatus:
    """Single status for a case in a run, combining device platforms for APP cases"""
    if platform_type == PlatformType.WEB:
        pc = results.get(DevicePlatform.PC)
        return pc.status if pc else TestStatus.UNTESTED

    ios = results.get(DevicePlatform.IOS)
    android = results.get(DevicePlatform.ANDROID)
    statuses = [r.status for r in (ios, android) if r]
    for status in (TestStatus.FAIL, TestStatus.BLOCK, TestStatus.NA):
        if status in statuses:
            return status
    if ios and android and ios.status == TestStatus.PASS and android.status == TestStatus.PASS:
        return TestStatus.PASS
    if ios:
        return ios.status
    if android:
        return android.status
    return TestStatus.UNTESTED


def _execution_snapshot(result: Optional[TestResult]) -> dict:
    if result is None:
        return {"status": TestStatus.UNTESTED.value, "actual_result": "", "comment": "", "issues": [], "step_results": []}
    return result.model_dump(mode="json", include=set(EXECUTION_FIELDS))


class RunService:
    """Test runs, their results and derived progress figures"""

    def __init__(
        self,
        test_run_repository: ITestRunRepository,
        test_result_repository: ITestResultRepository,
        test_case_repository: ITestCaseRepository,
        history_service: HistoryService,
    ):
        self.test_run_repository = test_run_repository
        self.test_result_repository = test_result_repository
        self.test_case_repository = test_case_repository
        self.history_service = history_service

    # --- Runs ---

    async def list_runs(self, project_id: str) -> List[TestRun]:
        return await self.test_run_repository.list_by_project(project_id)

    async def get_run(self, run_id: str) -> TestRun:
        run = await self.test_run_repository.get_by_id(run_id)
        if run is None:
            raise NotFoundError(f"Test run {run_id} not found")
        return run

    async def create_run(self, project_id: str, data: TestRunCreate) -> TestRun:
        run = TestRun(
            id=generate_id(),
            project_id=project_id,
            title=data.title,
            case_ids=list(dict.fromkeys(data.case_ids)),
            assigned_to_id=data.assigned_to_id,
            created_at=utc_now(),
        )
        created = await self.test_run_repository.create(run)
        logger.info("Test run created", run_id=created.id, project_id=project_id, cases=len(created.case_ids))
        return created

    async def update_run(self, run_id: str, data: TestRunUpdate) -> TestRun:
        run = await self.get_run(run_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return await self.test_run_repository.update(run.model_copy(update=changes))

    async def delete_run(self, run_id: str) -> None:
        await self.get_run(run_id)
        results = await self.test_result_repository.list_by_run(run_id)
        await self.history_service.delete_for_entities([r.id for r in results])
        removed = await self.test_result_repository.delete_by_runs([run_id])
        await self.test_run_repository.delete(run_id)
        logger.info("Test run deleted", run_id=run_id, results_removed=removed)

    # --- Results ---

    async def list_results(self, run_id: str) -> List[TestResult]:
        await self.get_run(run_id)
        return await self.test_result_repository.list_by_run(run_id)

    async def save_result(self, run_id: str, data: TestResultSave, actor: User) -> TestResult:
        """Record an execution; the previous tested state moves to the front of history"""
        run = await self.get_run(run_id)
        if data.case_id not in run.case_ids:
            raise NotFoundError(f"Test case {data.case_id} is not part of run {run_id}")
        existing = await self.test_result_repository.get(run_id, data.case_id, data.device_platform)

        history: List[ExecutionHistoryItem] = list(existing.history) if existing else []
        if existing and existing.status != TestStatus.UNTESTED:
            history.insert(0, ExecutionHistoryItem(
                status=existing.status,
                actual_result=existing.actual_result,
                comment=existing.comment,
                tester_id=existing.tester_id,
                timestamp=existing.timestamp,
                issues=existing.issues,
                step_results=existing.step_results,
            ))

        result = TestResult(
            id=existing.id if existing else generate_id(),
            run_id=run_id,
            tester_id=actor.id,
            history=history,
            timestamp=utc_now(),
            **data.model_dump(),
        )
        saved = await self.test_result_repository.save(result)

        await self.history_service.log_change(
            saved.id,
            _execution_snapshot(existing),
            _execution_snapshot(saved),
            actor,
            entity_type=HistoryEntityType.RESULT,
            action=HistoryAction.EXECUTE,
        )
        logger.info(
            "Test result saved",
            run_id=run_id,
            case_id=data.case_id,
            device_platform=data.device_platform.value,
            status=saved.status.value,
        )
        return saved

    async def update_step_result(self, run_id: str, data: StepResultUpdate, actor: User) -> TestResult:
        """Set one step's status and recompute the case status from all steps"""
        test_case = await self.test_case_repository.get_by_id(data.case_id)
        if test_case is None:
            raise NotFoundError(f"Test case {data.case_id} not found")
        step_ids = {s.id for s in test_case.steps}
        if data.step_id not in step_ids:
            raise NotFoundError(f"Step {data.step_id} not found in test case {data.case_id}")

        existing = await self.test_result_repository.get(run_id, data.case_id, data.device_platform)
        # Results of steps removed from the case since the last execution are dropped
        step_results = [
            r for r in (existing.step_results if existing else [])
            if r.step_id in step_ids and r.step_id != data.step_id
        ]
        step_results.append(StepResult(step_id=data.step_id, status=data.status))

        payload = TestResultSave(
            case_id=data.case_id,
            device_platform=data.device_platform,
            status=calculate_case_status(step_results, len(test_case.steps)),
            actual_result=existing.actual_result if existing else "",
            comment=existing.comment if existing else "",
            issues=existing.issues if existing else [],
            step_results=step_results,
        )
        return await self.save_result(run_id, payload, actor)

    async def _results_by_case(self, run_id: str) -> Dict[str, Dict[DevicePlatform, TestResult]]:
        grouped: Dict[str, Dict[DevicePlatform, TestResult]] = {}
        for result in await self.test_result_repository.list_by_run(run_id):
            grouped.setdefault(result.case_id, {})[result.device_platform] = result
        return grouped

    async def get_progress(self, run_id: str) -> List[CaseProgress]:
        run = await self.get_run(run_id)
        cases = {c.id: c for c in await self.test_case_repository.list_by_ids(run.case_ids)}
        grouped = await self._results_by_case(run_id)

        progress = []
        for case_id in run.case_ids:
            test_case = cases.get(case_id)
            if test_case is None:
                # Snapshot ids may outlive the case itself
                continue
            progress.append(CaseProgress(
                case_id=case_id,
                title=test_case.title,
                sequence_id=test_case.sequence_id,
                platform_type=test_case.platform_type,
                status=aggregate_platform_status(test_case.platform_type, grouped.get(case_id, {})),
            ))
        return progress

    async def get_stats(self, run_id: str) -> RunStats:
        run = await self.get_run(run_id)
        counts = {status: 0 for status in TestStatus}
        for item in await self.get_progress(run_id):
            counts[item.status] += 1

        stats = RunStats(
            total=len(run.case_ids),
            passed=counts[TestStatus.PASS],
            failed=counts[TestStatus.FAIL],
            blocked=counts[TestStatus.BLOCK],
            na=counts[TestStatus.NA],
        )
        stats.untested = stats.total - stats.passed - stats.failed - stats.blocked - stats.na
        return stats

    async def get_report(self, run_id: str) -> RunReport:
        run = await self.get_run(run_id)
        titles = {c.id: c.title for c in await self.test_case_repository.list_by_ids(run.case_ids)}
        defects = []
        for result in await self.test_result_repository.list_by_run(run_id):
            for issue in result.issues:
                defects.append(DefectEntry(issue=issue, case_title=titles.get(result.case_id, "Unknown case")))
        return RunReport(run=run, stats=await self.get_stats(run_id), defects=defects)
