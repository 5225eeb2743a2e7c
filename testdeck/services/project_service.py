from typing import List

import structlog

from testdeck.core.exceptions import NotFoundError
from testdeck.models.schemas import Project, ProjectCreate, ProjectUpdate, generate_id, utc_now
from testdeck.repositories.interfaces.history_repository import IHistoryRepository
from testdeck.repositories.interfaces.project_repository import IProjectRepository
from testdeck.repositories.interfaces.section_repository import ISectionRepository
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository

logger = structlog.get_logger()


class ProjectService:
    """Project lifecycle, including cascade deletion of owned records"""

    def __init__(
        self,
        project_repository: IProjectRepository,
        section_repository: ISectionRepository,
        test_case_repository: ITestCaseRepository,
        test_run_repository: ITestRunRepository,
        test_result_repository: ITestResultRepository,
        history_repository: IHistoryRepository,
    ):
        self.project_repository = project_repository
        self.section_repository = section_repository
        self.test_case_repository = test_case_repository
        self.test_run_repository = test_run_repository
        self.test_result_repository = test_result_repository
        self.history_repository = history_repository

    async def list_projects(self) -> List[Project]:
        return await self.project_repository.get_all()

    async def get_project(self, project_id: str) -> Project:
        project = await self.project_repository.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def create_project(self, data: ProjectCreate) -> Project:
        now = utc_now()
        project = Project(id=generate_id(), created_at=now, updated_at=now, **data.model_dump())
        created = await self.project_repository.create(project)
        logger.info("Project created", project_id=created.id, title=created.title)
        return created

    async def update_project(self, project_id: str, data: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        updated = project.model_copy(update={**changes, "updated_at": utc_now()})
        return await self.project_repository.update(updated)

    async def delete_project(self, project_id: str) -> None:
        """Delete the project and, children first, everything it owns"""
        await self.get_project(project_id)

        runs = await self.test_run_repository.list_by_project(project_id)
        run_ids = [r.id for r in runs]
        results = await self.test_result_repository.list_by_runs(run_ids)
        results_deleted = await self.test_result_repository.delete_by_runs(run_ids)
        runs_deleted = await self.test_run_repository.delete_by_project(project_id)

        cases = await self.test_case_repository.list_by_project(project_id)
        await self.history_repository.delete_by_entities([c.id for c in cases] + [r.id for r in results])
        cases_deleted = await self.test_case_repository.delete_by_project(project_id)
        sections_deleted = await self.section_repository.delete_by_project(project_id)

        await self.project_repository.delete(project_id)
        logger.info(
            "Project deleted",
            project_id=project_id,
            runs=runs_deleted,
            results=results_deleted,
            cases=cases_deleted,
            sections=sections_deleted,
        )
