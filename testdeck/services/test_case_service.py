from typing import Dict, List, Optional, Tuple

import structlog

from testdeck.config.settings import settings
from testdeck.core.exceptions import NotFoundError, PersistenceError
from testdeck.models.schemas import (
    HistoryLog,
    ImportedCase,
    RenderedStep,
    Section,
    SectionCreate,
    SectionUpdate,
    TestCase,
    TestCaseCreate,
    TestCaseUpdate,
    User,
    generate_id,
    utc_now,
)
from testdeck.repositories.interfaces.section_repository import ISectionRepository
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.services.history_service import HistoryService
from testdeck.utils.csv_codec import export_cases_csv, export_cases_json
from testdeck.utils.step_markers import split_step_text

logger = structlog.get_logger()


class TestCaseService:
    """Business logic service for sections and test cases"""

    def __init__(
        self,
        test_case_repository: ITestCaseRepository,
        section_repository: ISectionRepository,
        history_service: HistoryService,
    ):
        self.test_case_repository = test_case_repository
        self.section_repository = section_repository
        self.history_service = history_service

    # --- Sections ---

    async def list_sections(self, project_id: str) -> List[Section]:
        return await self.section_repository.list_by_project(project_id)

    async def create_section(self, project_id: str, data: SectionCreate) -> Section:
        section = Section(id=generate_id(), project_id=project_id, title=data.title.strip(), parent_id=data.parent_id)
        created = await self.section_repository.create(section)
        logger.info("Section created", project_id=project_id, section_id=created.id, title=created.title)
        return created

    async def rename_section(self, section_id: str, data: SectionUpdate) -> Section:
        section = await self.section_repository.get_by_id(section_id)
        if section is None:
            raise NotFoundError(f"Section {section_id} not found")
        return await self.section_repository.update(section.model_copy(update={"title": data.title.strip()}))

    async def delete_section(self, section_id: str) -> None:
        """Delete a section together with the cases filed under it"""
        section = await self.section_repository.get_by_id(section_id)
        if section is None:
            raise NotFoundError(f"Section {section_id} not found")
        removed = await self.test_case_repository.delete_by_section(section_id)
        await self.section_repository.delete(section_id)
        logger.info("Section deleted", section_id=section_id, cases_removed=removed)

    # --- Cases ---

    async def list_test_cases(self, project_id: str) -> List[TestCase]:
        return await self.test_case_repository.list_by_project(project_id)

    async def get_test_case(self, test_case_id: str) -> TestCase:
        test_case = await self.test_case_repository.get_by_id(test_case_id)
        if test_case is None:
            raise NotFoundError(f"Test case {test_case_id} not found")
        return test_case

    async def _check_section(self, project_id: str, section_id: Optional[str]) -> None:
        if section_id is None:
            return
        section = await self.section_repository.get_by_id(section_id)
        if section is None or section.project_id != project_id:
            raise NotFoundError(f"Section {section_id} not found in project {project_id}")

    async def create_test_case(self, project_id: str, data: TestCaseCreate, actor: User) -> TestCase:
        await self._check_section(project_id, data.section_id)
        now = utc_now()
        test_case = TestCase(
            id=generate_id(),
            project_id=project_id,
            author_id=actor.id,
            sequence_id=await self.test_case_repository.max_sequence_id(project_id) + 1,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        created = await self.test_case_repository.create(test_case)
        await self.history_service.log_change(created.id, None, created.model_dump(mode="json"), actor)
        logger.info("Test case created", test_case_id=created.id, project_id=project_id)
        return created

    async def update_test_case(self, test_case_id: str, data: TestCaseUpdate, actor: User) -> TestCase:
        """Apply a partial update; author and project never change"""
        existing = await self.get_test_case(test_case_id)
        changes = data.model_dump(exclude_unset=True)
        if "section_id" in changes:
            await self._check_section(existing.project_id, changes["section_id"])
        for field in ("title", "priority", "type", "precondition", "note", "steps", "platform_type"):
            if field in changes and changes[field] is None:
                del changes[field]

        candidate = TestCase.model_validate({**existing.model_dump(), **changes})
        log = await self.history_service.log_change(
            test_case_id,
            existing.model_dump(mode="json"),
            candidate.model_dump(mode="json"),
            actor,
        )
        if log is None:
            return existing

        updated = await self.test_case_repository.update(candidate.model_copy(update={"updated_at": utc_now()}))
        logger.info("Test case updated", test_case_id=test_case_id, fields=[c.field for c in log.changes])
        return updated

    async def delete_test_case(self, test_case_id: str) -> None:
        if not await self.test_case_repository.delete(test_case_id):
            raise NotFoundError(f"Test case {test_case_id} not found")
        logger.info("Test case deleted", test_case_id=test_case_id)

    async def rendered_steps(self, test_case_id: str) -> List[RenderedStep]:
        test_case = await self.get_test_case(test_case_id)
        rendered = []
        for step in test_case.steps:
            parts = split_step_text(step.step)
            rendered.append(RenderedStep(
                id=step.id,
                precondition=parts.precondition,
                content=parts.content,
                note=parts.note,
                expected=step.expected,
            ))
        return rendered

    # --- Import / export ---

    async def _resolve_sections(self, project_id: str, titles: List[str]) -> Tuple[Dict[str, str], int]:
        """Map each distinct title to a section id, creating missing sections once"""
        existing = await self.section_repository.list_by_project(project_id)
        by_title: Dict[str, str] = {}
        for section in existing:
            by_title.setdefault(section.title, section.id)

        created = 0
        for title in titles:
            if title in by_title:
                continue
            section = await self.section_repository.create(
                Section(id=generate_id(), project_id=project_id, title=title)
            )
            by_title[title] = section.id
            created += 1
        return by_title, created

    async def import_cases(self, project_id: str, cases: List[ImportedCase], actor: User) -> Tuple[List[TestCase], int]:
        """Persist imported cases; returns the stored cases and the number of sections created.

        Sections are created before cases without a surrounding transaction, so
        a failure during the case insert leaves the new sections in place.
        """
        titles: List[str] = []
        for case in cases:
            title = case.section_title or settings.default_section_title
            if title not in titles:
                titles.append(title)

        try:
            section_ids, sections_created = await self._resolve_sections(project_id, titles)

            next_sequence = await self.test_case_repository.max_sequence_id(project_id) + 1
            now = utc_now()
            records = []
            for offset, case in enumerate(cases):
                records.append(TestCase(
                    id=generate_id(),
                    project_id=project_id,
                    section_id=section_ids[case.section_title or settings.default_section_title],
                    title=case.title,
                    priority=case.priority,
                    type=case.type,
                    precondition=case.precondition,
                    note=case.note,
                    steps=case.steps,
                    platform_type=case.platform_type,
                    author_id=actor.id,
                    sequence_id=next_sequence + offset,
                    created_at=now,
                    updated_at=now,
                ))
            stored = await self.test_case_repository.create_many(records)

            logs: List[HistoryLog] = []
            for record in stored:
                log = self.history_service.build_log(record.id, None, record.model_dump(mode="json"), actor)
                if log is not None:
                    logs.append(log)
            await self.history_service.log_many(logs)
        except Exception as e:
            logger.error("Failed to import test cases", project_id=project_id, count=len(cases), error=str(e))
            raise PersistenceError("Failed to save imported test cases") from e

        logger.info(
            "Test cases imported",
            project_id=project_id,
            imported=len(stored),
            sections_created=sections_created,
        )
        return stored, sections_created

    async def export_csv(self, project_id: str) -> str:
        cases = await self.test_case_repository.list_by_project(project_id)
        sections = await self.section_repository.list_by_project(project_id)
        return export_cases_csv(cases, sections)

    async def export_json(self, project_id: str) -> str:
        return export_cases_json(await self.test_case_repository.list_by_project(project_id))
