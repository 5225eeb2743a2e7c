"""
JSON-file fallback implementations of every repository interface.

Each collection lives in its own ``<key>.json`` file under the configured
directory and is rewritten in full on every mutation. This mirrors a
key/value browser store: small, single-user, no transactions.
"""

import json
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel

from testdeck.models.schemas import (
    DevicePlatform,
    HistoryLog,
    Project,
    Section,
    TestCase,
    TestResult,
    TestRun,
    User,
)
from testdeck.repositories.interfaces.history_repository import IHistoryRepository
from testdeck.repositories.interfaces.project_repository import IProjectRepository
from testdeck.repositories.interfaces.section_repository import ISectionRepository
from testdeck.repositories.interfaces.test_case_repository import ITestCaseRepository
from testdeck.repositories.interfaces.test_result_repository import ITestResultRepository
from testdeck.repositories.interfaces.test_run_repository import ITestRunRepository
from testdeck.repositories.interfaces.user_repository import IUserRepository

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

STORAGE_KEYS = {
    "users": "tm_users",
    "projects": "tm_projects",
    "sections": "tm_sections",
    "cases": "tm_cases",
    "runs": "tm_runs",
    "results": "tm_results",
    "history": "tm_history",
}


class LocalJsonStore:
    """Collections of JSON records persisted as one file per key"""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str) -> List[Dict[str, Any]]:
        path = self._path(key)
        with self._lock:
            if not path.exists():
                return []
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error("Error parsing local collection", key=key, error=str(e))
                return []
        return data if isinstance(data, list) else []

    def save(self, key: str, records: List[Dict[str, Any]]) -> None:
        path = self._path(key)
        with self._lock:
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(path)


class _LocalCollection:
    """Typed view over one store key"""

    model: Type[BaseModel]
    key: str

    def __init__(self, store: LocalJsonStore):
        self.store = store

    def _all(self) -> List[Any]:
        return [self.model.model_validate(r) for r in self.store.load(self.key)]

    def _write(self, items: List[BaseModel]) -> None:
        self.store.save(self.key, [i.model_dump(mode="json") for i in items])

    def _find(self, predicate: Callable[[Any], bool]) -> Optional[Any]:
        return next((i for i in self._all() if predicate(i)), None)

    def _insert(self, item: M, front: bool = False) -> M:
        items = self._all()
        if front:
            items.insert(0, item)
        else:
            items.append(item)
        self._write(items)
        return item

    def _replace(self, item: M) -> M:
        items = self._all()
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                break
        self._write(items)
        return item

    def _remove(self, predicate: Callable[[Any], bool]) -> int:
        items = self._all()
        kept = [i for i in items if not predicate(i)]
        if len(kept) != len(items):
            self._write(kept)
        return len(items) - len(kept)


class LocalUserRepository(_LocalCollection, IUserRepository):
    model = User
    key = STORAGE_KEYS["users"]

    async def create(self, user: User) -> User:
        return self._insert(user)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        return self._find(lambda u: u.id == user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return self._find(lambda u: u.email == email)

    async def get_all(self) -> List[User]:
        return sorted(self._all(), key=lambda u: u.name)

    async def count(self) -> int:
        return len(self._all())

    async def update(self, user: User) -> User:
        return self._replace(user)


class LocalProjectRepository(_LocalCollection, IProjectRepository):
    model = Project
    key = STORAGE_KEYS["projects"]

    async def create(self, project: Project) -> Project:
        return self._insert(project, front=True)

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        return self._find(lambda p: p.id == project_id)

    async def get_all(self) -> List[Project]:
        return sorted(self._all(), key=lambda p: p.created_at, reverse=True)

    async def update(self, project: Project) -> Project:
        return self._replace(project)

    async def delete(self, project_id: str) -> bool:
        return self._remove(lambda p: p.id == project_id) > 0


class LocalSectionRepository(_LocalCollection, ISectionRepository):
    model = Section
    key = STORAGE_KEYS["sections"]

    async def create(self, section: Section) -> Section:
        return self._insert(section)

    async def get_by_id(self, section_id: str) -> Optional[Section]:
        return self._find(lambda s: s.id == section_id)

    async def list_by_project(self, project_id: str) -> List[Section]:
        return [s for s in self._all() if s.project_id == project_id]

    async def update(self, section: Section) -> Section:
        return self._replace(section)

    async def delete(self, section_id: str) -> bool:
        return self._remove(lambda s: s.id == section_id) > 0

    async def delete_by_project(self, project_id: str) -> int:
        return self._remove(lambda s: s.project_id == project_id)


class LocalTestCaseRepository(_LocalCollection, ITestCaseRepository):
    model = TestCase
    key = STORAGE_KEYS["cases"]

    async def create(self, test_case: TestCase) -> TestCase:
        return self._insert(test_case)

    async def create_many(self, test_cases: List[TestCase]) -> List[TestCase]:
        items = self._all()
        items.extend(test_cases)
        self._write(items)
        return list(test_cases)

    async def get_by_id(self, test_case_id: str) -> Optional[TestCase]:
        return self._find(lambda c: c.id == test_case_id)

    async def list_by_project(self, project_id: str) -> List[TestCase]:
        cases = [c for c in self._all() if c.project_id == project_id]
        return sorted(cases, key=lambda c: (c.sequence_id, c.created_at))

    async def list_by_ids(self, test_case_ids: List[str]) -> List[TestCase]:
        wanted = set(test_case_ids)
        return [c for c in self._all() if c.id in wanted]

    async def count_by_project(self, project_id: str) -> int:
        return sum(1 for c in self._all() if c.project_id == project_id)

    async def max_sequence_id(self, project_id: str) -> int:
        return max((c.sequence_id for c in self._all() if c.project_id == project_id), default=0)

    async def update(self, test_case: TestCase) -> TestCase:
        return self._replace(test_case)

    async def delete(self, test_case_id: str) -> bool:
        return self._remove(lambda c: c.id == test_case_id) > 0

    async def delete_by_section(self, section_id: str) -> int:
        return self._remove(lambda c: c.section_id == section_id)

    async def delete_by_project(self, project_id: str) -> int:
        return self._remove(lambda c: c.project_id == project_id)


class LocalTestRunRepository(_LocalCollection, ITestRunRepository):
    model = TestRun
    key = STORAGE_KEYS["runs"]

    async def create(self, run: TestRun) -> TestRun:
        return self._insert(run, front=True)

    async def get_by_id(self, run_id: str) -> Optional[TestRun]:
        return self._find(lambda r: r.id == run_id)

    async def list_by_project(self, project_id: str) -> List[TestRun]:
        runs = [r for r in self._all() if r.project_id == project_id]
        return sorted(runs, key=lambda r: r.created_at, reverse=True)

    async def update(self, run: TestRun) -> TestRun:
        return self._replace(run)

    async def delete(self, run_id: str) -> bool:
        return self._remove(lambda r: r.id == run_id) > 0

    async def delete_by_project(self, project_id: str) -> int:
        return self._remove(lambda r: r.project_id == project_id)


class LocalTestResultRepository(_LocalCollection, ITestResultRepository):
    model = TestResult
    key = STORAGE_KEYS["results"]

    async def get(self, run_id: str, case_id: str, device_platform: DevicePlatform) -> Optional[TestResult]:
        return self._find(
            lambda r: r.run_id == run_id and r.case_id == case_id and r.device_platform == device_platform
        )

    async def list_by_run(self, run_id: str) -> List[TestResult]:
        return [r for r in self._all() if r.run_id == run_id]

    async def list_by_runs(self, run_ids: List[str]) -> List[TestResult]:
        wanted = set(run_ids)
        return [r for r in self._all() if r.run_id in wanted]

    async def save(self, result: TestResult) -> TestResult:
        items = self._all()
        for index, existing in enumerate(items):
            if (
                existing.run_id == result.run_id
                and existing.case_id == result.case_id
                and existing.device_platform == result.device_platform
            ):
                items[index] = result.model_copy(update={"id": existing.id})
                self._write(items)
                return items[index]
        items.append(result)
        self._write(items)
        return result

    async def delete_by_runs(self, run_ids: List[str]) -> int:
        wanted = set(run_ids)
        return self._remove(lambda r: r.run_id in wanted)


class LocalHistoryRepository(_LocalCollection, IHistoryRepository):
    model = HistoryLog
    key = STORAGE_KEYS["history"]

    async def append(self, log: HistoryLog) -> HistoryLog:
        return self._insert(log)

    async def append_many(self, logs: List[HistoryLog]) -> List[HistoryLog]:
        items = self._all()
        items.extend(logs)
        self._write(items)
        return list(logs)

    async def get_by_id(self, log_id: str) -> Optional[HistoryLog]:
        return self._find(lambda h: h.id == log_id)

    async def list_by_entity(self, entity_id: str) -> List[HistoryLog]:
        logs = [h for h in self._all() if h.entity_id == entity_id]
        return sorted(logs, key=lambda h: h.timestamp, reverse=True)

    async def delete_by_entities(self, entity_ids: List[str]) -> int:
        wanted = set(entity_ids)
        return self._remove(lambda h: h.entity_id in wanted)
