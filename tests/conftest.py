import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from testdeck.config.settings import settings
from testdeck.core.database import get_database
from testdeck.models.database import Base
from testdeck.models.schemas import User, UserRole
from testdeck.repositories.implementations.local_repositories import (
    LocalHistoryRepository,
    LocalJsonStore,
    LocalSectionRepository,
    LocalTestCaseRepository,
    LocalTestResultRepository,
    LocalTestRunRepository,
)
from testdeck.services.history_service import HistoryService
from testdeck.services.run_service import RunService
from testdeck.services.test_case_service import TestCaseService

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_database] = override_get_db


@pytest.fixture
def test_client():
    """Synchronous test client over a freshly created schema"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield TestClient(app)
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def auth_headers(test_client):
    """Headers of the seeded admin account"""
    response = test_client.post(f"{settings.api_prefix}/auth/login", json={"email": settings.seed_admin_email})
    assert response.status_code == 200
    return {"X-User-Id": response.json()["id"]}


@pytest.fixture
def api():
    return settings.api_prefix


@pytest.fixture
def actor():
    return User(id="tester01", name="Tester", email="tester@example.com", role=UserRole.INTERNAL)


@pytest.fixture
def local_store(tmp_path):
    return LocalJsonStore(str(tmp_path / "store"))


@pytest.fixture
def history_service(local_store):
    return HistoryService(LocalHistoryRepository(local_store))


@pytest.fixture
def case_service(local_store, history_service):
    return TestCaseService(
        test_case_repository=LocalTestCaseRepository(local_store),
        section_repository=LocalSectionRepository(local_store),
        history_service=history_service,
    )


@pytest.fixture
def run_service(local_store, history_service):
    return RunService(
        test_run_repository=LocalTestRunRepository(local_store),
        test_result_repository=LocalTestResultRepository(local_store),
        test_case_repository=LocalTestCaseRepository(local_store),
        history_service=history_service,
    )
