from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base
from testdeck.models.schemas import (
    UserRole, UserStatus, ProjectStatus, CasePriority, CaseType, PlatformType,
    DevicePlatform, TestStatus, RunStatus, HistoryAction, HistoryEntityType,
)

Base = declarative_base()


class UserModel(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(Enum(UserRole), default=UserRole.INTERNAL, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.ACTIVE, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class ProjectModel(Base):
    __tablename__ = "projects"

    id = Column(String(32), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(Enum(ProjectStatus), default=ProjectStatus.ACTIVE, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<Project(id={self.id}, title='{self.title}', status='{self.status}')>"


class SectionModel(Base):
    __tablename__ = "sections"

    id = Column(String(32), primary_key=True)
    project_id = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    parent_id = Column(String(32), nullable=True)

    def __repr__(self):
        return f"<Section(id={self.id}, title='{self.title}')>"


class TestCaseModel(Base):
    __tablename__ = "test_cases"

    id = Column(String(32), primary_key=True)
    project_id = Column(String(32), nullable=False, index=True)
    section_id = Column(String(32), nullable=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    priority = Column(Enum(CasePriority), default=CasePriority.MEDIUM, nullable=False)
    type = Column(Enum(CaseType), default=CaseType.FUNCTIONAL, nullable=False)
    precondition = Column(Text, nullable=False, default="")
    note = Column(Text, nullable=False, default="")
    steps = Column(JSON, nullable=False, default=list)
    platform_type = Column(Enum(PlatformType), default=PlatformType.WEB, nullable=False)
    author_id = Column(String(32), nullable=False)
    sequence_id = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<TestCase(id={self.id}, title='{self.title}', priority='{self.priority}')>"


class TestRunModel(Base):
    __tablename__ = "test_runs"

    id = Column(String(32), primary_key=True)
    project_id = Column(String(32), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    status = Column(Enum(RunStatus), default=RunStatus.OPEN, nullable=False)
    # Snapshot taken at creation, never re-queried
    case_ids = Column(JSON, nullable=False, default=list)
    assigned_to_id = Column(String(32), nullable=True)
    created_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<TestRun(id={self.id}, title='{self.title}', status='{self.status}')>"


class TestResultModel(Base):
    __tablename__ = "test_results"
    __table_args__ = (
        UniqueConstraint("run_id", "case_id", "device_platform", name="uq_result_run_case_platform"),
    )

    id = Column(String(32), primary_key=True)
    run_id = Column(String(32), nullable=False, index=True)
    case_id = Column(String(32), nullable=False, index=True)
    device_platform = Column(Enum(DevicePlatform), default=DevicePlatform.PC, nullable=False)
    status = Column(Enum(TestStatus), default=TestStatus.UNTESTED, nullable=False)
    actual_result = Column(Text, nullable=False, default="")
    comment = Column(Text, nullable=False, default="")
    tester_id = Column(String(32), nullable=True)
    issues = Column(JSON, nullable=False, default=list)
    step_results = Column(JSON, nullable=False, default=list)
    history = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<TestResult(id={self.id}, case_id={self.case_id}, status='{self.status}')>"


class HistoryLogModel(Base):
    __tablename__ = "history_logs"

    id = Column(String(32), primary_key=True)
    entity_type = Column(Enum(HistoryEntityType), default=HistoryEntityType.CASE, nullable=False)
    entity_id = Column(String(32), nullable=False, index=True)
    action = Column(Enum(HistoryAction), nullable=False)
    modifier_id = Column(String(32), nullable=False)
    modifier_name = Column(String(100), nullable=False)
    changes = Column(JSON, nullable=False, default=list)
    timestamp = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<HistoryLog(id={self.id}, entity_id={self.entity_id}, action='{self.action}')>"
