from pydantic import BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid


def generate_id() -> str:
    """Opaque identifier used for every record and step"""
    return uuid.uuid4().hex[:12]


def utc_now() -> datetime:
    # Stored naive so SQLite round-trips compare equal to freshly built records
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ProjectStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class CasePriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class CaseType(str, Enum):
    FUNCTIONAL = "FUNCTIONAL"
    UI = "UI"
    PERFORMANCE = "PERFORMANCE"
    SECURITY = "SECURITY"


class PlatformType(str, Enum):
    WEB = "WEB"
    APP = "APP"


class DevicePlatform(str, Enum):
    PC = "PC"
    IOS = "iOS"
    ANDROID = "Android"


class TestStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    BLOCK = "BLOCK"
    NA = "NA"
    UNTESTED = "UNTESTED"
    RETEST = "RETEST"


class RunStatus(str, Enum):
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"


class HistoryAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    EXECUTE = "EXECUTE"


class HistoryEntityType(str, Enum):
    CASE = "CASE"
    RESULT = "RESULT"


# --- Users ---

class User(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.INTERNAL
    status: UserStatus = UserStatus.ACTIVE

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    role: UserRole = UserRole.INTERNAL
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None


class LoginRequest(BaseModel):
    email: str = Field(..., description="Account e-mail address")


# --- Projects & sections ---

class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None


class Project(BaseModel):
    id: str
    title: str
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SectionCreate(BaseModel):
    title: str = Field(..., min_length=1)
    parent_id: Optional[str] = None


class SectionUpdate(BaseModel):
    title: str = Field(..., min_length=1)


class Section(BaseModel):
    id: str
    project_id: str
    title: str
    parent_id: Optional[str] = None

    class Config:
        from_attributes = True


# --- Test cases ---

class TestStep(BaseModel):
    id: str = Field(default_factory=generate_id)
    step: str = Field("", description="Action to be performed")
    expected: str = Field("", description="Expected result of the action")


class TestCaseBase(BaseModel):
    section_id: Optional[str] = None
    title: str = Field(..., min_length=1, description="Test case title")
    priority: CasePriority = CasePriority.MEDIUM
    type: CaseType = CaseType.FUNCTIONAL
    precondition: str = ""
    note: str = ""
    steps: List[TestStep] = Field(default_factory=list)
    platform_type: PlatformType = PlatformType.WEB


class TestCaseCreate(TestCaseBase):
    @field_validator("steps")
    @classmethod
    def ensure_one_step(cls, steps: List[TestStep]) -> List[TestStep]:
        # A case always carries at least one step
        return steps or [TestStep()]


class TestCaseUpdate(BaseModel):
    section_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1)
    priority: Optional[CasePriority] = None
    type: Optional[CaseType] = None
    precondition: Optional[str] = None
    note: Optional[str] = None
    steps: Optional[List[TestStep]] = None
    platform_type: Optional[PlatformType] = None

    @field_validator("steps")
    @classmethod
    def reject_empty_steps(cls, steps: Optional[List[TestStep]]) -> Optional[List[TestStep]]:
        if steps is not None and not steps:
            raise ValueError("a test case needs at least one step")
        return steps


class TestCase(TestCaseBase):
    id: str
    project_id: str
    author_id: str
    sequence_id: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RenderedStep(BaseModel):
    id: str
    precondition: str = ""
    content: str = ""
    note: str = ""
    expected: str = ""


# --- Runs & results ---

class TestRunCreate(BaseModel):
    title: str = Field(..., min_length=1)
    case_ids: List[str] = Field(default_factory=list)
    assigned_to_id: Optional[str] = None


class TestRunUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    status: Optional[RunStatus] = None


class TestRun(BaseModel):
    id: str
    project_id: str
    title: str
    status: RunStatus = RunStatus.OPEN
    case_ids: List[str] = Field(default_factory=list)
    assigned_to_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class Issue(BaseModel):
    id: str = Field(default_factory=generate_id)
    label: str
    url: str = ""


class StepResult(BaseModel):
    step_id: str
    status: TestStatus = TestStatus.UNTESTED


class ExecutionHistoryItem(BaseModel):
    status: TestStatus
    actual_result: str = ""
    comment: str = ""
    tester_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    issues: List[Issue] = Field(default_factory=list)
    step_results: List[StepResult] = Field(default_factory=list)


class TestResultSave(BaseModel):
    case_id: str
    device_platform: DevicePlatform = DevicePlatform.PC
    status: TestStatus = TestStatus.UNTESTED
    actual_result: str = ""
    comment: str = ""
    issues: List[Issue] = Field(default_factory=list)
    step_results: List[StepResult] = Field(default_factory=list)


class StepResultUpdate(BaseModel):
    case_id: str
    device_platform: DevicePlatform = DevicePlatform.PC
    step_id: str
    status: TestStatus


class TestResult(BaseModel):
    id: str
    run_id: str
    case_id: str
    device_platform: DevicePlatform = DevicePlatform.PC
    status: TestStatus = TestStatus.UNTESTED
    actual_result: str = ""
    comment: str = ""
    tester_id: Optional[str] = None
    issues: List[Issue] = Field(default_factory=list)
    step_results: List[StepResult] = Field(default_factory=list)
    history: List[ExecutionHistoryItem] = Field(default_factory=list)
    timestamp: datetime

    class Config:
        from_attributes = True


class CaseProgress(BaseModel):
    case_id: str
    title: str
    sequence_id: int = 0
    platform_type: PlatformType = PlatformType.WEB
    status: TestStatus = TestStatus.UNTESTED


class RunStats(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    blocked: int = 0
    na: int = 0
    untested: int = 0


class DefectEntry(BaseModel):
    issue: Issue
    case_title: str


class RunReport(BaseModel):
    run: TestRun
    stats: RunStats
    defects: List[DefectEntry] = Field(default_factory=list)


# --- History ---

class HistoryChange(BaseModel):
    field: str
    old_val: Any = None
    new_val: Any = None


class HistoryLog(BaseModel):
    id: str
    entity_type: HistoryEntityType = HistoryEntityType.CASE
    entity_id: str
    action: HistoryAction
    modifier_id: str
    modifier_name: str
    changes: List[HistoryChange] = Field(default_factory=list)
    timestamp: datetime

    class Config:
        from_attributes = True


class StepDiff(BaseModel):
    index: int
    kind: str = Field(..., description="ADDED, REMOVED or MODIFIED")
    old: Optional[TestStep] = None
    new: Optional[TestStep] = None


# --- Dashboard ---

class DailyResultCount(BaseModel):
    name: str
    passed: int = 0
    failed: int = 0


class DashboardStats(BaseModel):
    total_cases: int = 0
    active_runs: int = 0
    pass_rate: int = 0
    defect_count: int = 0
    chart_data: List[DailyResultCount] = Field(default_factory=list)


# --- CSV import ---

class ImportField(str, Enum):
    SECTION = "section"
    TITLE = "title"
    PRIORITY = "priority"
    TYPE = "type"
    PRECONDITION = "precondition"
    NOTE = "note"
    STEP = "step"
    EXPECTED = "expected"


class ImportState(str, Enum):
    UPLOAD = "UPLOAD"
    MAP = "MAP"


class ImportUploadRequest(BaseModel):
    text: str = Field(..., description="Delimited text pasted by the user")


class ImportMappingUpdate(BaseModel):
    mapping: Dict[ImportField, Optional[int]] = Field(
        ..., description="Field to column index; null removes the assignment"
    )


class ImportModeUpdate(BaseModel):
    mode: PlatformType


class ImportSessionView(BaseModel):
    id: str
    project_id: str
    state: ImportState
    mode: PlatformType
    header_row_index: int = 0
    headers: List[str] = Field(default_factory=list)
    mapping: Dict[str, int] = Field(default_factory=dict)
    row_count: int = 0
    preview: Dict[str, str] = Field(default_factory=dict)


class ImportedCase(BaseModel):
    """Case materialized from CSV rows, before section resolution"""
    section_title: str = ""
    title: str
    priority: CasePriority = CasePriority.MEDIUM
    type: CaseType = CaseType.FUNCTIONAL
    precondition: str = ""
    note: str = ""
    steps: List[TestStep] = Field(default_factory=list)
    platform_type: PlatformType = PlatformType.WEB


class ImportCommitResponse(BaseModel):
    imported: int
    sections_created: int = 0
