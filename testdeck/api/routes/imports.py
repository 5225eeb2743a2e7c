from fastapi import APIRouter, Depends, HTTPException, Request, status
import structlog

from testdeck.api.errors import http_error
from testdeck.core.dependencies import (
    get_current_user,
    get_import_service,
    get_project_service,
    get_test_case_service,
)
from testdeck.core.exceptions import TestDeckError
from testdeck.models.schemas import (
    ImportCommitResponse,
    ImportMappingUpdate,
    ImportModeUpdate,
    ImportSessionView,
    ImportUploadRequest,
    User,
)
from testdeck.services.import_service import ImportService
from testdeck.services.project_service import ProjectService
from testdeck.services.test_case_service import TestCaseService

logger = structlog.get_logger()

router = APIRouter(tags=["imports"])


@router.post("/projects/{project_id}/imports", response_model=ImportSessionView, status_code=status.HTTP_201_CREATED)
async def open_import(
    project_id: str,
    user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
    service: ImportService = Depends(get_import_service)
):
    """Open an import session in the UPLOAD state"""
    try:
        await projects.get_project(project_id)
    except TestDeckError as e:
        raise http_error(e)
    return service.open_session(project_id)


@router.get("/imports/{session_id}", response_model=ImportSessionView)
async def get_import(
    session_id: str,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Current state, detected headers, mapping and preview row"""
    try:
        return service.get_session(session_id).view()
    except TestDeckError as e:
        raise http_error(e)


@router.post("/imports/{session_id}/upload", response_model=ImportSessionView)
async def upload_text(
    session_id: str,
    request: ImportUploadRequest,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Load pasted CSV text"""
    try:
        return service.upload(session_id, request.text)
    except TestDeckError as e:
        raise http_error(e)


@router.post("/imports/{session_id}/upload-file", response_model=ImportSessionView)
async def upload_file(
    session_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Load a CSV file sent as the raw request body"""
    body = await request.body()
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("Uploaded file is not valid UTF-8", session_id=session_id, size=len(body))
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Uploaded file must be UTF-8 encoded"
        )
    try:
        return service.upload(session_id, text)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/imports/{session_id}/mapping", response_model=ImportSessionView)
async def update_mapping(
    session_id: str,
    request: ImportMappingUpdate,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Override field to column assignments"""
    try:
        return service.set_mapping(session_id, request.mapping)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/imports/{session_id}/mode", response_model=ImportSessionView)
async def update_mode(
    session_id: str,
    request: ImportModeUpdate,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Select WEB or APP for the imported cases"""
    try:
        return service.set_mode(session_id, request.mode)
    except TestDeckError as e:
        raise http_error(e)


@router.post("/imports/{session_id}/back", response_model=ImportSessionView)
async def go_back(
    session_id: str,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Discard the parsed text and return to UPLOAD"""
    try:
        return service.back(session_id)
    except TestDeckError as e:
        raise http_error(e)


@router.post("/imports/{session_id}/commit", response_model=ImportCommitResponse)
async def commit_import(
    session_id: str,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service),
    test_cases: TestCaseService = Depends(get_test_case_service)
):
    """Create sections and cases from the mapped rows"""
    try:
        return await service.commit(session_id, test_cases, user)
    except TestDeckError as e:
        raise http_error(e)


@router.delete("/imports/{session_id}")
async def close_import(
    session_id: str,
    user: User = Depends(get_current_user),
    service: ImportService = Depends(get_import_service)
):
    """Close an import session"""
    service.close(session_id)
    return {"message": "Import session closed"}
