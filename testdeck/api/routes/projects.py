from typing import List

from fastapi import APIRouter, Depends, Response, status
import structlog

from testdeck.api.errors import http_error
from testdeck.core.dependencies import (
    get_current_user,
    get_dashboard_service,
    get_project_service,
    get_test_case_service,
)
from testdeck.core.exceptions import TestDeckError
from testdeck.models.schemas import DashboardStats, Project, ProjectCreate, ProjectUpdate, User
from testdeck.services.dashboard_service import DashboardService
from testdeck.services.project_service import ProjectService
from testdeck.services.test_case_service import TestCaseService

logger = structlog.get_logger()

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/", response_model=List[Project])
async def list_projects(
    user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Get all projects, newest first"""
    return await service.list_projects()


@router.post("/", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Create a new project"""
    logger.info("Creating project", title=data.title, actor_id=user.id)
    return await service.create_project(data)


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Get a project by ID"""
    try:
        return await service.get_project(project_id)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Update title, description or status of a project"""
    try:
        return await service.update_project(project_id, data)
    except TestDeckError as e:
        raise http_error(e)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service)
):
    """Delete a project and everything it owns"""
    try:
        await service.delete_project(project_id)
    except TestDeckError as e:
        raise http_error(e)
    return {"message": "Project deleted successfully"}


@router.get("/{project_id}/dashboard", response_model=DashboardStats)
async def get_dashboard(
    project_id: str,
    user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Summary figures for the project dashboard"""
    try:
        await projects.get_project(project_id)
    except TestDeckError as e:
        raise http_error(e)
    return await service.get_stats(project_id)


@router.get("/{project_id}/export/csv")
async def export_csv(
    project_id: str,
    user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
    service: TestCaseService = Depends(get_test_case_service)
):
    """Download all cases of the project as a spreadsheet-friendly CSV"""
    try:
        project = await projects.get_project(project_id)
    except TestDeckError as e:
        raise http_error(e)
    content = await service.export_csv(project_id)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{project.id}_cases.csv"'},
    )


@router.get("/{project_id}/export/json")
async def export_json(
    project_id: str,
    user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
    service: TestCaseService = Depends(get_test_case_service)
):
    """Download a full JSON backup of the project's cases"""
    try:
        project = await projects.get_project(project_id)
    except TestDeckError as e:
        raise http_error(e)
    content = await service.export_json(project_id)
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{project.id}_cases.json"'},
    )
