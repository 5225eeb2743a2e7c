from typing import List

from fastapi import APIRouter, Depends, status
import structlog

from testdeck.api.errors import http_error
from testdeck.core.dependencies import get_current_user, get_project_service, get_run_service
from testdeck.core.exceptions import TestDeckError
from testdeck.models.schemas import (
    CaseProgress,
    RunReport,
    RunStats,
    StepResultUpdate,
    TestResult,
    TestResultSave,
    TestRun,
    TestRunCreate,
    TestRunUpdate,
    User,
)
from testdeck.services.project_service import ProjectService
from testdeck.services.run_service import RunService

logger = structlog.get_logger()

router = APIRouter(tags=["runs"])


@router.get("/projects/{project_id}/runs", response_model=List[TestRun])
async def list_runs(
    project_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Get the runs of a project, newest first"""
    return await service.list_runs(project_id)


@router.post("/projects/{project_id}/runs", response_model=TestRun, status_code=status.HTTP_201_CREATED)
async def create_run(
    project_id: str,
    data: TestRunCreate,
    user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
    service: RunService = Depends(get_run_service)
):
    """Create a run from a snapshot of case ids"""
    try:
        await projects.get_project(project_id)
        return await service.create_run(project_id, data)
    except TestDeckError as e:
        raise http_error(e)


@router.get("/runs/{run_id}", response_model=TestRun)
async def get_run(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Get a run by ID"""
    try:
        return await service.get_run(run_id)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/runs/{run_id}", response_model=TestRun)
async def update_run(
    run_id: str,
    data: TestRunUpdate,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Rename a run or change its status"""
    try:
        return await service.update_run(run_id, data)
    except TestDeckError as e:
        raise http_error(e)


@router.delete("/runs/{run_id}")
async def delete_run(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Delete a run and all of its results"""
    try:
        await service.delete_run(run_id)
    except TestDeckError as e:
        raise http_error(e)
    return {"message": "Test run deleted successfully"}


@router.get("/runs/{run_id}/results", response_model=List[TestResult])
async def list_results(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Get all results recorded in a run"""
    try:
        return await service.list_results(run_id)
    except TestDeckError as e:
        raise http_error(e)


@router.post("/runs/{run_id}/results", response_model=TestResult)
async def save_result(
    run_id: str,
    data: TestResultSave,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Record the outcome of a case on one device platform"""
    try:
        return await service.save_result(run_id, data, user)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/runs/{run_id}/results/steps", response_model=TestResult)
async def update_step_result(
    run_id: str,
    data: StepResultUpdate,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Set one step's status; the case status is recalculated"""
    try:
        return await service.update_step_result(run_id, data, user)
    except TestDeckError as e:
        raise http_error(e)


@router.get("/runs/{run_id}/progress", response_model=List[CaseProgress])
async def get_progress(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Aggregated status of every case in the run"""
    try:
        return await service.get_progress(run_id)
    except TestDeckError as e:
        raise http_error(e)


@router.get("/runs/{run_id}/stats", response_model=RunStats)
async def get_stats(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    try:
        return await service.get_stats(run_id)
    except TestDeckError as e:
        raise http_error(e)


@router.get("/runs/{run_id}/report", response_model=RunReport)
async def get_report(
    run_id: str,
    user: User = Depends(get_current_user),
    service: RunService = Depends(get_run_service)
):
    """Run statistics plus every linked defect"""
    try:
        return await service.get_report(run_id)
    except TestDeckError as e:
        raise http_error(e)
