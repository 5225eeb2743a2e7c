from typing import List

from fastapi import APIRouter, Depends

from testdeck.api.errors import http_error
from testdeck.core.dependencies import get_current_user, get_history_service
from testdeck.core.exceptions import TestDeckError
from testdeck.models.schemas import HistoryLog, StepDiff, User
from testdeck.services.history_service import HistoryService

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/{entity_id}", response_model=List[HistoryLog])
async def get_logs(
    entity_id: str,
    user: User = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service)
):
    """Change logs of a case or result, newest first"""
    return await service.get_logs(entity_id)


@router.get("/logs/{log_id}/step-diff", response_model=List[StepDiff])
async def get_step_diff(
    log_id: str,
    user: User = Depends(get_current_user),
    service: HistoryService = Depends(get_history_service)
):
    try:
        return await service.get_step_diff(log_id)
    except TestDeckError as e:
        raise http_error(e)
