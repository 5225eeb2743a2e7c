from typing import List

from fastapi import APIRouter, Depends, status
import structlog

from testdeck.api.errors import http_error
from testdeck.core.dependencies import get_current_user, get_user_service
from testdeck.core.exceptions import TestDeckError
from testdeck.models.schemas import LoginRequest, User, UserCreate, UserUpdate
from testdeck.services.user_service import UserService

logger = structlog.get_logger()

auth_router = APIRouter(prefix="/auth", tags=["auth"])
router = APIRouter(prefix="/users", tags=["users"])


@auth_router.post("/login", response_model=User)
async def login(
    request: LoginRequest,
    service: UserService = Depends(get_user_service)
):
    """Resolve an account by e-mail; the returned id goes into the X-User-Id header"""
    try:
        return await service.login(request.email)
    except TestDeckError as e:
        raise http_error(e)


@auth_router.get("/me", response_model=User)
async def current_user(user: User = Depends(get_current_user)):
    """Get the acting user"""
    return user


@router.get("/", response_model=List[User])
async def list_users(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Get all users"""
    return await service.list_users()


@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Create a user account"""
    try:
        logger.info("Creating user", email=data.email, actor_id=user.id)
        return await service.create_user(data)
    except TestDeckError as e:
        raise http_error(e)


@router.put("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    data: UserUpdate,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Update name, role or status of a user"""
    try:
        return await service.update_user(user_id, data)
    except TestDeckError as e:
        raise http_error(e)
