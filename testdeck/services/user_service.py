from typing import List, Optional

import structlog

from testdeck.config.settings import settings
from testdeck.core.exceptions import AuthenticationError, ConflictError, NotFoundError
from testdeck.models.schemas import User, UserCreate, UserRole, UserStatus, UserUpdate, generate_id
from testdeck.repositories.interfaces.user_repository import IUserRepository

logger = structlog.get_logger()


class UserService:
    """Account lookup and administration"""

    def __init__(self, user_repository: IUserRepository):
        self.user_repository = user_repository

    async def login(self, email: str) -> User:
        email = email.strip()
        user = await self.user_repository.get_by_email(email)
        if user:
            if user.status == UserStatus.INACTIVE:
                raise AuthenticationError("Account is inactive")
            return user

        # First login on an empty installation bootstraps the admin account
        if email == settings.seed_admin_email and await self.user_repository.count() == 0:
            admin = User(
                id=generate_id(),
                name=settings.seed_admin_name,
                email=email,
                role=UserRole.ADMIN,
                status=UserStatus.ACTIVE,
            )
            logger.info("Seeding admin account", email=email)
            return await self.user_repository.create(admin)

        logger.warning("Login rejected for unknown e-mail", email=email)
        raise AuthenticationError("Unknown account")

    async def resolve(self, user_id: Optional[str]) -> User:
        """Acting user for a request"""
        if not user_id:
            raise AuthenticationError("Missing user id")
        user = await self.user_repository.get_by_id(user_id)
        if user is None or user.status == UserStatus.INACTIVE:
            raise AuthenticationError("Unknown or inactive user")
        return user

    async def list_users(self) -> List[User]:
        return await self.user_repository.get_all()

    async def create_user(self, data: UserCreate) -> User:
        if await self.user_repository.get_by_email(data.email.strip()):
            raise ConflictError(f"E-mail {data.email} is already registered")
        user = User(id=generate_id(), **data.model_dump(exclude={"email"}), email=data.email.strip())
        created = await self.user_repository.create(user)
        logger.info("User created", user_id=created.id, role=created.role.value)
        return created

    async def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        updated = user.model_copy(update=data.model_dump(exclude_unset=True, exclude_none=True))
        return await self.user_repository.update(updated)
