from typing import List, Optional
from sqlalchemy.orm import Session
from testdeck.repositories.interfaces.user_repository import IUserRepository
from testdeck.models.database import UserModel
from testdeck.models.schemas import User


class SQLUserRepository(IUserRepository):
    """SQLAlchemy implementation of user repository"""

    def __init__(self, db: Session):
        self.db = db

    async def create(self, user: User) -> User:
        db_user = UserModel(**user.model_dump())
        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return User.model_validate(db_user)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        db_user = self.db.query(UserModel).filter(UserModel.id == user_id).first()
        return User.model_validate(db_user) if db_user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        db_user = self.db.query(UserModel).filter(UserModel.email == email).first()
        return User.model_validate(db_user) if db_user else None

    async def get_all(self) -> List[User]:
        return [User.model_validate(u) for u in self.db.query(UserModel).order_by(UserModel.name).all()]

    async def count(self) -> int:
        return self.db.query(UserModel).count()

    async def update(self, user: User) -> User:
        db_user = self.db.query(UserModel).filter(UserModel.id == user.id).first()
        for field, value in user.model_dump(exclude={"id"}).items():
            setattr(db_user, field, value)
        self.db.commit()
        self.db.refresh(db_user)
        return User.model_validate(db_user)
