from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.auth import models, schemas, security
from odontolegal.shared.exceptions import InvalidState


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[models.User]:
        result = await self.db.execute(select(models.User).where(models.User.email == email))
        return result.scalars().first()

    async def authenticate_user(self, email: str, password: str) -> Optional[models.User]:
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not security.verify_password(password, user.hashed_password):
            return None
        return user

    async def create_user(self, user_create: schemas.UserCreate) -> models.User:
        if await self.get_user_by_email(user_create.email):
            raise InvalidState("User with this email already exists")

        db_user = models.User(
            email=user_create.email,
            hashed_password=security.get_password_hash(user_create.password),
            full_name=user_create.full_name,
            role=user_create.role,
        )
        self.db.add(db_user)
        await self.db.commit()
        await self.db.refresh(db_user)
        return db_user

    async def list_users(self, skip: int = 0, limit: int = 100) -> List[models.User]:
        result = await self.db.execute(
            select(models.User).order_by(models.User.full_name).offset(skip).limit(limit)
        )
        return list(result.scalars().all())
