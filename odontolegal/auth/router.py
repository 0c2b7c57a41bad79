from datetime import timedelta
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from odontolegal.database import get_db
from odontolegal.auth import schemas, security
from odontolegal.auth.models import UserRole
from odontolegal.auth.service import AuthService
from odontolegal.auth.dependencies import get_current_actor, RequireRole
from odontolegal.config import settings

router = APIRouter()


@router.post("/login", response_model=schemas.Token)
async def login_access_token(
    login_data: schemas.UserLogin,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    JSON login endpoint, accepts {"email": "...", "password": "..."}
    """
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Incorrect email or password",
        )
    elif not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")

    access_token = security.create_access_token(
        data={"sub": user.email, "role": user.role.value},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=schemas.Actor)
async def read_me(actor: schemas.Actor = Depends(get_current_actor)):
    return actor


@router.post("/users", response_model=schemas.UserResponse, status_code=201)
async def create_user(
    user_in: schemas.UserCreate,
    actor: schemas.Actor = Depends(RequireRole(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Create a user account. Admin only."""
    return await AuthService(db).create_user(user_in)


@router.get("/users", response_model=List[schemas.UserResponse])
async def list_users(
    skip: int = 0,
    limit: int = 100,
    actor: schemas.Actor = Depends(RequireRole(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await AuthService(db).list_users(skip, limit)
