from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from signbox.auth.models import User
from signbox.auth.schemas import UserResponse
from signbox.auth.service import list_users
from signbox.database import get_db
from signbox.dependencies import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: Annotated[User, Depends(get_current_user)]):
    return current_user


@router.get("/users", response_model=list[UserResponse])
async def read_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await list_users(db)
