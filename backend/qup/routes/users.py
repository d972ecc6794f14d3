"""
Qup Backend - User Routes
===========================

Profiles are readable by any authenticated user. Only the caller's own
profile can be edited here; role changes need `manage_roles` and deleting
someone else needs `manage_users`.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import User
from qup.schemas.common import ErrorResponse
from qup.schemas.user import UserResponse, UserRoleUpdateRequest, UserUpdateRequest
from qup.services.user_service import user_service

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("", response_model=List[UserResponse], summary="List users")
async def list_users(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[User]:
    return await user_service.list_users(db, limit=limit, offset=offset)


@router.put("/me", response_model=UserResponse, summary="Update own profile")
async def update_me(
    body: UserUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await user_service.update_user(
        db,
        user,
        display_name=body.display_name,
        avatar=body.avatar,
        status=body.status,
        push_token=body.push_token,
    )


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user",
)
async def get_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await user_service.get_user(db, user_id)


@router.put(
    "/{user_id}/role",
    response_model=UserResponse,
    responses={403: {"description": "Caller cannot manage roles", "model": ErrorResponse}},
    summary="Change a user's role",
)
async def update_user_role(
    user_id: uuid.UUID,
    body: UserRoleUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    return await user_service.update_user_role(db, user, user_id, body.role)


@router.delete("/{user_id}", status_code=204, summary="Delete a user")
async def delete_user(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await user_service.delete_user(db, user, user_id)
