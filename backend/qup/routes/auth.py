"""
Qup Backend - Auth Routes
===========================

POST /api/v1/auth/register   create an account, returns tokens (201)
POST /api/v1/auth/login      exchange credentials for tokens
POST /api/v1/auth/refresh    exchange a refresh token for a new pair
POST /api/v1/auth/logout     revoke every outstanding token of the caller
GET  /api/v1/auth/me         the authenticated user

The refresh token travels in the JSON body, never in a cookie.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import User
from qup.schemas.auth import AuthResponse, LoginRequest, RefreshRequest, RegisterRequest
from qup.schemas.common import ErrorResponse
from qup.schemas.user import UserResponse
from qup.services.auth_service import auth_service

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


def _auth_response(result) -> AuthResponse:
    user, token, refresh_token = result
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=token,
        refresh_token=refresh_token,
    )


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid email, username, display name or password", "model": ErrorResponse},
        409: {"description": "Email or username already taken", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db_session)) -> AuthResponse:
    result = await auth_service.register(
        db,
        email=body.email,
        username=body.username,
        display_name=body.display_name,
        password=body.password,
        avatar=body.avatar,
    )
    return _auth_response(result)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db_session)) -> AuthResponse:
    return _auth_response(await auth_service.login(db, body.email, body.password))


@router.post(
    "/refresh",
    response_model=AuthResponse,
    responses={401: {"description": "Refresh token invalid, expired or revoked", "model": ErrorResponse}},
    summary="Refresh the token pair",
)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db_session)) -> AuthResponse:
    return _auth_response(await auth_service.refresh(db, body.refresh_token))


@router.post("/logout", status_code=204, summary="Log out and revoke all tokens")
async def logout(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await auth_service.logout(db, user)


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(user: User = Depends(get_current_user)) -> User:
    return user
