from typing import Optional

from pydantic import BaseModel, Field

from qup.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """
    Registration payload.

    Email and username formats are checked by the auth service rather than
    by Pydantic, so that rule violations answer 400 with the same messages
    the GraphQL API returns.
    """
    email: str
    username: str
    display_name: str
    password: str
    avatar: Optional[str] = Field(default=None, max_length=500)


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str = Field(description="Access token, sent as `Authorization: Bearer <token>`")
    refresh_token: str
