import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from qup.enums import UserRole, UserStatus


class UserResponse(BaseModel):
    """Public user profile. Password hash, token version and push token are never exposed."""
    id: uuid.UUID
    email: str
    username: str
    display_name: str
    avatar: Optional[str] = None
    role: UserRole
    status: UserStatus
    reputation: int
    last_seen_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserUpdateRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=500)
    status: Optional[UserStatus] = None
    push_token: Optional[str] = Field(default=None, max_length=500)


class UserRoleUpdateRequest(BaseModel):
    role: UserRole
