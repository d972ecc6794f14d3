import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from qup.enums import ChannelType


class ChannelCreateRequest(BaseModel):
    name: str
    description: Optional[str] = None
    type: ChannelType = ChannelType.PUBLIC
    workspace_id: Optional[str] = Field(default=None, max_length=100)


class ChannelUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[ChannelType] = None
    is_archived: Optional[bool] = None


class ChannelResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    type: ChannelType
    workspace_id: str
    is_archived: bool
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ChannelMemberResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    channel_id: uuid.UUID
    joined_at: datetime

    model_config = {"from_attributes": True}


class LeaveChannelResponse(BaseModel):
    left: bool = Field(description="False when the caller was not a member")
