import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from qup.enums import MessageType


class MessageCreateRequest(BaseModel):
    channel_id: uuid.UUID
    content: str
    type: MessageType = MessageType.TEXT
    parent_id: Optional[uuid.UUID] = None
    question_id: Optional[uuid.UUID] = None
    attachments: List[uuid.UUID] = Field(default_factory=list, description="Ids of files uploaded by the author")
    mentions: List[uuid.UUID] = Field(default_factory=list, description="Ids of mentioned users")


class MessageUpdateRequest(BaseModel):
    content: str


class MessageResponse(BaseModel):
    """Soft-deleted messages are returned with empty content and is_deleted=true."""
    id: uuid.UUID
    content: str
    type: MessageType
    user_id: uuid.UUID
    channel_id: uuid.UUID
    parent_id: Optional[uuid.UUID] = None
    question_id: Optional[uuid.UUID] = None
    mentions: List[uuid.UUID] = Field(default_factory=list)
    vote_count: int
    is_edited: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
