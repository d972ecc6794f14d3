import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from qup.enums import QuestionStatus


class QuestionCreateRequest(BaseModel):
    channel_id: uuid.UUID
    title: str
    content: str
    tags: List[str] = Field(default_factory=list)


class QuestionUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[QuestionStatus] = None


class BestAnswerRequest(BaseModel):
    answer_id: uuid.UUID


class QuestionResponse(BaseModel):
    id: uuid.UUID
    title: str
    content: str
    user_id: uuid.UUID
    channel_id: uuid.UUID
    tags: List[str]
    status: QuestionStatus
    view_count: int
    answer_count: int
    vote_count: int
    best_answer_id: Optional[uuid.UUID] = None
    closed_at: Optional[datetime] = None
    closed_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
