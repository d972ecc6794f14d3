from typing import List

from pydantic import BaseModel, Field

from qup.schemas.message import MessageResponse
from qup.schemas.question import QuestionResponse
from qup.schemas.user import UserResponse


class SearchResponse(BaseModel):
    messages: List[MessageResponse] = Field(default_factory=list)
    questions: List[QuestionResponse] = Field(default_factory=list)
    users: List[UserResponse] = Field(default_factory=list)
