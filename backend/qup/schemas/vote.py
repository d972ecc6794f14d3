import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from qup.enums import VoteTarget, VoteType


class VoteCreateRequest(BaseModel):
    target_id: uuid.UUID
    target_type: VoteTarget
    type: VoteType


class VoteUpdateRequest(BaseModel):
    type: VoteType


class VoteResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    target_id: uuid.UUID
    target_type: VoteTarget
    type: VoteType
    weight: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VoteResult(BaseModel):
    vote: VoteResponse
    vote_count: int = Field(description="Target's signed weight total after this vote")


class VoteCountResponse(BaseModel):
    vote_count: int
