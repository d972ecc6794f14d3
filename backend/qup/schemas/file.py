import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from qup.enums import FileType


class FileResponse(BaseModel):
    id: uuid.UUID
    filename: str
    original_name: str
    mime_type: str
    size: int
    type: FileType
    url: str
    uploaded_by: uuid.UUID
    message_id: Optional[uuid.UUID] = None
    question_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}
