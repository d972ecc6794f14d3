"""GraphQL input types and id parsing."""

import uuid
from typing import List, Optional

import strawberry

from qup.exceptions import ValidationError
from qup.graphql.types import ChannelType, MessageType, QuestionStatus, UserStatus, VoteTarget, VoteType


def to_uuid(value: Optional[str], field: str = "id") -> Optional[uuid.UUID]:
    """GraphQL IDs arrive as strings; a malformed one is a BAD_USER_INPUT error."""
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {field}", field=field)


def to_uuids(values: Optional[List[str]], field: str) -> List[uuid.UUID]:
    return [to_uuid(v, field) for v in (values or [])]


@strawberry.input
class CreateUserInput:
    email: str
    username: str
    display_name: str
    password: str
    avatar: Optional[str] = None


@strawberry.input
class UpdateUserInput:
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    status: Optional[UserStatus] = None
    push_token: Optional[str] = None


@strawberry.input
class CreateChannelInput:
    name: str
    description: Optional[str] = None
    type: ChannelType = ChannelType.PUBLIC
    workspace_id: Optional[str] = None


@strawberry.input
class UpdateChannelInput:
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[ChannelType] = None
    is_archived: Optional[bool] = None


@strawberry.input
class CreateMessageInput:
    content: str
    channel_id: strawberry.ID
    type: MessageType = MessageType.TEXT
    parent_id: Optional[strawberry.ID] = None
    question_id: Optional[strawberry.ID] = None
    attachments: Optional[List[strawberry.ID]] = None
    mentions: Optional[List[strawberry.ID]] = None


@strawberry.input
class UpdateMessageInput:
    content: str


@strawberry.input
class CreateQuestionInput:
    title: str
    content: str
    channel_id: strawberry.ID
    tags: Optional[List[str]] = None


@strawberry.input
class UpdateQuestionInput:
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[QuestionStatus] = None


@strawberry.input
class CreateVoteInput:
    target_id: strawberry.ID
    target_type: VoteTarget
    type: VoteType


@strawberry.input
class CreateFileInput:
    """Metadata for a file already stored elsewhere; size and MIME type are still checked."""

    filename: str
    original_name: str
    mime_type: str
    size: int
    url: str
    message_id: Optional[strawberry.ID] = None
    question_id: Optional[strawberry.ID] = None
