"""
GraphQL object types.

Each type is built from an ORM row with `from_row`; the row itself is kept as
a private field so relation resolvers can load related records through the
services using the request's session and caller.
"""

import uuid
from datetime import datetime
from typing import List, Optional

import strawberry
from strawberry.scalars import JSON
from strawberry.types import Info

from qup import enums, models
from qup.graphql.context import GraphQLContext
from qup.services.channel_service import channel_service
from qup.services.file_service import file_service
from qup.services.message_service import message_service
from qup.services.question_service import question_service
from qup.services.user_service import user_service
from qup.services.vote_service import VoteEvent, vote_service

UserRole = strawberry.enum(enums.UserRole)
UserStatus = strawberry.enum(enums.UserStatus)
ChannelType = strawberry.enum(enums.ChannelType)
MessageType = strawberry.enum(enums.MessageType)
QuestionStatus = strawberry.enum(enums.QuestionStatus)
VoteType = strawberry.enum(enums.VoteType)
VoteTarget = strawberry.enum(enums.VoteTarget)
FileType = strawberry.enum(enums.FileType)
NotificationType = strawberry.enum(enums.NotificationType)

Ctx = Info[GraphQLContext, None]


def _id(value: Optional[uuid.UUID]) -> Optional[strawberry.ID]:
    return strawberry.ID(str(value)) if value is not None else None


@strawberry.type
class User:
    id: strawberry.ID
    email: str
    username: str
    display_name: str
    avatar: Optional[str]
    role: UserRole
    status: UserStatus
    reputation: int
    last_seen_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: models.User) -> "User":
        return cls(
            id=_id(row.id),
            email=row.email,
            username=row.username,
            display_name=row.display_name,
            avatar=row.avatar,
            role=row.role,
            status=row.status,
            reputation=row.reputation or 0,
            last_seen_at=row.last_seen_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


@strawberry.type
class Channel:
    id: strawberry.ID
    name: str
    description: Optional[str]
    type: ChannelType
    workspace_id: str
    is_archived: bool
    created_by: strawberry.ID
    created_at: datetime
    updated_at: datetime
    row: strawberry.Private[models.Channel]

    @classmethod
    def from_row(cls, row: models.Channel) -> "Channel":
        return cls(
            id=_id(row.id),
            name=row.name,
            description=row.description,
            type=row.type,
            workspace_id=row.workspace_id,
            is_archived=row.is_archived,
            created_by=_id(row.created_by),
            created_at=row.created_at,
            updated_at=row.updated_at,
            row=row,
        )

    @strawberry.field
    async def creator(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.created_by))

    @strawberry.field
    async def members(self, info: Ctx) -> List["ChannelMember"]:
        rows = await channel_service.list_members(info.context.db, info.context.require_user(), self.row.id)
        return [ChannelMember.from_row(r) for r in rows]

    @strawberry.field
    async def member_count(self, info: Ctx) -> int:
        return await channel_service.member_count(info.context.db, self.row.id)


@strawberry.type
class ChannelMember:
    id: strawberry.ID
    user_id: strawberry.ID
    channel_id: strawberry.ID
    joined_at: datetime
    row: strawberry.Private[models.ChannelMember]

    @classmethod
    def from_row(cls, row: models.ChannelMember) -> "ChannelMember":
        return cls(
            id=_id(row.id),
            user_id=_id(row.user_id),
            channel_id=_id(row.channel_id),
            joined_at=row.joined_at,
            row=row,
        )

    @strawberry.field
    async def user(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.user_id))

    @strawberry.field
    async def channel(self, info: Ctx) -> Channel:
        row = await channel_service.get_channel(info.context.db, info.context.require_user(), self.row.channel_id)
        return Channel.from_row(row)


@strawberry.type
class File:
    id: strawberry.ID
    filename: str
    original_name: str
    mime_type: str
    size: int
    type: FileType
    url: str
    uploaded_by: strawberry.ID
    message_id: Optional[strawberry.ID]
    question_id: Optional[strawberry.ID]
    created_at: datetime
    row: strawberry.Private[models.File]

    @classmethod
    def from_row(cls, row: models.File) -> "File":
        return cls(
            id=_id(row.id),
            filename=row.filename,
            original_name=row.original_name,
            mime_type=row.mime_type,
            size=row.size,
            type=row.type,
            url=row.url,
            uploaded_by=_id(row.uploaded_by),
            message_id=_id(row.message_id),
            question_id=_id(row.question_id),
            created_at=row.created_at,
            row=row,
        )

    @strawberry.field
    async def uploader(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.uploaded_by))


@strawberry.type
class Vote:
    id: strawberry.ID
    user_id: strawberry.ID
    target_id: strawberry.ID
    target_type: VoteTarget
    type: VoteType
    weight: int
    created_at: datetime
    updated_at: datetime
    row: strawberry.Private[models.Vote]

    @classmethod
    def from_row(cls, row: models.Vote) -> "Vote":
        return cls(
            id=_id(row.id),
            user_id=_id(row.user_id),
            target_id=_id(row.target_id),
            target_type=row.target_type,
            type=row.type,
            weight=row.weight,
            created_at=row.created_at,
            updated_at=row.updated_at,
            row=row,
        )

    @strawberry.field
    async def user(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.user_id))


@strawberry.type
class VoteResult:
    vote: Vote
    vote_count: int

    @classmethod
    def from_event(cls, event: VoteEvent) -> "VoteResult":
        return cls(vote=Vote.from_row(event.vote), vote_count=event.vote_count)


@strawberry.type
class Message:
    id: strawberry.ID
    content: str
    type: MessageType
    author_id: strawberry.ID
    channel_id: strawberry.ID
    parent_id: Optional[strawberry.ID]
    question_id: Optional[strawberry.ID]
    mentions: List[strawberry.ID]
    vote_count: int
    is_edited: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    row: strawberry.Private[models.Message]

    @classmethod
    def from_row(cls, row: models.Message) -> "Message":
        return cls(
            id=_id(row.id),
            content=row.content,
            type=row.type,
            author_id=_id(row.user_id),
            channel_id=_id(row.channel_id),
            parent_id=_id(row.parent_id),
            question_id=_id(row.question_id),
            mentions=[strawberry.ID(str(m)) for m in (row.mentions or [])],
            vote_count=row.vote_count or 0,
            is_edited=row.is_edited,
            is_deleted=row.is_deleted,
            created_at=row.created_at,
            updated_at=row.updated_at,
            row=row,
        )

    @strawberry.field
    async def author(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.user_id))

    @strawberry.field
    async def channel(self, info: Ctx) -> Channel:
        row = await channel_service.get_channel(info.context.db, info.context.require_user(), self.row.channel_id)
        return Channel.from_row(row)

    @strawberry.field
    async def parent(self, info: Ctx) -> Optional["Message"]:
        if self.row.parent_id is None:
            return None
        row = await message_service.get_message(info.context.db, info.context.require_user(), self.row.parent_id)
        return Message.from_row(row)

    @strawberry.field
    async def replies(self, info: Ctx) -> List["Message"]:
        rows = await message_service.list_replies(info.context.db, info.context.require_user(), self.row.id)
        return [Message.from_row(r) for r in rows]

    @strawberry.field
    async def reply_count(self, info: Ctx) -> int:
        return await message_service.reply_count(info.context.db, self.row.id)

    @strawberry.field
    async def question(self, info: Ctx) -> Optional["Question"]:
        if self.row.question_id is None:
            return None
        row = await question_service.get_question(
            info.context.db, info.context.require_user(), self.row.question_id, count_view=False
        )
        return Question.from_row(row)

    @strawberry.field
    async def attachments(self, info: Ctx) -> List[File]:
        rows = await file_service.files_for(info.context.db, message_id=self.row.id)
        return [File.from_row(r) for r in rows]

    @strawberry.field
    async def votes(self, info: Ctx) -> List[Vote]:
        target = enums.VoteTarget.ANSWER if self.row.type == enums.MessageType.ANSWER else enums.VoteTarget.MESSAGE
        rows = await vote_service.votes_for(info.context.db, self.row.id, target)
        return [Vote.from_row(r) for r in rows]


@strawberry.type
class Question:
    id: strawberry.ID
    title: str
    content: str
    tags: List[str]
    status: QuestionStatus
    view_count: int
    answer_count: int
    vote_count: int
    best_answer_id: Optional[strawberry.ID]
    closed_at: Optional[datetime]
    closed_by: Optional[strawberry.ID]
    author_id: strawberry.ID
    channel_id: strawberry.ID
    created_at: datetime
    updated_at: datetime
    row: strawberry.Private[models.Question]

    @classmethod
    def from_row(cls, row: models.Question) -> "Question":
        return cls(
            id=_id(row.id),
            title=row.title,
            content=row.content,
            tags=list(row.tags or []),
            status=row.status,
            view_count=row.view_count or 0,
            answer_count=row.answer_count or 0,
            vote_count=row.vote_count or 0,
            best_answer_id=_id(row.best_answer_id),
            closed_at=row.closed_at,
            closed_by=_id(row.closed_by),
            author_id=_id(row.user_id),
            channel_id=_id(row.channel_id),
            created_at=row.created_at,
            updated_at=row.updated_at,
            row=row,
        )

    @strawberry.field
    async def author(self, info: Ctx) -> User:
        return User.from_row(await user_service.get_user(info.context.db, self.row.user_id))

    @strawberry.field
    async def channel(self, info: Ctx) -> Channel:
        row = await channel_service.get_channel(info.context.db, info.context.require_user(), self.row.channel_id)
        return Channel.from_row(row)

    @strawberry.field
    async def answers(self, info: Ctx) -> List[Message]:
        rows = await question_service.list_answers(info.context.db, self.row.id)
        return [Message.from_row(r) for r in rows]

    @strawberry.field
    async def best_answer(self, info: Ctx) -> Optional[Message]:
        if self.row.best_answer_id is None:
            return None
        row = await message_service.get_message(info.context.db, info.context.require_user(), self.row.best_answer_id)
        return Message.from_row(row)

    @strawberry.field
    async def votes(self, info: Ctx) -> List[Vote]:
        rows = await vote_service.votes_for(info.context.db, self.row.id, enums.VoteTarget.QUESTION)
        return [Vote.from_row(r) for r in rows]

    @strawberry.field
    async def files(self, info: Ctx) -> List[File]:
        rows = await file_service.files_for(info.context.db, question_id=self.row.id)
        return [File.from_row(r) for r in rows]


@strawberry.type
class Notification:
    id: strawberry.ID
    user_id: strawberry.ID
    type: NotificationType
    title: str
    message: str
    data: Optional[JSON]
    is_read: bool
    created_at: datetime

    @classmethod
    def from_row(cls, row: models.Notification) -> "Notification":
        return cls(
            id=_id(row.id),
            user_id=_id(row.user_id),
            type=row.type,
            title=row.title,
            message=row.message,
            data=row.data,
            is_read=row.is_read,
            created_at=row.created_at,
        )


@strawberry.type
class AuthResponse:
    user: User
    token: str
    refresh_token: str


@strawberry.type
class SearchResults:
    messages: List[Message]
    questions: List[Question]
    users: List[User]
