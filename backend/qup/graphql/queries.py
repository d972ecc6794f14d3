"""Query root. Every field requires an authenticated caller."""

from typing import List, Optional

import strawberry

from qup.graphql.inputs import to_uuid
from qup.graphql.types import (
    Channel,
    ChannelMember,
    Ctx,
    File,
    Message,
    Notification,
    Question,
    QuestionStatus,
    SearchResults,
    User,
    Vote,
    VoteTarget,
)
from qup.services.channel_service import channel_service
from qup.services.file_service import file_service
from qup.services.message_service import message_service
from qup.services.notification_service import notification_service
from qup.services.question_service import question_service
from qup.services.search_service import search_service
from qup.services.user_service import user_service
from qup.services.vote_service import vote_service


@strawberry.type
class Query:
    # ── Users ─────────────────────────────────────────────────────────────

    @strawberry.field
    async def me(self, info: Ctx) -> User:
        return User.from_row(info.context.require_user())

    @strawberry.field
    async def user(self, info: Ctx, id: strawberry.ID) -> Optional[User]:
        info.context.require_user()
        return User.from_row(await user_service.get_user(info.context.db, to_uuid(id)))

    @strawberry.field
    async def users(self, info: Ctx, limit: int = 50, offset: int = 0) -> List[User]:
        info.context.require_user()
        rows = await user_service.list_users(info.context.db, limit=limit, offset=offset)
        return [User.from_row(r) for r in rows]

    # ── Channels ──────────────────────────────────────────────────────────

    @strawberry.field
    async def channels(
        self, info: Ctx, workspace_id: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[Channel]:
        rows = await channel_service.list_channels(
            info.context.db, info.context.require_user(), workspace_id=workspace_id, limit=limit, offset=offset
        )
        return [Channel.from_row(r) for r in rows]

    @strawberry.field
    async def channel(self, info: Ctx, id: strawberry.ID) -> Optional[Channel]:
        row = await channel_service.get_channel(info.context.db, info.context.require_user(), to_uuid(id))
        return Channel.from_row(row)

    @strawberry.field
    async def channel_members(self, info: Ctx, channel_id: strawberry.ID) -> List[ChannelMember]:
        rows = await channel_service.list_members(
            info.context.db, info.context.require_user(), to_uuid(channel_id, "channelId")
        )
        return [ChannelMember.from_row(r) for r in rows]

    # ── Messages ──────────────────────────────────────────────────────────

    @strawberry.field
    async def messages(
        self, info: Ctx, channel_id: strawberry.ID, limit: int = 50, offset: int = 0
    ) -> List[Message]:
        rows = await message_service.list_messages(
            info.context.db,
            info.context.require_user(),
            to_uuid(channel_id, "channelId"),
            limit=limit,
            offset=offset,
        )
        return [Message.from_row(r) for r in rows]

    @strawberry.field
    async def message(self, info: Ctx, id: strawberry.ID) -> Optional[Message]:
        row = await message_service.get_message(info.context.db, info.context.require_user(), to_uuid(id))
        return Message.from_row(row)

    @strawberry.field
    async def message_replies(self, info: Ctx, message_id: strawberry.ID) -> List[Message]:
        rows = await message_service.list_replies(
            info.context.db, info.context.require_user(), to_uuid(message_id, "messageId")
        )
        return [Message.from_row(r) for r in rows]

    # ── Questions ─────────────────────────────────────────────────────────

    @strawberry.field
    async def questions(
        self,
        info: Ctx,
        channel_id: Optional[strawberry.ID] = None,
        status: Optional[QuestionStatus] = None,
        tag: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Question]:
        rows = await question_service.list_questions(
            info.context.db,
            info.context.require_user(),
            channel_id=to_uuid(channel_id, "channelId"),
            status=status,
            tag=tag,
            limit=limit,
            offset=offset,
        )
        return [Question.from_row(r) for r in rows]

    @strawberry.field
    async def question(self, info: Ctx, id: strawberry.ID) -> Optional[Question]:
        row = await question_service.get_question(info.context.db, info.context.require_user(), to_uuid(id))
        return Question.from_row(row)

    @strawberry.field
    async def question_answers(self, info: Ctx, question_id: strawberry.ID) -> List[Message]:
        qid = to_uuid(question_id, "questionId")
        await question_service.get_question(info.context.db, info.context.require_user(), qid, count_view=False)
        return [Message.from_row(r) for r in await question_service.list_answers(info.context.db, qid)]

    # ── Votes / Files ─────────────────────────────────────────────────────

    @strawberry.field
    async def votes(self, info: Ctx, target_id: strawberry.ID, target_type: VoteTarget) -> List[Vote]:
        rows = await vote_service.list_votes(
            info.context.db, info.context.require_user(), to_uuid(target_id, "targetId"), target_type
        )
        return [Vote.from_row(r) for r in rows]

    @strawberry.field
    async def files(
        self, info: Ctx, message_id: Optional[strawberry.ID] = None, question_id: Optional[strawberry.ID] = None
    ) -> List[File]:
        rows = await file_service.list_files(
            info.context.db,
            info.context.require_user(),
            message_id=to_uuid(message_id, "messageId"),
            question_id=to_uuid(question_id, "questionId"),
        )
        return [File.from_row(r) for r in rows]

    @strawberry.field
    async def file(self, info: Ctx, id: strawberry.ID) -> Optional[File]:
        row = await file_service.get_visible_file(info.context.db, info.context.require_user(), to_uuid(id))
        return File.from_row(row)

    # ── Notifications ─────────────────────────────────────────────────────

    @strawberry.field
    async def notifications(
        self, info: Ctx, limit: int = 50, offset: int = 0, unread_only: bool = False
    ) -> List[Notification]:
        rows = await notification_service.list_notifications(
            info.context.db, info.context.require_user(), limit=limit, offset=offset, unread_only=unread_only
        )
        return [Notification.from_row(r) for r in rows]

    @strawberry.field
    async def unread_notifications_count(self, info: Ctx) -> int:
        return await notification_service.unread_count(info.context.db, info.context.require_user())

    # ── Search ────────────────────────────────────────────────────────────

    @strawberry.field
    async def search(
        self, info: Ctx, query: str, type: Optional[str] = None, limit: int = 20
    ) -> SearchResults:
        results = await search_service.search(
            info.context.db, info.context.require_user(), query, type=type, limit=limit
        )
        return SearchResults(
            messages=[Message.from_row(r) for r in results.messages],
            questions=[Question.from_row(r) for r in results.questions],
            users=[User.from_row(r) for r in results.users],
        )
