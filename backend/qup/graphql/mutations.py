"""
Mutation root.

register, login and refreshToken are open; every other field requires an
authenticated caller. `vote` and `createVote` are the same operation.
"""

import strawberry

from qup.graphql.inputs import (
    CreateChannelInput,
    CreateFileInput,
    CreateMessageInput,
    CreateQuestionInput,
    CreateUserInput,
    CreateVoteInput,
    UpdateChannelInput,
    UpdateMessageInput,
    UpdateQuestionInput,
    UpdateUserInput,
    to_uuid,
    to_uuids,
)
from qup.graphql.types import (
    AuthResponse,
    Channel,
    ChannelMember,
    Ctx,
    File,
    Message,
    Notification,
    Question,
    User,
    UserRole,
    VoteResult,
    VoteType,
)
from qup.services.auth_service import auth_service
from qup.services.channel_service import channel_service
from qup.services.file_service import file_service
from qup.services.message_service import message_service
from qup.services.notification_service import notification_service
from qup.services.question_service import question_service
from qup.services.user_service import user_service
from qup.services.vote_service import vote_service


def _auth_response(result) -> AuthResponse:
    user, token, refresh_token = result
    return AuthResponse(user=User.from_row(user), token=token, refresh_token=refresh_token)


async def _cast_vote(info: Ctx, input: CreateVoteInput) -> VoteResult:
    event = await vote_service.cast_vote(
        info.context.db,
        info.context.require_user(),
        to_uuid(input.target_id, "targetId"),
        input.target_type,
        input.type,
    )
    return VoteResult.from_event(event)


@strawberry.type
class Mutation:
    # ── Auth ──────────────────────────────────────────────────────────────

    @strawberry.mutation
    async def register(self, info: Ctx, input: CreateUserInput) -> AuthResponse:
        result = await auth_service.register(
            info.context.db,
            email=input.email,
            username=input.username,
            display_name=input.display_name,
            password=input.password,
            avatar=input.avatar,
        )
        return _auth_response(result)

    @strawberry.mutation
    async def login(self, info: Ctx, email: str, password: str) -> AuthResponse:
        return _auth_response(await auth_service.login(info.context.db, email, password))

    @strawberry.mutation
    async def logout(self, info: Ctx) -> bool:
        return await auth_service.logout(info.context.db, info.context.require_user())

    @strawberry.mutation
    async def refresh_token(self, info: Ctx, refresh_token: str) -> AuthResponse:
        return _auth_response(await auth_service.refresh(info.context.db, refresh_token))

    # ── Users ─────────────────────────────────────────────────────────────

    @strawberry.mutation
    async def update_user(self, info: Ctx, input: UpdateUserInput) -> User:
        row = await user_service.update_user(
            info.context.db,
            info.context.require_user(),
            display_name=input.display_name,
            avatar=input.avatar,
            status=input.status,
            push_token=input.push_token,
        )
        return User.from_row(row)

    @strawberry.mutation
    async def update_user_role(self, info: Ctx, user_id: strawberry.ID, role: UserRole) -> User:
        row = await user_service.update_user_role(
            info.context.db, info.context.require_user(), to_uuid(user_id, "userId"), role
        )
        return User.from_row(row)

    @strawberry.mutation
    async def delete_user(self, info: Ctx, id: strawberry.ID) -> bool:
        return await user_service.delete_user(info.context.db, info.context.require_user(), to_uuid(id))

    # ── Channels ──────────────────────────────────────────────────────────

    @strawberry.mutation
    async def create_channel(self, info: Ctx, input: CreateChannelInput) -> Channel:
        row = await channel_service.create_channel(
            info.context.db,
            info.context.require_user(),
            name=input.name,
            description=input.description,
            type=input.type,
            workspace_id=input.workspace_id,
        )
        return Channel.from_row(row)

    @strawberry.mutation
    async def update_channel(self, info: Ctx, id: strawberry.ID, input: UpdateChannelInput) -> Channel:
        row = await channel_service.update_channel(
            info.context.db,
            info.context.require_user(),
            to_uuid(id),
            name=input.name,
            description=input.description,
            type=input.type,
            is_archived=input.is_archived,
        )
        return Channel.from_row(row)

    @strawberry.mutation
    async def delete_channel(self, info: Ctx, id: strawberry.ID) -> bool:
        return await channel_service.delete_channel(info.context.db, info.context.require_user(), to_uuid(id))

    @strawberry.mutation
    async def join_channel(self, info: Ctx, channel_id: strawberry.ID) -> ChannelMember:
        row = await channel_service.join_channel(
            info.context.db, info.context.require_user(), to_uuid(channel_id, "channelId")
        )
        return ChannelMember.from_row(row)

    @strawberry.mutation
    async def leave_channel(self, info: Ctx, channel_id: strawberry.ID) -> bool:
        return await channel_service.leave_channel(
            info.context.db, info.context.require_user(), to_uuid(channel_id, "channelId")
        )

    # ── Messages ──────────────────────────────────────────────────────────

    @strawberry.mutation
    async def create_message(self, info: Ctx, input: CreateMessageInput) -> Message:
        row = await message_service.create_message(
            info.context.db,
            info.context.require_user(),
            channel_id=to_uuid(input.channel_id, "channelId"),
            content=input.content,
            type=input.type,
            parent_id=to_uuid(input.parent_id, "parentId"),
            question_id=to_uuid(input.question_id, "questionId"),
            attachments=to_uuids(input.attachments, "attachments"),
            mentions=to_uuids(input.mentions, "mentions"),
        )
        return Message.from_row(row)

    @strawberry.mutation
    async def update_message(self, info: Ctx, id: strawberry.ID, input: UpdateMessageInput) -> Message:
        row = await message_service.update_message(
            info.context.db, info.context.require_user(), to_uuid(id), input.content
        )
        return Message.from_row(row)

    @strawberry.mutation
    async def delete_message(self, info: Ctx, id: strawberry.ID) -> bool:
        return await message_service.delete_message(info.context.db, info.context.require_user(), to_uuid(id))

    # ── Questions ─────────────────────────────────────────────────────────

    @strawberry.mutation
    async def create_question(self, info: Ctx, input: CreateQuestionInput) -> Question:
        row = await question_service.create_question(
            info.context.db,
            info.context.require_user(),
            channel_id=to_uuid(input.channel_id, "channelId"),
            title=input.title,
            content=input.content,
            tags=input.tags,
        )
        return Question.from_row(row)

    @strawberry.mutation
    async def update_question(self, info: Ctx, id: strawberry.ID, input: UpdateQuestionInput) -> Question:
        row = await question_service.update_question(
            info.context.db,
            info.context.require_user(),
            to_uuid(id),
            title=input.title,
            content=input.content,
            tags=input.tags,
            status=input.status,
        )
        return Question.from_row(row)

    @strawberry.mutation
    async def delete_question(self, info: Ctx, id: strawberry.ID) -> bool:
        return await question_service.delete_question(info.context.db, info.context.require_user(), to_uuid(id))

    @strawberry.mutation
    async def mark_best_answer(self, info: Ctx, question_id: strawberry.ID, answer_id: strawberry.ID) -> Question:
        row = await question_service.mark_best_answer(
            info.context.db,
            info.context.require_user(),
            to_uuid(question_id, "questionId"),
            to_uuid(answer_id, "answerId"),
        )
        return Question.from_row(row)

    @strawberry.mutation
    async def close_question(self, info: Ctx, id: strawberry.ID) -> Question:
        row = await question_service.close_question(info.context.db, info.context.require_user(), to_uuid(id))
        return Question.from_row(row)

    # ── Votes ─────────────────────────────────────────────────────────────

    @strawberry.mutation
    async def vote(self, info: Ctx, input: CreateVoteInput) -> VoteResult:
        return await _cast_vote(info, input)

    @strawberry.mutation
    async def create_vote(self, info: Ctx, input: CreateVoteInput) -> VoteResult:
        return await _cast_vote(info, input)

    @strawberry.mutation
    async def update_vote(self, info: Ctx, id: strawberry.ID, type: VoteType) -> VoteResult:
        event = await vote_service.update_vote(info.context.db, info.context.require_user(), to_uuid(id), type)
        return VoteResult.from_event(event)

    @strawberry.mutation
    async def delete_vote(self, info: Ctx, id: strawberry.ID) -> bool:
        await vote_service.delete_vote(info.context.db, info.context.require_user(), to_uuid(id))
        return True

    # ── Files ─────────────────────────────────────────────────────────────

    @strawberry.mutation
    async def create_file(self, info: Ctx, input: CreateFileInput) -> File:
        row = await file_service.register_file(
            info.context.db,
            info.context.require_user(),
            filename=input.filename,
            original_name=input.original_name,
            mime_type=input.mime_type,
            size=input.size,
            url=input.url,
            message_id=to_uuid(input.message_id, "messageId"),
            question_id=to_uuid(input.question_id, "questionId"),
        )
        return File.from_row(row)

    @strawberry.mutation
    async def delete_file(self, info: Ctx, id: strawberry.ID) -> bool:
        return await file_service.delete_file(info.context.db, info.context.require_user(), to_uuid(id))

    # ── Notifications ─────────────────────────────────────────────────────

    @strawberry.mutation
    async def mark_notification_as_read(self, info: Ctx, id: strawberry.ID) -> Notification:
        row = await notification_service.mark_read(info.context.db, info.context.require_user(), to_uuid(id))
        return Notification.from_row(row)

    @strawberry.mutation
    async def mark_all_notifications_as_read(self, info: Ctx) -> bool:
        await notification_service.mark_all_read(info.context.db, info.context.require_user())
        return True

    @strawberry.mutation
    async def delete_notification(self, info: Ctx, id: strawberry.ID) -> bool:
        return await notification_service.delete(info.context.db, info.context.require_user(), to_uuid(id))
