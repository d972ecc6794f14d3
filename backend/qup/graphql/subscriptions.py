"""
Subscription root, fed by the in-process event broker.

Channel-scoped subscriptions check read access once, when the subscription
starts. Vote subscriptions are keyed by target and need the same read
access to the target's channel.
notificationCreated only ever delivers the caller's own notifications.
"""

from typing import AsyncGenerator

import strawberry

from qup.core import pubsub
from qup.graphql.inputs import to_uuid
from qup.graphql.types import Ctx, Message, Notification, Question, User, VoteResult, VoteTarget
from qup.services.channel_service import channel_service
from qup.services.vote_service import vote_service


async def _channel_key(info: Ctx, channel_id: strawberry.ID) -> str:
    channel = await channel_service.get_channel(
        info.context.db, info.context.require_user(), to_uuid(channel_id, "channelId")
    )
    return str(channel.id)


async def _vote_key(info: Ctx, target_id: strawberry.ID, target_type: VoteTarget) -> str:
    _, canonical = await vote_service.visible_target(
        info.context.db, info.context.require_user(), to_uuid(target_id, "targetId"), target_type
    )
    return pubsub.vote_key(canonical, to_uuid(target_id, "targetId"))


@strawberry.type
class Subscription:
    # ── Messages ──────────────────────────────────────────────────────────

    @strawberry.subscription
    async def message_created(self, info: Ctx, channel_id: strawberry.ID) -> AsyncGenerator[Message, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.MESSAGE_CREATED, key):
            yield Message.from_row(row)

    @strawberry.subscription
    async def message_updated(self, info: Ctx, channel_id: strawberry.ID) -> AsyncGenerator[Message, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.MESSAGE_UPDATED, key):
            yield Message.from_row(row)

    @strawberry.subscription
    async def message_deleted(
        self, info: Ctx, channel_id: strawberry.ID
    ) -> AsyncGenerator[strawberry.ID, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.MESSAGE_DELETED, key):
            yield strawberry.ID(str(row.id))

    # ── Questions ─────────────────────────────────────────────────────────

    @strawberry.subscription
    async def question_created(self, info: Ctx, channel_id: strawberry.ID) -> AsyncGenerator[Question, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.QUESTION_CREATED, key):
            yield Question.from_row(row)

    @strawberry.subscription
    async def question_updated(self, info: Ctx, channel_id: strawberry.ID) -> AsyncGenerator[Question, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.QUESTION_UPDATED, key):
            yield Question.from_row(row)

    @strawberry.subscription
    async def question_deleted(
        self, info: Ctx, channel_id: strawberry.ID
    ) -> AsyncGenerator[strawberry.ID, None]:
        key = await _channel_key(info, channel_id)
        async for row in pubsub.broker.subscribe(pubsub.QUESTION_DELETED, key):
            yield strawberry.ID(str(row.id))

    # ── Votes ─────────────────────────────────────────────────────────────

    @strawberry.subscription
    async def vote_created(
        self, info: Ctx, target_id: strawberry.ID, target_type: VoteTarget
    ) -> AsyncGenerator[VoteResult, None]:
        key = await _vote_key(info, target_id, target_type)
        async for event in pubsub.broker.subscribe(pubsub.VOTE_CREATED, key):
            yield VoteResult.from_event(event)

    @strawberry.subscription
    async def vote_updated(
        self, info: Ctx, target_id: strawberry.ID, target_type: VoteTarget
    ) -> AsyncGenerator[VoteResult, None]:
        key = await _vote_key(info, target_id, target_type)
        async for event in pubsub.broker.subscribe(pubsub.VOTE_UPDATED, key):
            yield VoteResult.from_event(event)

    @strawberry.subscription
    async def vote_deleted(
        self, info: Ctx, target_id: strawberry.ID, target_type: VoteTarget
    ) -> AsyncGenerator[VoteResult, None]:
        key = await _vote_key(info, target_id, target_type)
        async for event in pubsub.broker.subscribe(pubsub.VOTE_DELETED, key):
            yield VoteResult.from_event(event)

    # ── Users / Notifications ─────────────────────────────────────────────

    @strawberry.subscription
    async def user_status_changed(self, info: Ctx) -> AsyncGenerator[User, None]:
        info.context.require_user()
        async for row in pubsub.broker.subscribe(pubsub.USER_STATUS_CHANGED, None):
            yield User.from_row(row)

    @strawberry.subscription
    async def notification_created(self, info: Ctx) -> AsyncGenerator[Notification, None]:
        user = info.context.require_user()
        async for row in pubsub.broker.subscribe(pubsub.NOTIFICATION_CREATED, str(user.id)):
            yield Notification.from_row(row)
