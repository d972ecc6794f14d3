"""
Qup Backend - Channel Service
===============================

What:  Channel CRUD, membership, and the access checks other services reuse.
Who:   REST channels router, GraphQL channel resolvers, and the message /
       question / search services (assert_can_view, ensure_can_post,
       visible_channel_ids).

Access Model:
    PUBLIC            → anyone authenticated may read and join
    PRIVATE / DIRECT  → members and the creator only; cannot be joined
    is_archived       → still readable, but no joins and no new posts
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qup.constants import DEFAULT_WORKSPACE_ID
from qup.core import permissions, validation
from qup.database import utcnow
from qup.enums import ChannelType
from qup.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from qup.models import Channel, ChannelMember, File, Message, Question, User, Vote

logger = logging.getLogger(__name__)


class ChannelService:
    # ── Access helpers ────────────────────────────────────────────────────

    async def is_member(self, db: AsyncSession, user_id: uuid.UUID, channel_id: uuid.UUID) -> bool:
        result = await db.execute(
            select(ChannelMember.id).where(
                ChannelMember.user_id == user_id,
                ChannelMember.channel_id == channel_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def can_view(self, db: AsyncSession, user: User, channel: Channel) -> bool:
        if channel.type == ChannelType.PUBLIC or channel.created_by == user.id:
            return True
        return await self.is_member(db, user.id, channel.id)

    async def assert_can_view(self, db: AsyncSession, user: User, channel: Channel) -> None:
        if not await self.can_view(db, user, channel):
            raise PermissionDeniedError("Access denied", context={"channel_id": str(channel.id)})

    async def ensure_can_post(self, db: AsyncSession, user: User, channel: Channel) -> None:
        await self.assert_can_view(db, user, channel)
        if channel.is_archived:
            raise PermissionDeniedError(
                "Cannot post to an archived channel", context={"channel_id": str(channel.id)}
            )

    def visible_channel_ids(self, user: User):
        """Subquery of channel ids the user may read, for filtering other tables."""
        member_of = select(ChannelMember.channel_id).where(ChannelMember.user_id == user.id)
        return select(Channel.id).where(
            or_(
                Channel.type == ChannelType.PUBLIC,
                Channel.created_by == user.id,
                Channel.id.in_(member_of),
            )
        )

    async def _load(self, db: AsyncSession, channel_id: uuid.UUID) -> Channel:
        channel = await db.get(Channel, channel_id)
        if channel is None:
            raise NotFoundError(resource="channel", resource_id=str(channel_id))
        return channel

    def _can_manage(self, user: User, channel: Channel) -> bool:
        if channel.created_by == user.id:
            return True
        return permissions.has_permission(user.role, "manage_channels")

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_channels(
        self,
        db: AsyncSession,
        user: User,
        workspace_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Channel]:
        query = select(Channel).where(Channel.id.in_(self.visible_channel_ids(user)))
        if workspace_id:
            query = query.where(Channel.workspace_id == workspace_id)
        query = query.order_by(Channel.created_at.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_channel(self, db: AsyncSession, user: User, channel_id: uuid.UUID) -> Channel:
        channel = await self._load(db, channel_id)
        await self.assert_can_view(db, user, channel)
        return channel

    async def list_members(self, db: AsyncSession, user: User, channel_id: uuid.UUID) -> List[ChannelMember]:
        await self.get_channel(db, user, channel_id)
        result = await db.execute(
            select(ChannelMember)
            .where(ChannelMember.channel_id == channel_id)
            .order_by(ChannelMember.joined_at.asc())
        )
        return list(result.scalars().all())

    async def member_count(self, db: AsyncSession, channel_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(ChannelMember.id)).where(ChannelMember.channel_id == channel_id)
        )
        return result.scalar() or 0

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create_channel(
        self,
        db: AsyncSession,
        user: User,
        name: str,
        description: Optional[str] = None,
        type: ChannelType = ChannelType.PUBLIC,
        workspace_id: Optional[str] = None,
    ) -> Channel:
        channel = Channel(
            name=validation.validate_channel_name(name),
            description=validation.validate_channel_description(description),
            type=type,
            workspace_id=workspace_id or DEFAULT_WORKSPACE_ID,
            is_archived=False,
            created_by=user.id,
        )
        db.add(channel)
        await db.flush()
        db.add(ChannelMember(user_id=user.id, channel_id=channel.id))
        await db.flush()
        logger.info("Channel %s (%s) created by %s", channel.id, channel.type.value, user.id)
        return channel

    async def update_channel(
        self,
        db: AsyncSession,
        user: User,
        channel_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        type: Optional[ChannelType] = None,
        is_archived: Optional[bool] = None,
    ) -> Channel:
        channel = await self._load(db, channel_id)
        if not self._can_manage(user, channel):
            raise PermissionDeniedError("Cannot edit this channel", context={"channel_id": str(channel_id)})

        if name is not None:
            channel.name = validation.validate_channel_name(name)
        if description is not None:
            channel.description = validation.validate_channel_description(description)
        if type is not None:
            channel.type = type
        if is_archived is not None:
            channel.is_archived = is_archived
        channel.updated_at = utcnow()
        await db.flush()
        logger.info("Channel %s updated by %s", channel.id, user.id)
        return channel

    async def delete_channel(self, db: AsyncSession, user: User, channel_id: uuid.UUID) -> bool:
        """Removes the channel with its members, messages, questions, their votes and files."""
        channel = await self._load(db, channel_id)
        if not self._can_manage(user, channel):
            raise PermissionDeniedError("Cannot delete this channel", context={"channel_id": str(channel_id)})
        await self.purge_channel(db, channel)
        logger.info("Channel %s deleted by %s", channel_id, user.id)
        return True

    async def purge_channel(self, db: AsyncSession, channel: Channel) -> None:
        """Deletes a channel and everything in it, with no permission check."""
        # file_service imports this module
        from qup.services.file_service import file_service

        message_ids = select(Message.id).where(Message.channel_id == channel.id)
        question_ids = select(Question.id).where(Question.channel_id == channel.id)
        no_sync = {"synchronize_session": False}
        await db.execute(delete(Vote).where(Vote.target_id.in_(message_ids)).execution_options(**no_sync))
        await db.execute(delete(Vote).where(Vote.target_id.in_(question_ids)).execution_options(**no_sync))
        await file_service.purge(db, or_(File.message_id.in_(message_ids), File.question_id.in_(question_ids)))
        await db.execute(delete(Message).where(Message.channel_id == channel.id))
        await db.execute(delete(Question).where(Question.channel_id == channel.id))
        await db.execute(delete(ChannelMember).where(ChannelMember.channel_id == channel.id))
        await db.delete(channel)
        await db.flush()

    async def join_channel(self, db: AsyncSession, user: User, channel_id: uuid.UUID) -> ChannelMember:
        channel = await self._load(db, channel_id)
        if channel.type != ChannelType.PUBLIC:
            raise PermissionDeniedError("Cannot join private channel", context={"channel_id": str(channel_id)})
        if channel.is_archived:
            raise PermissionDeniedError("Cannot join an archived channel", context={"channel_id": str(channel_id)})
        if await self.is_member(db, user.id, channel_id):
            raise ConflictError("Already a member of this channel", context={"channel_id": str(channel_id)})

        member = ChannelMember(user_id=user.id, channel_id=channel_id)
        db.add(member)
        await db.flush()
        logger.info("User %s joined channel %s", user.id, channel_id)
        return member

    async def leave_channel(self, db: AsyncSession, user: User, channel_id: uuid.UUID) -> bool:
        """Returns False when the user was not a member."""
        await self._load(db, channel_id)
        result = await db.execute(
            delete(ChannelMember).where(
                ChannelMember.user_id == user.id,
                ChannelMember.channel_id == channel_id,
            )
        )
        left = (result.rowcount or 0) > 0
        if left:
            logger.info("User %s left channel %s", user.id, channel_id)
        return left


channel_service = ChannelService()
