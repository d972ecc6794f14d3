"""
Qup Backend - User Service
============================

What:  Profile reads and updates, role management and account deletion.
Who:   REST users router and GraphQL user queries/mutations.

Authorization:
    - update_user only ever touches the caller's own profile
    - update_user_role requires `manage_roles` (ADMIN)
    - delete_user is allowed on yourself, or with `manage_users` (ADMIN);
      it removes the account's content explicitly instead of relying on
      ON DELETE CASCADE, which would bypass vote totals and stored files
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qup.core import permissions, pubsub, validation
from qup.database import utcnow
from qup.enums import MessageType, QuestionStatus, UserRole, UserStatus
from qup.exceptions import DatabaseError, NotFoundError, PermissionDeniedError
from qup.models import Channel, ChannelMember, File, Message, Notification, Question, User, Vote
from qup.services.channel_service import channel_service
from qup.services.file_service import file_service
from qup.services.vote_service import vote_service

logger = logging.getLogger(__name__)


class UserService:
    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def get_users_by_ids(self, db: AsyncSession, user_ids: List[uuid.UUID]) -> List[User]:
        if not user_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        return list(result.scalars().all())

    async def list_users(self, db: AsyncSession, limit: int = 50, offset: int = 0) -> List[User]:
        try:
            result = await db.execute(
                select(User).order_by(User.created_at.asc()).limit(limit).offset(offset)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing users: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve users. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_user(
        self,
        db: AsyncSession,
        user: User,
        display_name: Optional[str] = None,
        avatar: Optional[str] = None,
        status: Optional[UserStatus] = None,
        push_token: Optional[str] = None,
    ) -> User:
        if display_name is not None:
            user.display_name = validation.validate_display_name(display_name)
        if avatar is not None:
            user.avatar = avatar or None
        if push_token is not None:
            user.push_token = push_token or None

        status_changed = status is not None and status != user.status
        if status is not None:
            user.status = status
            user.last_seen_at = utcnow()

        user.updated_at = utcnow()
        await db.flush()

        if status_changed:
            logger.info("User %s status -> %s", user.id, user.status.value)
            pubsub.publish_on_commit(db, pubsub.USER_STATUS_CHANGED, None, user)
        return user

    async def update_user_role(
        self, db: AsyncSession, actor: User, user_id: uuid.UUID, role: UserRole
    ) -> User:
        permissions.require_permission(actor, "manage_roles", "Only administrators can change roles")
        target = await self.get_user(db, user_id)
        previous = target.role
        target.role = role
        target.updated_at = utcnow()
        await db.flush()
        logger.info(
            "Role of user %s changed %s -> %s by %s", target.id, previous.value, role.value, actor.id
        )
        return target

    async def delete_user(self, db: AsyncSession, actor: User, user_id: uuid.UUID) -> bool:
        """
        Deletes an account and everything it owns.

        Order:
            1. Votes the user cast are retracted, so every surviving target
               keeps a vote_count equal to its aggregate
            2. Channels the user created are purged whole
            3. The user's messages and questions go, with their replies,
               answers, the votes on all of them and attached files
            4. Questions elsewhere that lost answers get answer_count and
               best answer corrected
            5. Remaining uploads, memberships and notifications, then the user
        """
        if actor.id != user_id and not permissions.can_manage_users(actor.role):
            raise PermissionDeniedError("Cannot delete this user", context={"user_id": str(user_id)})
        target = await self.get_user(db, user_id)

        await vote_service.retract_user_votes(db, user_id)
        channels = await db.execute(select(Channel).where(Channel.created_by == user_id))
        for channel in channels.scalars().all():
            await channel_service.purge_channel(db, channel)
        await self._purge_content(db, user_id)
        await file_service.purge(db, File.uploaded_by == user_id)
        await db.execute(delete(ChannelMember).where(ChannelMember.user_id == user_id))
        await db.execute(delete(Notification).where(Notification.user_id == user_id))

        await db.delete(target)
        await db.flush()
        logger.info("User %s deleted by %s", user_id, actor.id)
        return True

    async def _purge_content(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        result = await db.execute(select(Question.id).where(Question.user_id == user_id))
        question_ids = list(result.scalars().all())

        result = await db.execute(
            select(Message.id).where(or_(Message.user_id == user_id, Message.question_id.in_(question_ids)))
        )
        message_ids = set(result.scalars().all())
        frontier = set(message_ids)
        while frontier:
            result = await db.execute(select(Message.id).where(Message.parent_id.in_(list(frontier))))
            frontier = set(result.scalars().all()) - message_ids
            message_ids |= frontier
        message_ids = list(message_ids)

        result = await db.execute(
            select(Question).where(
                Question.id.in_(select(Message.question_id).where(Message.id.in_(message_ids))),
                Question.id.notin_(question_ids),
            )
        )
        answered_elsewhere = list(result.scalars().all())

        no_sync = {"synchronize_session": False}
        await db.execute(
            delete(Vote).where(Vote.target_id.in_(message_ids + question_ids)).execution_options(**no_sync)
        )
        await file_service.purge(db, or_(File.message_id.in_(message_ids), File.question_id.in_(question_ids)))
        await db.execute(delete(Message).where(Message.id.in_(message_ids)))
        await db.execute(delete(Question).where(Question.id.in_(question_ids)))

        for question in answered_elsewhere:
            if question.best_answer_id in message_ids:
                question.best_answer_id = None
                if question.status == QuestionStatus.ANSWERED:
                    question.status = QuestionStatus.OPEN
            count = await db.execute(
                select(func.count(Message.id)).where(
                    Message.question_id == question.id,
                    Message.type == MessageType.ANSWER,
                    Message.is_deleted.is_(False),
                )
            )
            question.answer_count = int(count.scalar() or 0)
            question.updated_at = utcnow()
        await db.flush()


user_service = UserService()
