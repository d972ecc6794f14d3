"""
Qup Backend - Message Service
===============================

What:  Channel messages, threaded replies and answers to questions.
Who:   REST messages router and GraphQL message resolvers.

Create Flow:
    1. Channel must exist, be visible to the author and not be archived
    2. Content, attachment count and mention count are validated
    3. parent_id must point at a message of the same channel
    4. ANSWER messages need an open question in the same channel; the
       question's answer_count is incremented and its author notified
    5. Mentioned users get a MENTION notification
    6. Attachments (files uploaded by the author) are linked to the message
    7. MESSAGE_CREATED is queued keyed by channel id, published on commit

Deletion:
    Soft. The row stays (replies and votes keep pointing at it) but content
    and mentions are wiped and is_deleted is set.
"""

import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qup import constants
from qup.core import permissions, pubsub, validation
from qup.database import utcnow
from qup.enums import MessageType, NotificationType, QuestionStatus
from qup.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from qup.models import Channel, File, Message, Question, User
from qup.services.channel_service import channel_service
from qup.services.notification_service import notification_service

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (QuestionStatus.CLOSED, QuestionStatus.DUPLICATE)


def _preview(content: str, length: int = 100) -> str:
    return content if len(content) <= length else content[: length - 3] + "..."


class MessageService:
    async def _load(self, db: AsyncSession, message_id: uuid.UUID) -> Message:
        message = await db.get(Message, message_id)
        if message is None:
            raise NotFoundError(resource="message", resource_id=str(message_id))
        return message

    async def _load_channel(self, db: AsyncSession, channel_id: uuid.UUID) -> Channel:
        channel = await db.get(Channel, channel_id)
        if channel is None:
            raise NotFoundError(resource="channel", resource_id=str(channel_id))
        return channel

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_messages(
        self,
        db: AsyncSession,
        user: User,
        channel_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Message]:
        """Top-level messages of a channel, newest first. Replies are fetched per thread."""
        channel = await self._load_channel(db, channel_id)
        await channel_service.assert_can_view(db, user, channel)
        result = await db.execute(
            select(Message)
            .where(Message.channel_id == channel_id, Message.parent_id.is_(None))
            .order_by(Message.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def get_message(self, db: AsyncSession, user: User, message_id: uuid.UUID) -> Message:
        message = await self._load(db, message_id)
        channel = await self._load_channel(db, message.channel_id)
        await channel_service.assert_can_view(db, user, channel)
        return message

    async def list_replies(self, db: AsyncSession, user: User, message_id: uuid.UUID) -> List[Message]:
        await self.get_message(db, user, message_id)
        result = await db.execute(
            select(Message)
            .where(Message.parent_id == message_id)
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    async def reply_count(self, db: AsyncSession, message_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(Message.id)).where(Message.parent_id == message_id)
        )
        return result.scalar() or 0

    # ── Create ────────────────────────────────────────────────────────────

    async def create_message(
        self,
        db: AsyncSession,
        user: User,
        channel_id: uuid.UUID,
        content: str,
        type: MessageType = MessageType.TEXT,
        parent_id: Optional[uuid.UUID] = None,
        question_id: Optional[uuid.UUID] = None,
        attachments: Optional[Sequence[uuid.UUID]] = None,
        mentions: Optional[Sequence[uuid.UUID]] = None,
    ) -> Message:
        attachments = list(dict.fromkeys(attachments or []))
        mentions = list(dict.fromkeys(mentions or []))

        channel = await self._load_channel(db, channel_id)
        await channel_service.ensure_can_post(db, user, channel)

        content = validation.validate_message_content(content)
        if len(attachments) > constants.MESSAGE_MAX_ATTACHMENTS:
            raise ValidationError(
                f"A message cannot have more than {constants.MESSAGE_MAX_ATTACHMENTS} attachments",
                field="attachments",
            )
        if len(mentions) > constants.MESSAGE_MAX_MENTIONS:
            raise ValidationError(
                f"A message cannot mention more than {constants.MESSAGE_MAX_MENTIONS} users",
                field="mentions",
            )

        if parent_id is not None:
            parent = await self._load(db, parent_id)
            if parent.channel_id != channel_id:
                raise ValidationError("Parent message must be in the same channel", field="parentId")

        question: Optional[Question] = None
        if type == MessageType.ANSWER and question_id is None:
            raise ValidationError("An answer must reference a question", field="questionId")
        if question_id is not None:
            question = await db.get(Question, question_id)
            if question is None:
                raise NotFoundError(resource="question", resource_id=str(question_id))
            if question.channel_id != channel_id:
                raise ValidationError("Question belongs to a different channel", field="questionId")
            if type == MessageType.ANSWER and question.status in CLOSED_STATUSES:
                raise ValidationError("Cannot answer a closed question", field="questionId")

        files = await self._owned_files(db, user, attachments)
        mentioned = await self._existing_users(db, mentions)

        message = Message(
            content=content,
            type=type,
            user_id=user.id,
            channel_id=channel_id,
            parent_id=parent_id,
            question_id=question_id,
            mentions=[str(u.id) for u in mentioned],
            vote_count=0,
            is_edited=False,
            is_deleted=False,
        )
        db.add(message)
        await db.flush()

        for file in files:
            file.message_id = message.id

        if type == MessageType.ANSWER and question is not None:
            question.answer_count = (question.answer_count or 0) + 1
            question.updated_at = utcnow()
            if question.user_id != user.id:
                await notification_service.notify(
                    db,
                    question.user_id,
                    NotificationType.ANSWER,
                    title="New answer to your question",
                    message=f"{user.display_name} answered \"{_preview(question.title)}\"",
                    data={"questionId": str(question.id), "messageId": str(message.id)},
                )

        for mentioned_user in mentioned:
            if mentioned_user.id == user.id:
                continue
            await notification_service.notify(
                db,
                mentioned_user.id,
                NotificationType.MENTION,
                title="You were mentioned",
                message=f"{user.display_name}: {_preview(content)}",
                data={"channelId": str(channel_id), "messageId": str(message.id)},
            )

        await db.flush()
        logger.info("Message %s (%s) created in channel %s", message.id, type.value, channel_id)
        pubsub.publish_on_commit(db, pubsub.MESSAGE_CREATED, str(channel_id), message)
        return message

    async def _owned_files(self, db: AsyncSession, user: User, file_ids: List[uuid.UUID]) -> List[File]:
        if not file_ids:
            return []
        result = await db.execute(select(File).where(File.id.in_(file_ids)))
        files = list(result.scalars().all())
        found = {f.id for f in files}
        missing = [str(fid) for fid in file_ids if fid not in found]
        if missing:
            raise NotFoundError(resource="file", resource_id=missing[0])
        for file in files:
            if file.uploaded_by != user.id:
                raise PermissionDeniedError(
                    "Cannot attach a file uploaded by another user", context={"file_id": str(file.id)}
                )
        return files

    async def _existing_users(self, db: AsyncSession, user_ids: List[uuid.UUID]) -> List[User]:
        if not user_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(user_ids)))
        by_id = {u.id: u for u in result.scalars().all()}
        # Unknown ids are dropped rather than rejected; keep request order
        return [by_id[uid] for uid in user_ids if uid in by_id]

    # ── Update / Delete ───────────────────────────────────────────────────

    async def update_message(self, db: AsyncSession, user: User, message_id: uuid.UUID, content: str) -> Message:
        message = await self._load(db, message_id)
        if message.user_id != user.id and not permissions.is_staff(user.role):
            raise PermissionDeniedError("Cannot edit this message", context={"message_id": str(message_id)})
        if message.is_deleted:
            raise ValidationError("Cannot edit a deleted message", field="id")

        message.content = validation.validate_message_content(content)
        message.is_edited = True
        message.updated_at = utcnow()
        await db.flush()
        logger.info("Message %s edited by %s", message.id, user.id)
        pubsub.publish_on_commit(db, pubsub.MESSAGE_UPDATED, str(message.channel_id), message)
        return message

    async def delete_message(self, db: AsyncSession, user: User, message_id: uuid.UUID) -> bool:
        message = await self._load(db, message_id)
        if message.user_id != user.id and not permissions.can_delete_any_message(user.role):
            raise PermissionDeniedError("Cannot delete this message", context={"message_id": str(message_id)})
        if message.is_deleted:
            return True

        message.is_deleted = True
        message.content = ""
        message.mentions = []
        message.updated_at = utcnow()

        if message.type == MessageType.ANSWER and message.question_id is not None:
            question = await db.get(Question, message.question_id)
            if question is not None:
                question.answer_count = max(0, (question.answer_count or 0) - 1)
                if question.best_answer_id == message.id:
                    question.best_answer_id = None
                    if question.status == QuestionStatus.ANSWERED:
                        question.status = QuestionStatus.OPEN
                question.updated_at = utcnow()

        await db.flush()
        logger.info("Message %s deleted by %s", message.id, user.id)
        pubsub.publish_on_commit(db, pubsub.MESSAGE_DELETED, str(message.channel_id), message)
        return True


message_service = MessageService()
