"""
Qup Backend - Question Service
================================

What:  Q&A questions: listing, detail (with view counting), CRUD, best-answer
       selection and closing.
Who:   REST questions router and GraphQL question resolvers.

Status Lifecycle:
    OPEN ──mark_best_answer──▶ ANSWERED
      │                            │
      └──────close_question────────┴──▶ CLOSED   (no new answers)
    DUPLICATE / CLOSED may also be set by staff through update_question.

Tag filter:
    Tags are stored as a JSON array. The filter matches the JSON-encoded tag
    inside the serialized array with LIKE, which behaves the same on
    PostgreSQL and SQLite.
"""

import json
import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy import String, cast, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qup.core import permissions, pubsub, validation
from qup.database import utcnow
from qup.enums import MessageType, NotificationType, QuestionStatus
from qup.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from qup.models import Channel, File, Message, Question, User, Vote
from qup.services.channel_service import channel_service
from qup.services.file_service import file_service
from qup.services.notification_service import notification_service

logger = logging.getLogger(__name__)

STAFF_ONLY_STATUSES = (QuestionStatus.CLOSED, QuestionStatus.DUPLICATE)


def _like_escape(value: str) -> str:
    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")


class QuestionService:
    async def _load(self, db: AsyncSession, question_id: uuid.UUID) -> Question:
        question = await db.get(Question, question_id)
        if question is None:
            raise NotFoundError(resource="question", resource_id=str(question_id))
        return question

    async def _assert_visible(self, db: AsyncSession, user: User, question: Question) -> None:
        channel = await db.get(Channel, question.channel_id)
        if channel is None:
            raise NotFoundError(resource="channel", resource_id=str(question.channel_id))
        await channel_service.assert_can_view(db, user, channel)

    def _is_author_or_staff(self, user: User, question: Question) -> bool:
        return question.user_id == user.id or permissions.is_staff(user.role)

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_questions(
        self,
        db: AsyncSession,
        user: User,
        channel_id: Optional[uuid.UUID] = None,
        status: Optional[QuestionStatus] = None,
        tag: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[Question]:
        query = select(Question).where(Question.channel_id.in_(channel_service.visible_channel_ids(user)))
        if channel_id is not None:
            query = query.where(Question.channel_id == channel_id)
        if status is not None:
            query = query.where(Question.status == status)
        if tag:
            encoded = _like_escape(json.dumps(tag.strip().lower()))
            query = query.where(cast(Question.tags, String).like(f"%{encoded}%", escape="!"))
        query = query.order_by(Question.created_at.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_question(
        self, db: AsyncSession, user: User, question_id: uuid.UUID, count_view: bool = True
    ) -> Question:
        question = await self._load(db, question_id)
        await self._assert_visible(db, user, question)
        if count_view:
            question.view_count = (question.view_count or 0) + 1
            await db.flush()
        return question

    async def list_answers(self, db: AsyncSession, question_id: uuid.UUID) -> List[Message]:
        result = await db.execute(
            select(Message)
            .where(
                Message.question_id == question_id,
                Message.type == MessageType.ANSWER,
                Message.is_deleted.is_(False),
            )
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create_question(
        self,
        db: AsyncSession,
        user: User,
        channel_id: uuid.UUID,
        title: str,
        content: str,
        tags: Optional[Sequence[str]] = None,
    ) -> Question:
        channel = await db.get(Channel, channel_id)
        if channel is None:
            raise NotFoundError(resource="channel", resource_id=str(channel_id))
        await channel_service.ensure_can_post(db, user, channel)

        question = Question(
            title=validation.validate_question_title(title),
            content=validation.validate_question_content(content),
            tags=validation.validate_tags(tags),
            user_id=user.id,
            channel_id=channel_id,
            status=QuestionStatus.OPEN,
            view_count=0,
            answer_count=0,
            vote_count=0,
        )
        db.add(question)
        await db.flush()
        logger.info("Question %s created in channel %s by %s", question.id, channel_id, user.id)
        pubsub.publish_on_commit(db, pubsub.QUESTION_CREATED, str(channel_id), question)
        return question

    async def update_question(
        self,
        db: AsyncSession,
        user: User,
        question_id: uuid.UUID,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        status: Optional[QuestionStatus] = None,
    ) -> Question:
        question = await self._load(db, question_id)
        if not self._is_author_or_staff(user, question):
            raise PermissionDeniedError("Cannot edit this question", context={"question_id": str(question_id)})

        if title is not None:
            question.title = validation.validate_question_title(title)
        if content is not None:
            question.content = validation.validate_question_content(content)
        if tags is not None:
            question.tags = validation.validate_tags(tags)
        if status is not None and status != question.status:
            if status in STAFF_ONLY_STATUSES:
                if not permissions.is_staff(user.role):
                    raise PermissionDeniedError(
                        "Only moderators can close or mark questions as duplicate",
                        context={"status": status.value},
                    )
                question.closed_at = utcnow()
                question.closed_by = user.id
            else:
                question.closed_at = None
                question.closed_by = None
            question.status = status

        question.updated_at = utcnow()
        await db.flush()
        logger.info("Question %s updated by %s", question.id, user.id)
        pubsub.publish_on_commit(db, pubsub.QUESTION_UPDATED, str(question.channel_id), question)
        return question

    async def delete_question(self, db: AsyncSession, user: User, question_id: uuid.UUID) -> bool:
        """Hard delete: removes the question, its answers, the votes on both and their files."""
        question = await self._load(db, question_id)
        if not self._is_author_or_staff(user, question):
            raise PermissionDeniedError("Cannot delete this question", context={"question_id": str(question_id)})

        answer_ids = select(Message.id).where(Message.question_id == question_id)
        no_sync = {"synchronize_session": False}
        await db.execute(delete(Vote).where(Vote.target_id == question_id).execution_options(**no_sync))
        await db.execute(delete(Vote).where(Vote.target_id.in_(answer_ids)).execution_options(**no_sync))
        await file_service.purge(db, or_(File.question_id == question_id, File.message_id.in_(answer_ids)))
        await db.execute(delete(Message).where(Message.question_id == question_id).execution_options(**no_sync))
        channel_id = question.channel_id
        await db.delete(question)
        await db.flush()
        logger.info("Question %s deleted by %s", question_id, user.id)
        pubsub.publish_on_commit(db, pubsub.QUESTION_DELETED, str(channel_id), question)
        return True

    async def mark_best_answer(
        self, db: AsyncSession, user: User, question_id: uuid.UUID, answer_id: uuid.UUID
    ) -> Question:
        question = await self._load(db, question_id)
        if question.user_id != user.id and not permissions.has_permission(user.role, "mark_best_answer"):
            raise PermissionDeniedError(
                "Only the question author can choose the best answer",
                context={"question_id": str(question_id)},
            )

        answer = await db.get(Message, answer_id)
        if answer is None:
            raise NotFoundError(resource="answer", resource_id=str(answer_id))
        if answer.type != MessageType.ANSWER or answer.question_id != question.id or answer.is_deleted:
            raise ValidationError("Answer does not belong to this question", field="answerId")

        question.best_answer_id = answer.id
        question.status = QuestionStatus.ANSWERED
        question.updated_at = utcnow()
        await db.flush()

        if answer.user_id != user.id:
            await notification_service.notify(
                db,
                answer.user_id,
                NotificationType.QUESTION_ANSWERED,
                title="Your answer was accepted",
                message=f"Your answer to \"{question.title}\" was marked as the best answer",
                data={"questionId": str(question.id), "messageId": str(answer.id)},
            )

        logger.info("Answer %s marked best for question %s", answer.id, question.id)
        pubsub.publish_on_commit(db, pubsub.QUESTION_UPDATED, str(question.channel_id), question)
        return question

    async def close_question(self, db: AsyncSession, user: User, question_id: uuid.UUID) -> Question:
        question = await self._load(db, question_id)
        if question.user_id != user.id and not permissions.has_permission(user.role, "close_questions"):
            raise PermissionDeniedError("Cannot close this question", context={"question_id": str(question_id)})

        question.status = QuestionStatus.CLOSED
        question.closed_at = utcnow()
        question.closed_by = user.id
        question.updated_at = utcnow()
        await db.flush()
        logger.info("Question %s closed by %s", question.id, user.id)
        pubsub.publish_on_commit(db, pubsub.QUESTION_UPDATED, str(question.channel_id), question)
        return question


question_service = QuestionService()
