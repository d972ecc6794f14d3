"""
Qup Backend - Vote Service
============================

What:  Weighted up/down votes on messages, answers and questions.
How:   Every write runs inside the request transaction:

    ┌──────────────┐   ┌──────────────────┐   ┌─────────────────────┐   ┌────────────┐
    │ Lock target  │──▶│ Upsert own vote  │──▶│ SUM(CASE ...) over  │──▶│ Store on   │
    │ FOR UPDATE   │   │ (savepoint)      │   │ all target votes    │   │ vote_count │
    └──────────────┘   └──────────────────┘   └─────────────────────┘   └────────────┘

    - The row lock serializes concurrent voters on the same target, so the
      stored vote_count always equals the aggregate at commit time.
    - The (user_id, target_id, target_type) unique constraint catches two
      concurrent first votes from the same user. The losing insert raises
      IntegrityError inside its savepoint; tenacity retries, and the retry
      finds the winner's row and updates it instead.
    - SQLite ignores FOR UPDATE; its database-level write lock gives the same
      serialization for tests.

Access:
    Voting on, listing, counting and subscribing to the votes of a target
    all require read access to the target's channel.

Reputation:
    An author's reputation is the sum of the stored vote totals of their
    messages and questions, floored at 0. It is recomputed after every vote
    write, so withdrawing a downvote never lifts it above that sum.

Who:   REST votes router, GraphQL vote mutations, UserService.delete_user.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from qup.config import settings
from qup.core import permissions, pubsub
from qup.core.voting import calculate_vote_weight
from qup.database import utcnow
from qup.enums import MessageType, NotificationType, VoteTarget, VoteType
from qup.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from qup.models import Channel, Message, Question, User, Vote
from qup.services.channel_service import channel_service
from qup.services.notification_service import notification_service

logger = logging.getLogger(__name__)

Target = Union[Message, Question]


@dataclass
class VoteEvent:
    """Payload published on the vote topics and returned by vote writes."""
    vote: Vote
    vote_count: int


def _model(target_type: VoteTarget):
    return Question if target_type == VoteTarget.QUESTION else Message


class VoteService:
    # ── Target handling ───────────────────────────────────────────────────

    async def _lock_target(
        self, db: AsyncSession, target_id: uuid.UUID, target_type: VoteTarget
    ) -> Optional[Target]:
        model = _model(target_type)
        result = await db.execute(select(model).where(model.id == target_id).with_for_update())
        return result.scalar_one_or_none()

    def _canonical(self, target: Target, target_id: uuid.UUID, target_type: VoteTarget) -> VoteTarget:
        """
        Votes on an answer are always recorded as ANSWER, whether the client
        addressed it as MESSAGE or ANSWER, so one user holds one vote per answer.
        """
        if isinstance(target, Message):
            if target.is_deleted:
                raise NotFoundError(resource=target_type.value.lower(), resource_id=str(target_id))
            if target_type == VoteTarget.ANSWER and target.type != MessageType.ANSWER:
                raise ValidationError("Target message is not an answer", field="targetType")
            if target.type == MessageType.ANSWER:
                return VoteTarget.ANSWER
        return target_type

    async def _assert_visible(self, db: AsyncSession, user: User, target: Target) -> None:
        channel = await db.get(Channel, target.channel_id)
        if channel is None:
            raise NotFoundError(resource="channel", resource_id=str(target.channel_id))
        await channel_service.assert_can_view(db, user, channel)

    async def _require_target(
        self, db: AsyncSession, user: User, target_id: uuid.UUID, target_type: VoteTarget
    ) -> Tuple[Target, VoteTarget]:
        """Locks and validates the target; returns it with its canonical target type."""
        target = await self._lock_target(db, target_id, target_type)
        if target is None:
            raise NotFoundError(resource=target_type.value.lower(), resource_id=str(target_id))
        canonical = self._canonical(target, target_id, target_type)
        await self._assert_visible(db, user, target)
        return target, canonical

    async def visible_target(
        self, db: AsyncSession, user: User, target_id: uuid.UUID, target_type: VoteTarget
    ) -> Tuple[Target, VoteTarget]:
        """Unlocked lookup for reads; raises NotFound / PermissionDenied like a vote would."""
        target = await db.get(_model(target_type), target_id)
        if target is None:
            raise NotFoundError(resource=target_type.value.lower(), resource_id=str(target_id))
        canonical = self._canonical(target, target_id, target_type)
        await self._assert_visible(db, user, target)
        return target, canonical

    async def total_for(self, db: AsyncSession, target_id: uuid.UUID, target_type: VoteTarget) -> int:
        """Signed weight sum computed by the database in one aggregate."""
        signed = case((Vote.type == VoteType.UP, Vote.weight), else_=-Vote.weight)
        result = await db.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                Vote.target_id == target_id,
                Vote.target_type == target_type,
            )
        )
        return int(result.scalar() or 0)

    async def _store_total(
        self, db: AsyncSession, target: Optional[Target], target_id: uuid.UUID, target_type: VoteTarget
    ) -> int:
        await db.flush()
        total = await self.total_for(db, target_id, target_type)
        if target is not None:
            target.vote_count = total
            target.updated_at = utcnow()
            await db.flush()
        return total

    async def _refresh_reputation(self, db: AsyncSession, target: Optional[Target]) -> None:
        """Author reputation is the sum of their content's stored totals, floored at 0."""
        if target is None:
            return
        author = await db.get(User, target.user_id)
        if author is None:
            return
        from_messages = await db.execute(
            select(func.coalesce(func.sum(Message.vote_count), 0)).where(Message.user_id == author.id)
        )
        from_questions = await db.execute(
            select(func.coalesce(func.sum(Question.vote_count), 0)).where(Question.user_id == author.id)
        )
        author.reputation = max(0, int(from_messages.scalar() or 0) + int(from_questions.scalar() or 0))

    # ── Upsert ────────────────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type(IntegrityError),
        stop=stop_after_attempt(settings.vote_retry_attempts),
        wait=(
            wait_exponential(multiplier=settings.vote_retry_min_wait, max=settings.vote_retry_max_wait)
            + wait_random(0, settings.vote_retry_min_wait)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _upsert_vote(
        self,
        db: AsyncSession,
        user: User,
        target_id: uuid.UUID,
        target_type: VoteTarget,
        vote_type: VoteType,
        weight: int,
    ) -> Tuple[Vote, Optional[Tuple[VoteType, int]]]:
        """Returns (vote, previous) where previous is the (type, weight) before the change, or None when created."""
        result = await db.execute(
            select(Vote).where(
                Vote.user_id == user.id,
                Vote.target_id == target_id,
                Vote.target_type == target_type,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            previous = (existing.type, existing.weight)
            existing.type = vote_type
            existing.weight = weight
            existing.updated_at = utcnow()
            await db.flush()
            return existing, previous

        vote = Vote(
            user_id=user.id,
            target_id=target_id,
            target_type=target_type,
            type=vote_type,
            weight=weight,
        )
        async with db.begin_nested():
            db.add(vote)
        return vote, None

    # ── Public API ────────────────────────────────────────────────────────

    async def cast_vote(
        self,
        db: AsyncSession,
        user: User,
        target_id: uuid.UUID,
        target_type: VoteTarget,
        vote_type: VoteType,
    ) -> VoteEvent:
        """
        Create the caller's vote on a target, or change its direction.

        Voting again on the same target overwrites the direction and refreshes
        the weight from the caller's current role; it never adds a second row.

        Raises:
            NotFoundError:         target missing or deleted
            ValidationError:       ANSWER target that is not an answer
            PermissionDeniedError: role without the `vote` permission, or no
                                   read access to the target's channel
            ConflictError:         unique-constraint race persisted past all retries
        """
        permissions.require_permission(user, "vote", "You are not allowed to vote")
        target, target_type = await self._require_target(db, user, target_id, target_type)
        weight = calculate_vote_weight(user.role)

        try:
            vote, previous = await self._upsert_vote(db, user, target_id, target_type, vote_type, weight)
        except IntegrityError:
            logger.error("Vote upsert for user %s on %s:%s kept conflicting", user.id, target_type.value, target_id)
            raise ConflictError("Vote could not be recorded. Please try again.")

        total = await self._store_total(db, target, target_id, target_type)
        await self._refresh_reputation(db, target)

        direction_changed = previous is None or previous[0] != vote_type
        if direction_changed and target.user_id != user.id:
            await notification_service.notify(
                db,
                target.user_id,
                NotificationType.VOTE,
                title="New vote",
                message=f"{user.display_name} {'upvoted' if vote_type == VoteType.UP else 'downvoted'} your {target_type.value.lower()}",
                data={"targetId": str(target_id), "targetType": target_type.value, "voteType": vote_type.value},
            )

        event = VoteEvent(vote=vote, vote_count=total)
        topic = pubsub.VOTE_CREATED if previous is None else pubsub.VOTE_UPDATED
        logger.info(
            "Vote %s by %s on %s:%s (%s x%d) -> total %d",
            "created" if previous is None else "updated",
            user.id, target_type.value, target_id, vote_type.value, weight, total,
        )
        pubsub.publish_on_commit(db, topic, pubsub.vote_key(target_type, target_id), event)
        return event

    async def get_vote(self, db: AsyncSession, vote_id: uuid.UUID) -> Vote:
        vote = await db.get(Vote, vote_id)
        if vote is None:
            raise NotFoundError(resource="vote", resource_id=str(vote_id))
        return vote

    async def update_vote(self, db: AsyncSession, user: User, vote_id: uuid.UUID, vote_type: VoteType) -> VoteEvent:
        vote = await self.get_vote(db, vote_id)
        if vote.user_id != user.id:
            raise PermissionDeniedError("Cannot change another user's vote", context={"vote_id": str(vote_id)})

        target = await self._lock_target(db, vote.target_id, vote.target_type)
        vote.type = vote_type
        vote.weight = calculate_vote_weight(user.role)
        vote.updated_at = utcnow()
        total = await self._store_total(db, target, vote.target_id, vote.target_type)
        await self._refresh_reputation(db, target)

        event = VoteEvent(vote=vote, vote_count=total)
        logger.info("Vote %s changed to %s -> total %d", vote.id, vote_type.value, total)
        pubsub.publish_on_commit(db, pubsub.VOTE_UPDATED, pubsub.vote_key(vote.target_type, vote.target_id), event)
        return event

    async def delete_vote(self, db: AsyncSession, user: User, vote_id: uuid.UUID) -> VoteEvent:
        vote = await self.get_vote(db, vote_id)
        if vote.user_id != user.id and not permissions.is_staff(user.role):
            raise PermissionDeniedError("Cannot delete this vote", context={"vote_id": str(vote_id)})

        target = await self._lock_target(db, vote.target_id, vote.target_type)
        await db.delete(vote)
        total = await self._store_total(db, target, vote.target_id, vote.target_type)
        await self._refresh_reputation(db, target)

        event = VoteEvent(vote=vote, vote_count=total)
        logger.info("Vote %s deleted by %s -> total %d", vote.id, user.id, total)
        pubsub.publish_on_commit(db, pubsub.VOTE_DELETED, pubsub.vote_key(vote.target_type, vote.target_id), event)
        return event

    async def votes_for(
        self, db: AsyncSession, target_id: uuid.UUID, target_type: VoteTarget
    ) -> List[Vote]:
        """Votes on a target the caller is already known to see (nested GraphQL fields)."""
        result = await db.execute(
            select(Vote)
            .where(Vote.target_id == target_id, Vote.target_type == target_type)
            .order_by(Vote.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_votes(
        self, db: AsyncSession, user: User, target_id: uuid.UUID, target_type: VoteTarget
    ) -> List[Vote]:
        _, target_type = await self.visible_target(db, user, target_id, target_type)
        return await self.votes_for(db, target_id, target_type)

    async def count_votes(
        self, db: AsyncSession, user: User, target_id: uuid.UUID, target_type: VoteTarget
    ) -> int:
        _, target_type = await self.visible_target(db, user, target_id, target_type)
        return await self.total_for(db, target_id, target_type)

    async def retract_user_votes(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """
        Removes every vote cast by a user, recomputing each target's stored
        total and its author's reputation. Returns how many were removed.
        """
        result = await db.execute(select(Vote).where(Vote.user_id == user_id))
        votes = list(result.scalars().all())
        for vote in votes:
            target = await self._lock_target(db, vote.target_id, vote.target_type)
            await db.delete(vote)
            await self._store_total(db, target, vote.target_id, vote.target_type)
            await self._refresh_reputation(db, target)
        if votes:
            logger.info("Retracted %d vote(s) cast by user %s", len(votes), user_id)
        return len(votes)

    async def get_user_vote(
        self, db: AsyncSession, user: User, target_id: uuid.UUID, target_type: VoteTarget
    ) -> Optional[Vote]:
        result = await db.execute(
            select(Vote).where(
                Vote.user_id == user.id,
                Vote.target_id == target_id,
                Vote.target_type == target_type,
            )
        )
        return result.scalar_one_or_none()


vote_service = VoteService()
