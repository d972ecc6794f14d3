"""
Qup Backend - Vote Service Tests
==================================

What:  Weighted totals, re-voting, answer canonicalization, channel access,
       reputation, the duplicate-insert retry, vote retraction and
       vote notifications in VoteService.
How:   Real SQLite session; users are inserted directly so their roles can be
       set up front.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from qup.config import settings
from qup.enums import ChannelType, MessageType, UserRole, VoteTarget, VoteType
from qup.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from qup.models import Vote
from qup.services.channel_service import channel_service
from qup.services.message_service import message_service
from qup.services.notification_service import notification_service
from qup.services.question_service import question_service
from qup.services.vote_service import VoteService, vote_service
from helpers import make_user


@pytest_asyncio.fixture
async def world(db_session):
    """An author with a public channel and one message, plus one voter per role."""
    author = make_user(username="author")
    voters = {role: make_user(role, username=f"voter_{role.value.lower()}") for role in UserRole}
    db_session.add_all([author, *voters.values()])
    await db_session.flush()

    channel = await channel_service.create_channel(db_session, author, name="general")
    message = await message_service.create_message(db_session, author, channel.id, "Hello everyone")
    return {"db": db_session, "author": author, "voters": voters, "channel": channel, "message": message}


class TestCastVote:
    @pytest.mark.asyncio
    async def test_weights_by_role(self, world):
        db, message, voters = world["db"], world["message"], world["voters"]

        await vote_service.cast_vote(db, voters[UserRole.NORMAL], message.id, VoteTarget.MESSAGE, VoteType.UP)
        await vote_service.cast_vote(db, voters[UserRole.MODERATOR], message.id, VoteTarget.MESSAGE, VoteType.UP)
        event = await vote_service.cast_vote(
            db, voters[UserRole.SPECIAL], message.id, VoteTarget.MESSAGE, VoteType.DOWN
        )

        # 1 + 10 - 5
        assert event.vote_count == 6
        assert event.vote.weight == 5
        assert message.vote_count == 6
        assert await vote_service.total_for(db, message.id, VoteTarget.MESSAGE) == 6
        assert world["author"].reputation == 6

    @pytest.mark.asyncio
    async def test_admin_vote_weighs_twenty(self, world):
        event = await vote_service.cast_vote(
            world["db"], world["voters"][UserRole.ADMIN], world["message"].id, VoteTarget.MESSAGE, VoteType.UP
        )
        assert event.vote.weight == 20
        assert event.vote_count == 20

    @pytest.mark.asyncio
    async def test_voting_again_changes_direction(self, world):
        db, message = world["db"], world["message"]
        voter = world["voters"][UserRole.NORMAL]

        first = await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.UP)
        second = await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.DOWN)

        assert second.vote.id == first.vote.id
        assert second.vote_count == -1
        assert len(await vote_service.list_votes(db, voter, message.id, VoteTarget.MESSAGE)) == 1
        # Reputation is floored at 0
        assert world["author"].reputation == 0

    @pytest.mark.asyncio
    async def test_missing_target(self, world):
        with pytest.raises(NotFoundError):
            await vote_service.cast_vote(
                world["db"], world["voters"][UserRole.NORMAL], uuid.uuid4(), VoteTarget.QUESTION, VoteType.UP
            )

    @pytest.mark.asyncio
    async def test_deleted_message_cannot_be_voted(self, world):
        db, message = world["db"], world["message"]
        await message_service.delete_message(db, world["author"], message.id)
        with pytest.raises(NotFoundError):
            await vote_service.cast_vote(db, world["voters"][UserRole.NORMAL], message.id, VoteTarget.MESSAGE, VoteType.UP)

    @pytest.mark.asyncio
    async def test_answer_target_must_be_an_answer(self, world):
        with pytest.raises(ValidationError, match="not an answer"):
            await vote_service.cast_vote(
                world["db"], world["voters"][UserRole.NORMAL], world["message"].id, VoteTarget.ANSWER, VoteType.UP
            )

    @pytest.mark.asyncio
    async def test_answer_votes_recorded_as_answer(self, world):
        db, author, channel = world["db"], world["author"], world["channel"]
        voter = world["voters"][UserRole.NORMAL]
        question = await question_service.create_question(
            db, author, channel.id, "How do I rotate keys?", "Looking for a zero-downtime approach."
        )
        answer = await message_service.create_message(
            db, voter, channel.id, "Use two active keys.", type=MessageType.ANSWER, question_id=question.id
        )

        first = await vote_service.cast_vote(db, author, answer.id, VoteTarget.MESSAGE, VoteType.UP)
        again = await vote_service.cast_vote(db, author, answer.id, VoteTarget.ANSWER, VoteType.UP)

        assert first.vote.target_type == VoteTarget.ANSWER
        assert again.vote.id == first.vote.id
        assert again.vote_count == 1

    @pytest.mark.asyncio
    async def test_question_votes(self, world):
        db, author, channel = world["db"], world["author"], world["channel"]
        question = await question_service.create_question(
            db, author, channel.id, "Which index fits here?", "Composite or two single-column indexes?"
        )
        event = await vote_service.cast_vote(
            db, world["voters"][UserRole.MODERATOR], question.id, VoteTarget.QUESTION, VoteType.DOWN
        )
        assert event.vote_count == -10
        assert question.vote_count == -10

    @pytest.mark.asyncio
    async def test_role_without_vote_permission(self, mock_db_session):
        """Permission is checked before the target is even looked up."""
        banned = make_user(role="BANNED")
        with pytest.raises(PermissionDeniedError):
            await vote_service.cast_vote(mock_db_session, banned, uuid.uuid4(), VoteTarget.MESSAGE, VoteType.UP)
        mock_db_session.execute.assert_not_awaited()


class TestNotifications:
    @pytest.mark.asyncio
    async def test_author_notified_on_new_vote(self, world):
        db, author = world["db"], world["author"]
        await vote_service.cast_vote(db, world["voters"][UserRole.NORMAL], world["message"].id, VoteTarget.MESSAGE, VoteType.UP)
        assert await notification_service.unread_count(db, author) == 1

    @pytest.mark.asyncio
    async def test_no_notification_for_self_vote_or_same_direction(self, world):
        db, author, message = world["db"], world["author"], world["message"]
        voter = world["voters"][UserRole.NORMAL]

        await vote_service.cast_vote(db, author, message.id, VoteTarget.MESSAGE, VoteType.UP)
        assert await notification_service.unread_count(db, author) == 0

        await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.UP)
        await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.UP)
        assert await notification_service.unread_count(db, author) == 1


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_vote(self, world):
        db, message = world["db"], world["message"]
        voter = world["voters"][UserRole.SPECIAL]
        cast = await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.UP)

        updated = await vote_service.update_vote(db, voter, cast.vote.id, VoteType.DOWN)
        assert updated.vote_count == -5
        assert message.vote_count == -5

    @pytest.mark.asyncio
    async def test_update_someone_elses_vote(self, world):
        db, message = world["db"], world["message"]
        cast = await vote_service.cast_vote(db, world["voters"][UserRole.NORMAL], message.id, VoteTarget.MESSAGE, VoteType.UP)
        with pytest.raises(PermissionDeniedError):
            await vote_service.update_vote(db, world["voters"][UserRole.SPECIAL], cast.vote.id, VoteType.DOWN)

    @pytest.mark.asyncio
    async def test_delete_vote_recomputes_total(self, world):
        db, message = world["db"], world["message"]
        voter = world["voters"][UserRole.MODERATOR]
        cast = await vote_service.cast_vote(db, voter, message.id, VoteTarget.MESSAGE, VoteType.UP)

        event = await vote_service.delete_vote(db, voter, cast.vote.id)
        assert event.vote_count == 0
        assert message.vote_count == 0
        assert world["author"].reputation == 0
        assert await vote_service.get_user_vote(db, voter, message.id, VoteTarget.MESSAGE) is None

    @pytest.mark.asyncio
    async def test_staff_may_delete_any_vote(self, world):
        db, message = world["db"], world["message"]
        cast = await vote_service.cast_vote(db, world["voters"][UserRole.NORMAL], message.id, VoteTarget.MESSAGE, VoteType.UP)
        with pytest.raises(PermissionDeniedError):
            await vote_service.delete_vote(db, world["voters"][UserRole.SPECIAL], cast.vote.id)
        await vote_service.delete_vote(db, world["voters"][UserRole.ADMIN], cast.vote.id)


class TestChannelAccess:
    @pytest.mark.asyncio
    async def test_outsider_cannot_touch_private_channel_votes(self, world):
        db, author = world["db"], world["author"]
        private = await channel_service.create_channel(db, author, name="finance", type=ChannelType.PRIVATE)
        message = await message_service.create_message(db, author, private.id, "Q3 numbers attached")
        outsider = world["voters"][UserRole.NORMAL]

        with pytest.raises(PermissionDeniedError, match="Access denied"):
            await vote_service.cast_vote(db, outsider, message.id, VoteTarget.MESSAGE, VoteType.DOWN)
        with pytest.raises(PermissionDeniedError):
            await vote_service.list_votes(db, outsider, message.id, VoteTarget.MESSAGE)
        with pytest.raises(PermissionDeniedError):
            await vote_service.count_votes(db, outsider, message.id, VoteTarget.MESSAGE)
        assert message.vote_count == 0

    @pytest.mark.asyncio
    async def test_member_of_private_channel_may_vote(self, world):
        db, author = world["db"], world["author"]
        private = await channel_service.create_channel(db, author, name="finance", type=ChannelType.PRIVATE)
        message = await message_service.create_message(db, author, private.id, "Q3 numbers attached")

        event = await vote_service.cast_vote(db, author, message.id, VoteTarget.MESSAGE, VoteType.UP)
        assert event.vote_count == 1
        assert await vote_service.count_votes(db, author, message.id, VoteTarget.MESSAGE) == 1


class TestReputation:
    @pytest.mark.asyncio
    async def test_floored_at_zero_and_follows_totals(self, world):
        db, message, author = world["db"], world["message"], world["author"]
        voters = world["voters"]

        down = await vote_service.cast_vote(db, voters[UserRole.ADMIN], message.id, VoteTarget.MESSAGE, VoteType.DOWN)
        assert down.vote_count == -20
        assert author.reputation == 0

        await vote_service.cast_vote(db, voters[UserRole.NORMAL], message.id, VoteTarget.MESSAGE, VoteType.UP)
        assert author.reputation == 0

        # Withdrawing the downvote leaves reputation equal to the remaining total
        event = await vote_service.delete_vote(db, voters[UserRole.ADMIN], down.vote.id)
        assert event.vote_count == 1
        assert author.reputation == 1

    @pytest.mark.asyncio
    async def test_sums_messages_and_questions(self, world):
        db, author, channel = world["db"], world["author"], world["channel"]
        question = await question_service.create_question(
            db, author, channel.id, "Which index fits here?", "Composite or two single-column indexes?"
        )
        moderator = world["voters"][UserRole.MODERATOR]
        await vote_service.cast_vote(db, moderator, question.id, VoteTarget.QUESTION, VoteType.UP)
        await vote_service.cast_vote(db, moderator, world["message"].id, VoteTarget.MESSAGE, VoteType.UP)
        assert author.reputation == 20


class TestDuplicateInsertRetry:
    @pytest.mark.asyncio
    async def test_retry_updates_the_concurrent_winner(self, mock_db_session):
        """
        First attempt sees no vote, but its insert loses to a concurrent one;
        the second attempt finds that row and changes its direction.
        """
        voter = make_user(UserRole.MODERATOR)
        target_id = uuid.uuid4()
        winner = Vote(
            id=uuid.uuid4(),
            user_id=voter.id,
            target_id=target_id,
            target_type=VoteTarget.MESSAGE,
            type=VoteType.UP,
            weight=10,
        )
        missing = MagicMock()
        missing.scalar_one_or_none.return_value = None
        found = MagicMock()
        found.scalar_one_or_none.return_value = winner
        mock_db_session.execute.side_effect = [missing, found]

        savepoint = MagicMock()
        savepoint.__aenter__ = AsyncMock(return_value=None)
        savepoint.__aexit__ = AsyncMock(
            side_effect=IntegrityError("INSERT INTO votes", {}, Exception("UNIQUE constraint failed"))
        )
        mock_db_session.begin_nested = MagicMock(return_value=savepoint)

        vote, previous = await vote_service._upsert_vote(
            mock_db_session, voter, target_id, VoteTarget.MESSAGE, VoteType.DOWN, 10
        )

        assert vote is winner
        assert previous == (VoteType.UP, 10)
        assert winner.type == VoteType.DOWN
        assert mock_db_session.execute.await_count == 2
        mock_db_session.begin_nested.assert_called_once()

    @pytest.mark.asyncio
    async def test_persistent_conflict_becomes_conflict_error(self, world):
        conflict = IntegrityError("INSERT INTO votes", {}, Exception("UNIQUE constraint failed"))
        with patch.object(vote_service, "_upsert_vote", AsyncMock(side_effect=conflict)):
            with pytest.raises(ConflictError, match="could not be recorded"):
                await vote_service.cast_vote(
                    world["db"], world["voters"][UserRole.NORMAL], world["message"].id, VoteTarget.MESSAGE, VoteType.UP
                )

    def test_backoff_is_bounded_by_settings(self):
        wait = VoteService._upsert_vote.retry.wait
        first = wait(MagicMock(attempt_number=1))
        late = wait(MagicMock(attempt_number=10))

        assert settings.vote_retry_min_wait <= first <= 2 * settings.vote_retry_min_wait
        assert late <= settings.vote_retry_max_wait + settings.vote_retry_min_wait


class TestRetractUserVotes:
    @pytest.mark.asyncio
    async def test_totals_and_reputation_recomputed(self, world):
        db, author, channel, message = world["db"], world["author"], world["channel"], world["message"]
        moderator, normal = world["voters"][UserRole.MODERATOR], world["voters"][UserRole.NORMAL]
        question = await question_service.create_question(
            db, author, channel.id, "How do I rotate keys?", "Looking for a zero-downtime approach."
        )
        await vote_service.cast_vote(db, moderator, message.id, VoteTarget.MESSAGE, VoteType.UP)
        await vote_service.cast_vote(db, moderator, question.id, VoteTarget.QUESTION, VoteType.UP)
        await vote_service.cast_vote(db, normal, message.id, VoteTarget.MESSAGE, VoteType.UP)
        assert author.reputation == 21

        assert await vote_service.retract_user_votes(db, moderator.id) == 2

        assert message.vote_count == 1
        assert question.vote_count == 0
        assert await vote_service.total_for(db, message.id, VoteTarget.MESSAGE) == 1
        assert author.reputation == 1
