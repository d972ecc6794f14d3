"""
Tests for the in-process event broker (qup.core.pubsub).
"""

import asyncio
from types import SimpleNamespace

import pytest

from qup.core import pubsub
from qup.core.pubsub import EventBroker, vote_key
from qup.enums import VoteTarget


async def _next(iterator, timeout: float = 1.0):
    return await asyncio.wait_for(iterator.__anext__(), timeout)


class TestEventBroker:
    def setup_method(self):
        self.broker = EventBroker()

    @pytest.mark.asyncio
    async def test_keyed_delivery(self):
        stream = self.broker.subscribe("message_created", "channel-1")
        pending = asyncio.ensure_future(_next(stream))
        await asyncio.sleep(0)

        delivered = await self.broker.publish("message_created", "channel-1", {"id": 1})
        assert delivered == 1
        assert await pending == {"id": 1}
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_other_key_not_delivered(self):
        stream = self.broker.subscribe("message_created", "channel-1")
        pending = asyncio.ensure_future(_next(stream, timeout=0.1))
        await asyncio.sleep(0)

        assert await self.broker.publish("message_created", "channel-2", "x") == 0
        with pytest.raises(asyncio.TimeoutError):
            await pending
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_wildcard_subscriber_sees_every_key(self):
        stream = self.broker.subscribe("user_status_changed", None)
        pending = asyncio.ensure_future(_next(stream))
        await asyncio.sleep(0)

        assert await self.broker.publish("user_status_changed", "user-9", "online") == 1
        assert await pending == "online"
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_close_unregisters(self):
        stream = self.broker.subscribe("vote_created", "k")
        pending = asyncio.ensure_future(_next(stream))
        await asyncio.sleep(0)
        assert self.broker.subscriber_count("vote_created", "k") == 1

        await self.broker.publish("vote_created", "k", 1)
        await pending
        await stream.aclose()
        assert self.broker.subscriber_count("vote_created", "k") == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_event(self):
        broker = EventBroker(max_queue_size=1)
        stream = broker.subscribe("t", "k")
        pending = asyncio.ensure_future(_next(stream))
        await asyncio.sleep(0)

        await broker.publish("t", "k", 1)
        await pending
        assert await broker.publish("t", "k", 2) == 1
        assert await broker.publish("t", "k", 3) == 0
        await stream.aclose()


def test_vote_key_uses_enum_value():
    assert vote_key(VoteTarget.QUESTION, "abc") == "QUESTION:abc"
    assert vote_key("ANSWER", "abc") == "ANSWER:abc"


class TestCommitBoundPublishing:
    """Events queued on a session reach subscribers only after commit."""

    @pytest.mark.asyncio
    async def test_queued_event_waits_for_delivery(self):
        session = SimpleNamespace(info={})
        stream = pubsub.broker.subscribe(pubsub.MESSAGE_CREATED, "channel-q")
        pending = asyncio.ensure_future(_next(stream))
        await asyncio.sleep(0)

        pubsub.publish_on_commit(session, pubsub.MESSAGE_CREATED, "channel-q", {"id": 7})
        await asyncio.sleep(0)
        assert not pending.done()

        assert await pubsub.deliver_pending(session) == 1
        assert await pending == {"id": 7}
        assert pubsub.PENDING_EVENTS not in session.info
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_discarded_events_never_arrive(self):
        session = SimpleNamespace(info={})
        stream = pubsub.broker.subscribe(pubsub.MESSAGE_CREATED, "channel-r")
        pending = asyncio.ensure_future(_next(stream, timeout=0.1))
        await asyncio.sleep(0)

        pubsub.publish_on_commit(session, pubsub.MESSAGE_CREATED, "channel-r", {"id": 8})
        pubsub.discard_pending(session)

        assert await pubsub.deliver_pending(session) == 0
        with pytest.raises(asyncio.TimeoutError):
            await pending
        await stream.aclose()
