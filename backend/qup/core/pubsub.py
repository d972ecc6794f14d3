"""
In-process publish/subscribe broker feeding the GraphQL subscriptions.

Every subscriber owns an asyncio.Queue registered under (topic, key).
`publish` fans a payload out to the queues registered for that exact key and
for the wildcard key None. Closing the async iterator unregisters the queue.

Services publish through `publish_on_commit`, so subscribers never see an
event from a transaction that was rolled back.

Single process only: a multi-worker deployment needs an external broker.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, DefaultDict, Hashable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

# ── Topics ────────────────────────────────────────────────────────────────
MESSAGE_CREATED = "message_created"
MESSAGE_UPDATED = "message_updated"
MESSAGE_DELETED = "message_deleted"
QUESTION_CREATED = "question_created"
QUESTION_UPDATED = "question_updated"
QUESTION_DELETED = "question_deleted"
VOTE_CREATED = "vote_created"
VOTE_UPDATED = "vote_updated"
VOTE_DELETED = "vote_deleted"
USER_STATUS_CHANGED = "user_status_changed"
NOTIFICATION_CREATED = "notification_created"

Channel = Tuple[str, Optional[Hashable]]


def vote_key(target_type: Any, target_id: Any) -> str:
    value = target_type.value if hasattr(target_type, "value") else target_type
    return f"{value}:{target_id}"


class EventBroker:
    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: DefaultDict[Channel, Set[asyncio.Queue]] = defaultdict(set)

    def subscriber_count(self, topic: str, key: Optional[Hashable] = None) -> int:
        return len(self._subscribers.get((topic, key), ()))

    async def publish(self, topic: str, key: Optional[Hashable], payload: Any) -> int:
        """Delivers `payload` to matching subscribers; returns how many received it."""
        targets = set(self._subscribers.get((topic, key), ()))
        if key is not None:
            targets |= self._subscribers.get((topic, None), set())

        delivered = 0
        for queue in targets:
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full on %s:%s, event dropped", topic, key)
        logger.debug("Published %s:%s to %d subscriber(s)", topic, key, delivered)
        return delivered

    async def subscribe(self, topic: str, key: Optional[Hashable] = None) -> AsyncIterator[Any]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        channel = (topic, key)
        self._subscribers[channel].add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            subscribers = self._subscribers.get(channel)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[channel]


broker = EventBroker()


# ── Transaction-bound publishing ──────────────────────────────────────────
# Services queue events on the session; they reach subscribers only once the
# request transaction commits, and are dropped when it rolls back.

PENDING_EVENTS = "qup.pending_events"


def publish_on_commit(db: Any, topic: str, key: Optional[Hashable], payload: Any) -> None:
    db.info.setdefault(PENDING_EVENTS, []).append((topic, key, payload))


async def deliver_pending(db: Any) -> int:
    """Publishes the events queued on `db`; call right after a successful commit."""
    events: List[Tuple[str, Optional[Hashable], Any]] = db.info.pop(PENDING_EVENTS, [])
    for topic, key, payload in events:
        await broker.publish(topic, key, payload)
    return len(events)


def discard_pending(db: Any) -> None:
    dropped = db.info.pop(PENDING_EVENTS, None)
    if dropped:
        logger.debug("Discarded %d unpublished event(s) after rollback", len(dropped))
