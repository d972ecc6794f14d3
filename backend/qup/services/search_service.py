"""
Case-insensitive substring search across messages, questions and users.

Messages and questions are restricted to channels the caller can read;
soft-deleted messages never match.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qup.exceptions import ValidationError
from qup.models import Message, Question, User
from qup.services.channel_service import channel_service

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("messages", "questions", "users")


@dataclass
class SearchResults:
    messages: List[Message] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    users: List[User] = field(default_factory=list)


def _pattern(query: str) -> str:
    escaped = query.lower().replace("!", "!!").replace("%", "!%").replace("_", "!_")
    return f"%{escaped}%"


class SearchService:
    async def search(
        self,
        db: AsyncSession,
        user: User,
        query: str,
        type: Optional[str] = None,
        limit: int = 20,
    ) -> SearchResults:
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query cannot be empty", field="query")
        if type is not None and type not in SEARCH_TYPES:
            raise ValidationError(
                f"Invalid search type '{type}'. Must be one of: {', '.join(SEARCH_TYPES)}",
                field="type",
            )

        pattern = _pattern(query)
        visible = channel_service.visible_channel_ids(user)
        results = SearchResults()

        if type in (None, "messages"):
            rows = await db.execute(
                select(Message)
                .where(
                    func.lower(Message.content).like(pattern, escape="!"),
                    Message.is_deleted.is_(False),
                    Message.channel_id.in_(visible),
                )
                .order_by(Message.created_at.desc())
                .limit(limit)
            )
            results.messages = list(rows.scalars().all())

        if type in (None, "questions"):
            rows = await db.execute(
                select(Question)
                .where(
                    or_(
                        func.lower(Question.title).like(pattern, escape="!"),
                        func.lower(Question.content).like(pattern, escape="!"),
                    ),
                    Question.channel_id.in_(visible),
                )
                .order_by(Question.created_at.desc())
                .limit(limit)
            )
            results.questions = list(rows.scalars().all())

        if type in (None, "users"):
            rows = await db.execute(
                select(User)
                .where(
                    or_(
                        func.lower(User.username).like(pattern, escape="!"),
                        func.lower(User.display_name).like(pattern, escape="!"),
                    )
                )
                .order_by(User.username.asc())
                .limit(limit)
            )
            results.users = list(rows.scalars().all())

        logger.debug(
            "Search %r (%s): %d messages, %d questions, %d users",
            query, type or "all", len(results.messages), len(results.questions), len(results.users),
        )
        return results


search_service = SearchService()
