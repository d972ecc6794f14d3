"""
Message model.

A message is a chat line, a reply (parent_id set), or an ANSWER to a question
(question_id set, type ANSWER). Answers are messages so that votes on
MESSAGE and ANSWER targets both resolve to this table.

Deletion is soft: is_deleted hides the content but keeps thread structure
and vote history.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, JSON, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from qup.database import Base, new_id, utcnow
from qup.enums import MessageType


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_channel_created", "channel_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, native_enum=False, length=20),
        nullable=False,
        default=MessageType.TEXT,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    channel_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("channels.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("messages.id", ondelete="CASCADE"), nullable=True, index=True
    )
    question_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # User ids mentioned in the content, kept for notification fan-out
    mentions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Denormalized signed weight sum, rewritten inside each vote transaction
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, type='{self.type}', channel_id={self.channel_id})>"
