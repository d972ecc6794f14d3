"""
Vote model.

One row per (user, target, target type). Changing direction rewrites `type`
and `weight` on the existing row; the unique constraint is what makes the
upsert in VoteService safe under concurrent requests from the same user.

target_id is polymorphic (messages.id or questions.id depending on
target_type), so it carries no foreign key.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from qup.database import Base, new_id, utcnow
from qup.enums import VoteTarget, VoteType


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "target_id", "target_type", name="uq_votes_user_target"),
        CheckConstraint("weight > 0", name="ck_votes_weight_positive"),
        Index("idx_votes_target", "target_type", "target_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    target_type: Mapped[VoteTarget] = mapped_column(
        Enum(VoteTarget, native_enum=False, length=20), nullable=False
    )
    type: Mapped[VoteType] = mapped_column(
        Enum(VoteType, native_enum=False, length=10), nullable=False
    )
    # Voter's role weight when the vote was cast or last changed
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<Vote(id={self.id}, {self.type} x{self.weight} on {self.target_type}:{self.target_id})>"
