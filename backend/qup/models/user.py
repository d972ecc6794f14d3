"""
Qup Backend - User Model
==========================

What:  ORM model for the `users` table.
Who:   AuthService (registration, login, token revocation), UserService,
       and every service that checks roles or authorship.

Column notes:
    - role drives both permissions (constants.ROLE_PERMISSIONS) and vote weight
    - token_version is embedded in every JWT as `ver`; bumping it on logout
      revokes all tokens issued before
    - reputation is the running sum of signed vote weights received
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from qup.database import Base, new_id, utcnow
from qup.enums import UserRole, UserStatus


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    username: Mapped[str] = mapped_column(String(30), nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.NORMAL,
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, native_enum=False, length=20),
        nullable=False,
        default=UserStatus.OFFLINE,
    )
    reputation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Auth bookkeeping ──────────────────────────────────────────────────
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    push_token: Mapped[str | None] = mapped_column(String(500), nullable=True)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"
