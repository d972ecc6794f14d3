"""
Qup Backend - Authentication Service
======================================

What:  Registration, login, logout, token refresh and bearer-token lookup.
How:   Passwords hashed with passlib; tokens issued and verified through
       qup.core.security. Every successful login or refresh returns a fresh
       (access, refresh) pair.
Who:   REST auth router, GraphQL auth mutations, qup.dependencies and the
       GraphQL context getter (authenticate).

Token revocation:
    Logout increments users.token_version. authenticate() and refresh()
    reject tokens whose `ver` claim no longer matches, so one logout
    invalidates every outstanding token for that user.
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qup.core import security, validation
from qup.database import utcnow
from qup.enums import UserRole, UserStatus
from qup.exceptions import AuthenticationError, ConflictError
from qup.models import User

logger = logging.getLogger(__name__)

AuthResult = Tuple[User, str, str]


class AuthService:
    def _issue_tokens(self, user: User) -> AuthResult:
        return user, security.create_access_token(user), security.create_refresh_token(user)

    async def register(
        self,
        db: AsyncSession,
        email: str,
        username: str,
        display_name: str,
        password: str,
        avatar: Optional[str] = None,
    ) -> AuthResult:
        """
        Create a NORMAL user and sign them in.

        Raises:
            ValidationError: email, username, display name or password rule broken
            ConflictError:   email or username already taken
        """
        email = validation.validate_email(email)
        username = validation.validate_username(username)
        display_name = validation.validate_display_name(display_name)
        validation.validate_password(password)

        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Email already exists", context={"field": "email"})
        existing = await db.execute(select(User.id).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Username already exists", context={"field": "username"})

        user = User(
            email=email,
            username=username,
            display_name=display_name,
            password_hash=security.hash_password(password),
            avatar=avatar,
            role=UserRole.NORMAL,
            status=UserStatus.ONLINE,
            token_version=0,
            last_seen_at=utcnow(),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email/username
            raise ConflictError("User already exists")

        logger.info("User registered: %s (%s)", user.username, user.id)
        return self._issue_tokens(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResult:
        normalized = (email or "").strip().lower()
        result = await db.execute(select(User).where(User.email == normalized))
        user = result.scalar_one_or_none()
        if user is None or not security.verify_password(password or "", user.password_hash):
            logger.info("Failed login attempt for %s", normalized)
            raise AuthenticationError("Invalid credentials")

        user.status = UserStatus.ONLINE
        user.last_seen_at = utcnow()
        user.updated_at = utcnow()
        await db.flush()
        logger.info("User logged in: %s", user.id)
        return self._issue_tokens(user)

    async def logout(self, db: AsyncSession, user: User) -> bool:
        user.token_version = (user.token_version or 0) + 1
        user.status = UserStatus.OFFLINE
        user.last_seen_at = utcnow()
        user.updated_at = utcnow()
        await db.flush()
        logger.info("User logged out: %s (token version %d)", user.id, user.token_version)
        return True

    async def _user_for_claims(self, db: AsyncSession, claims: dict) -> User:
        try:
            user_id = uuid.UUID(claims["sub"])
        except (KeyError, ValueError):
            raise AuthenticationError("Invalid token")
        user = await db.get(User, user_id)
        if user is None:
            raise AuthenticationError("User no longer exists")
        if claims.get("ver", 0) != (user.token_version or 0):
            raise AuthenticationError("Token has been revoked")
        return user

    async def refresh(self, db: AsyncSession, refresh_token: str) -> AuthResult:
        claims = security.decode_token(refresh_token, expected_type=security.REFRESH_TOKEN)
        user = await self._user_for_claims(db, claims)
        return self._issue_tokens(user)

    async def authenticate(self, db: AsyncSession, token: str) -> User:
        """Resolves an access token to its user; any failure is an AuthenticationError."""
        claims = security.decode_token(token, expected_type=security.ACCESS_TOKEN)
        return await self._user_for_claims(db, claims)


auth_service = AuthService()
