"""
Qup Backend - Auth Service Tests
==================================

What:  Registration, login, token refresh and revocation in AuthService.
How:   Most tests run against a real SQLite session (db_session fixture);
       the conflict path is also checked against a mocked session to show
       that no row is added once a duplicate is found.
"""

import uuid
from unittest.mock import MagicMock

import pytest

from qup.core import security
from qup.enums import UserRole, UserStatus
from qup.exceptions import AuthenticationError, ConflictError, ValidationError
from qup.services.auth_service import auth_service


async def _register(db, username="alice", email=None, password="password123"):
    return await auth_service.register(
        db,
        email=email or f"{username}@qup.io",
        username=username,
        display_name=username.title(),
        password=password,
    )


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_normal_user(self, db_session):
        user, token, refresh = await _register(db_session, email="Alice@Qup.IO")

        assert user.id is not None
        assert user.email == "alice@qup.io"
        assert user.role == UserRole.NORMAL
        assert user.status == UserStatus.ONLINE
        assert user.password_hash != "password123"
        assert security.decode_token(token)["sub"] == str(user.id)
        assert security.decode_token(refresh, expected_type=security.REFRESH_TOKEN)["sub"] == str(user.id)

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session):
        await _register(db_session, username="alice", email="alice@qup.io")
        with pytest.raises(ConflictError, match="Email already exists"):
            await _register(db_session, username="alice2", email="ALICE@qup.io")

    @pytest.mark.asyncio
    async def test_duplicate_username(self, db_session):
        await _register(db_session, username="alice")
        with pytest.raises(ConflictError, match="Username already exists"):
            await _register(db_session, username="alice", email="other@qup.io")

    @pytest.mark.asyncio
    async def test_invalid_input(self, db_session):
        with pytest.raises(ValidationError, match="Invalid email format"):
            await _register(db_session, email="nope")
        with pytest.raises(ValidationError):
            await _register(db_session, username="a b")
        with pytest.raises(ValidationError):
            await _register(db_session, password="short")

    @pytest.mark.asyncio
    async def test_conflict_adds_nothing(self, mock_db_session):
        """With a mocked session reporting an existing email, no row is added."""
        existing = MagicMock()
        existing.scalar_one_or_none.return_value = uuid.uuid4()
        mock_db_session.execute.return_value = existing

        with pytest.raises(ConflictError):
            await _register(mock_db_session)
        mock_db_session.add.assert_not_called()
        mock_db_session.flush.assert_not_awaited()


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, db_session):
        registered, _, _ = await _register(db_session)
        user, token, _ = await auth_service.login(db_session, "ALICE@qup.io", "password123")
        assert user.id == registered.id
        assert (await auth_service.authenticate(db_session, token)).id == registered.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session):
        await _register(db_session)
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await auth_service.login(db_session, "alice@qup.io", "wrong-password")

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await auth_service.login(db_session, "ghost@qup.io", "password123")


class TestTokens:
    @pytest.mark.asyncio
    async def test_logout_revokes_outstanding_tokens(self, db_session):
        user, token, refresh = await _register(db_session)
        assert await auth_service.logout(db_session, user) is True
        assert user.status == UserStatus.OFFLINE

        with pytest.raises(AuthenticationError, match="Token has been revoked"):
            await auth_service.authenticate(db_session, token)
        with pytest.raises(AuthenticationError, match="Token has been revoked"):
            await auth_service.refresh(db_session, refresh)

    @pytest.mark.asyncio
    async def test_refresh_issues_access_token(self, db_session):
        user, token, refresh = await _register(db_session)
        refreshed_user, new_token, _ = await auth_service.refresh(db_session, refresh)
        assert refreshed_user.id == user.id
        assert security.decode_token(new_token)["type"] == security.ACCESS_TOKEN

    @pytest.mark.asyncio
    async def test_refresh_rejects_access_token(self, db_session):
        _, token, _ = await _register(db_session)
        with pytest.raises(AuthenticationError, match="Invalid token type"):
            await auth_service.refresh(db_session, token)

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, db_session):
        user, token, _ = await _register(db_session)
        await db_session.delete(user)
        await db_session.flush()
        with pytest.raises(AuthenticationError, match="User no longer exists"):
            await auth_service.authenticate(db_session, token)
