"""
Shared builders for the Qup test suite.

Imported by test modules after conftest.py has configured the environment.
"""

import uuid
from typing import Optional

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qup.enums import UserRole
from qup.models import User


def make_user(role: UserRole = UserRole.NORMAL, **overrides) -> User:
    """Transient User row (not attached to a session) for service unit tests."""
    values = dict(
        id=uuid.uuid4(),
        email=f"{uuid.uuid4().hex[:8]}@qup.io",
        username=f"user_{uuid.uuid4().hex[:8]}",
        display_name="Test User",
        password_hash="x",
        role=role,
        reputation=0,
        token_version=0,
    )
    values.update(overrides)
    return User(**values)


async def register_user(
    client: AsyncClient,
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: str = "password123",
    display_name: str = "Test User",
) -> dict:
    """Registers through the REST API; returns the AuthResponse body."""
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "email": email or f"{username}@qup.io",
            "username": username,
            "display_name": display_name,
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(auth: dict) -> dict:
    return {"Authorization": f"Bearer {auth['token']}"}


async def set_role(db_engine, user_id: str, role: UserRole) -> None:
    """Changes a role directly in the database (no admin exists to do it via the API)."""
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        user = await session.get(User, uuid.UUID(user_id))
        user.role = role
        await session.commit()


async def graphql(
    client: AsyncClient,
    query: str,
    variables: Optional[dict] = None,
    auth: Optional[dict] = None,
) -> dict:
    response = await client.post(
        "/graphql",
        json={"query": query, "variables": variables or {}},
        headers=auth_headers(auth) if auth else {},
    )
    assert response.status_code == 200, response.text
    return response.json()
