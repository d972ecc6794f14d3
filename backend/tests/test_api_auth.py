"""
Qup Backend - Auth API Tests
==============================

What:  Register / login / refresh / logout / me over REST, including the
       error bodies the exception handlers produce.
How:   HTTPX AsyncClient against the ASGI app with a per-test SQLite database.
"""

import pytest

from helpers import auth_headers, register_user


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_user_and_tokens(self, client):
        body = await register_user(client, username="alice", email="Alice@Qup.io", display_name="Alice")

        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@qup.io"
        assert body["user"]["role"] == "NORMAL"
        assert body["user"]["reputation"] == 0
        assert "password_hash" not in body["user"]
        assert body["token"]
        assert body["refresh_token"]

    @pytest.mark.asyncio
    async def test_invalid_username_format(self, client):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "bob@qup.io", "username": "bob smith", "display_name": "Bob", "password": "password123"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Username can only contain letters, numbers, underscores, and hyphens"
        assert body["details"]["field"] == "username"

    @pytest.mark.asyncio
    async def test_invalid_email_format(self, client):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "not-an-email", "username": "bob", "display_name": "Bob", "password": "password123"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid email format"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client):
        await register_user(client, username="alice", email="alice@qup.io")
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "alice@qup.io", "username": "alice2", "display_name": "A", "password": "password123"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"

    @pytest.mark.asyncio
    async def test_missing_field_is_422(self, client):
        response = await client.post("/api/v1/auth/register", json={"email": "x@qup.io"})
        assert response.status_code == 422


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, client):
        await register_user(client, username="alice", password="password123")
        response = await client.post(
            "/api/v1/auth/login", json={"email": "alice@qup.io", "password": "password123"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert body["user"]["status"] == "ONLINE"

        me = await client.get("/api/v1/auth/me", headers=auth_headers(body))
        assert me.status_code == 200
        assert me.json()["username"] == "alice"

    @pytest.mark.asyncio
    async def test_invalid_credentials(self, client):
        await register_user(client, username="alice")
        response = await client.post(
            "/api/v1/auth/login", json={"email": "alice@qup.io", "password": "wrong-password"}
        )
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthenticated"
        assert body["message"] == "Invalid credentials"


class TestTokens:
    @pytest.mark.asyncio
    async def test_me_requires_token(self, client):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required"

    @pytest.mark.asyncio
    async def test_malformed_token(self, client):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, client):
        auth = await register_user(client)
        response = await client.post("/api/v1/auth/logout", headers=auth_headers(auth))
        assert response.status_code == 204

        response = await client.get("/api/v1/auth/me", headers=auth_headers(auth))
        assert response.status_code == 401
        assert response.json()["message"] == "Token has been revoked"

    @pytest.mark.asyncio
    async def test_refresh(self, client):
        auth = await register_user(client)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": auth["refresh_token"]})
        assert response.status_code == 200
        refreshed = response.json()
        assert refreshed["user"]["id"] == auth["user"]["id"]

        me = await client.get("/api/v1/auth/me", headers=auth_headers(refreshed))
        assert me.status_code == 200

    @pytest.mark.asyncio
    async def test_refresh_with_access_token_rejected(self, client):
        auth = await register_user(client)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": auth["token"]})
        assert response.status_code == 401


class TestRequestId:
    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/api/v1/auth/me", headers={"X-Request-ID": "test-rid-123"})
        assert response.headers["X-Request-ID"] == "test-rid-123"
        assert response.json()["request_id"] == "test-rid-123"
