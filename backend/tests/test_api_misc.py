"""
Qup Backend - Health, Users, Notifications and Search API Tests
=================================================================
"""

import pytest

from qup import __version__
from qup.enums import UserRole
from helpers import auth_headers, register_user, set_role


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════

@pytest.mark.asyncio
async def test_health(client):
    """The health check needs no auth and reports the database as connected."""
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["version"] == __version__
    assert "X-Request-ID" in response.headers


# ══════════════════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════════════════

class TestUsers:
    @pytest.mark.asyncio
    async def test_update_own_profile(self, client):
        auth = await register_user(client)
        response = await client.put(
            "/api/v1/users/me",
            json={"display_name": "  New Name ", "status": "AWAY"},
            headers=auth_headers(auth),
        )
        assert response.status_code == 200
        assert response.json()["display_name"] == "New Name"
        assert response.json()["status"] == "AWAY"

    @pytest.mark.asyncio
    async def test_role_change_requires_admin(self, client, db_engine):
        admin = await register_user(client)
        target = await register_user(client)
        url = f"/api/v1/users/{target['user']['id']}/role"

        denied = await client.put(url, json={"role": "MODERATOR"}, headers=auth_headers(admin))
        assert denied.status_code == 403

        await set_role(db_engine, admin["user"]["id"], UserRole.ADMIN)
        granted = await client.put(url, json={"role": "MODERATOR"}, headers=auth_headers(admin))
        assert granted.status_code == 200
        assert granted.json()["role"] == "MODERATOR"

    @pytest.mark.asyncio
    async def test_get_user(self, client):
        auth = await register_user(client, username="carol")
        other = await register_user(client)
        response = await client.get(f"/api/v1/users/{auth['user']['id']}", headers=auth_headers(other))
        assert response.json()["username"] == "carol"


# ══════════════════════════════════════════════════════════════════════════
# Notifications
# ══════════════════════════════════════════════════════════════════════════

class TestNotifications:
    async def _mention(self, client, author, mentioned, times=1):
        channel = (
            await client.post("/api/v1/channels", json={"name": "general"}, headers=auth_headers(author))
        ).json()
        for i in range(times):
            await client.post(
                "/api/v1/messages",
                json={"channel_id": channel["id"], "content": f"ping {i}", "mentions": [mentioned["user"]["id"]]},
                headers=auth_headers(author),
            )

    @pytest.mark.asyncio
    async def test_mark_read_and_read_all(self, client):
        author = await register_user(client)
        reader = await register_user(client)
        await self._mention(client, author, reader, times=3)
        headers = auth_headers(reader)

        notifications = (await client.get("/api/v1/notifications", headers=headers)).json()
        assert len(notifications) == 3

        marked = await client.put(f"/api/v1/notifications/{notifications[0]['id']}/read", headers=headers)
        assert marked.json()["is_read"] is True

        unread = await client.get("/api/v1/notifications", params={"unread_only": True}, headers=headers)
        assert len(unread.json()) == 2

        read_all = await client.put("/api/v1/notifications/read-all", headers=headers)
        assert read_all.json() == {"updated": 2}
        assert (await client.get("/api/v1/notifications/unread-count", headers=headers)).json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_cannot_read_others_notifications(self, client):
        author = await register_user(client)
        reader = await register_user(client)
        await self._mention(client, author, reader)
        notification = (await client.get("/api/v1/notifications", headers=auth_headers(reader))).json()[0]

        response = await client.get(f"/api/v1/notifications/{notification['id']}", headers=auth_headers(author))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_notification(self, client):
        author = await register_user(client)
        reader = await register_user(client)
        await self._mention(client, author, reader)
        headers = auth_headers(reader)
        notification = (await client.get("/api/v1/notifications", headers=headers)).json()[0]

        assert (await client.delete(f"/api/v1/notifications/{notification['id']}", headers=headers)).status_code == 204
        assert (await client.get("/api/v1/notifications", headers=headers)).json() == []


# ══════════════════════════════════════════════════════════════════════════
# Search
# ══════════════════════════════════════════════════════════════════════════

class TestSearch:
    @pytest.mark.asyncio
    async def test_search_respects_channel_visibility(self, client):
        owner = await register_user(client)
        outsider = await register_user(client)
        headers = auth_headers(owner)
        public = (await client.post("/api/v1/channels", json={"name": "pub"}, headers=headers)).json()
        private = (
            await client.post("/api/v1/channels", json={"name": "priv", "type": "PRIVATE"}, headers=headers)
        ).json()
        await client.post("/api/v1/messages", json={"channel_id": public["id"], "content": "kubernetes upgrade"}, headers=headers)
        await client.post("/api/v1/messages", json={"channel_id": private["id"], "content": "kubernetes secrets"}, headers=headers)

        mine = await client.get("/api/v1/search", params={"q": "kubernetes"}, headers=headers)
        assert len(mine.json()["messages"]) == 2

        theirs = await client.get("/api/v1/search", params={"q": "kubernetes"}, headers=auth_headers(outsider))
        assert [m["content"] for m in theirs.json()["messages"]] == ["kubernetes upgrade"]

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, client):
        auth = await register_user(client)
        response = await client.get("/api/v1/search", params={"q": " "}, headers=auth_headers(auth))
        assert response.status_code == 400
