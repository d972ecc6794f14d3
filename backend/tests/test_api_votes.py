"""
Qup Backend - Vote API Tests
==============================

What:  Weighted vote totals over REST, re-voting, vote counts, withdrawal and
       channel access on private channels.
"""

import pytest

from qup.enums import UserRole
from helpers import auth_headers, register_user, set_role


async def _message(client, auth):
    channel = (
        await client.post("/api/v1/channels", json={"name": "general"}, headers=auth_headers(auth))
    ).json()
    response = await client.post(
        "/api/v1/messages",
        json={"channel_id": channel["id"], "content": "Vote on me"},
        headers=auth_headers(auth),
    )
    return response.json()


async def _vote(client, auth, target_id, vote_type="UP", target_type="MESSAGE"):
    return await client.post(
        "/api/v1/votes",
        json={"target_id": target_id, "target_type": target_type, "type": vote_type},
        headers=auth_headers(auth),
    )


class TestVotes:
    @pytest.mark.asyncio
    async def test_weighted_total(self, client, db_engine):
        author = await register_user(client)
        normal = await register_user(client)
        moderator = await register_user(client)
        special = await register_user(client)
        await set_role(db_engine, moderator["user"]["id"], UserRole.MODERATOR)
        await set_role(db_engine, special["user"]["id"], UserRole.SPECIAL)
        message = await _message(client, author)

        assert (await _vote(client, normal, message["id"])).json()["vote_count"] == 1
        assert (await _vote(client, moderator, message["id"])).json()["vote_count"] == 11
        response = await _vote(client, special, message["id"], "DOWN")
        assert response.status_code == 201
        assert response.json()["vote"]["weight"] == 5
        assert response.json()["vote_count"] == 6

        count = await client.get(
            "/api/v1/votes/count",
            params={"target_id": message["id"], "target_type": "MESSAGE"},
            headers=auth_headers(author),
        )
        assert count.json() == {"vote_count": 6}

        fetched = await client.get(f"/api/v1/messages/{message['id']}", headers=auth_headers(author))
        assert fetched.json()["vote_count"] == 6

        me = await client.get("/api/v1/auth/me", headers=auth_headers(author))
        assert me.json()["reputation"] == 6

    @pytest.mark.asyncio
    async def test_voting_again_updates(self, client):
        author = await register_user(client)
        voter = await register_user(client)
        message = await _message(client, author)

        first = (await _vote(client, voter, message["id"], "UP")).json()
        second = (await _vote(client, voter, message["id"], "DOWN")).json()
        assert second["vote"]["id"] == first["vote"]["id"]
        assert second["vote_count"] == -1

        votes = await client.get(
            "/api/v1/votes",
            params={"target_id": message["id"], "target_type": "MESSAGE"},
            headers=auth_headers(author),
        )
        assert len(votes.json()) == 1
        assert votes.json()[0]["type"] == "DOWN"

    @pytest.mark.asyncio
    async def test_update_and_delete_vote(self, client):
        author = await register_user(client)
        voter = await register_user(client)
        message = await _message(client, author)
        vote = (await _vote(client, voter, message["id"])).json()["vote"]

        updated = await client.put(
            f"/api/v1/votes/{vote['id']}", json={"type": "DOWN"}, headers=auth_headers(voter)
        )
        assert updated.json()["vote_count"] == -1

        stranger = await client.delete(f"/api/v1/votes/{vote['id']}", headers=auth_headers(author))
        assert stranger.status_code == 403

        deleted = await client.delete(f"/api/v1/votes/{vote['id']}", headers=auth_headers(voter))
        assert deleted.status_code == 204
        count = await client.get(
            "/api/v1/votes/count",
            params={"target_id": message["id"], "target_type": "MESSAGE"},
            headers=auth_headers(author),
        )
        assert count.json()["vote_count"] == 0

    @pytest.mark.asyncio
    async def test_unknown_target(self, client):
        voter = await register_user(client)
        response = await _vote(client, voter, "00000000-0000-0000-0000-000000000000", target_type="QUESTION")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_vote_requires_auth(self, client):
        response = await client.post(
            "/api/v1/votes",
            json={"target_id": "00000000-0000-0000-0000-000000000000", "target_type": "MESSAGE", "type": "UP"},
        )
        assert response.status_code == 401


class TestVoteAccess:
    @pytest.mark.asyncio
    async def test_outsider_blocked_on_private_channel(self, client):
        owner = await register_user(client)
        outsider = await register_user(client)
        channel = (
            await client.post(
                "/api/v1/channels", json={"name": "finance", "type": "PRIVATE"}, headers=auth_headers(owner)
            )
        ).json()
        message = (
            await client.post(
                "/api/v1/messages",
                json={"channel_id": channel["id"], "content": "Payroll run is on Friday"},
                headers=auth_headers(owner),
            )
        ).json()
        params = {"target_id": message["id"], "target_type": "MESSAGE"}

        assert (await client.get(f"/api/v1/messages/{message['id']}", headers=auth_headers(outsider))).status_code == 403

        response = await _vote(client, outsider, message["id"], "DOWN")
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied"

        listed = await client.get("/api/v1/votes", params=params, headers=auth_headers(outsider))
        assert listed.status_code == 403
        counted = await client.get("/api/v1/votes/count", params=params, headers=auth_headers(outsider))
        assert counted.status_code == 403

        # Nothing was recorded
        assert (await client.get("/api/v1/votes", params=params, headers=auth_headers(owner))).json() == []
