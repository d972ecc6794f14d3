"""
Qup Backend - File API Tests
==============================

What:  Upload, listing, metadata and download over REST, with the channel
       visibility rules applied to attachments.
How:   MIME sniffing is patched on the shared FileService so libmagic is not
       required; bytes land in the test STORAGE_ROOT.
"""

from unittest.mock import AsyncMock, patch

import pytest
from starlette.datastructures import UploadFile

from qup.services.file_service import file_service
from helpers import auth_headers, register_user

PDF = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\n%%EOF\n"


async def _upload(client, auth, content=PDF, name="payroll.pdf", **form):
    with patch.object(file_service, "detect_mime_type", return_value="application/pdf"):
        return await client.post(
            "/api/v1/files/upload",
            files={"file": (name, content, "application/pdf")},
            data=form,
            headers=auth_headers(auth),
        )


async def _private_message(client, owner):
    channel = (
        await client.post(
            "/api/v1/channels", json={"name": "finance", "type": "PRIVATE"}, headers=auth_headers(owner)
        )
    ).json()
    return (
        await client.post(
            "/api/v1/messages",
            json={"channel_id": channel["id"], "content": "Payroll attached"},
            headers=auth_headers(owner),
        )
    ).json()


class TestFileVisibility:
    @pytest.mark.asyncio
    async def test_private_channel_attachment_hidden_from_outsiders(self, client):
        owner = await register_user(client)
        outsider = await register_user(client)
        message = await _private_message(client, owner)

        uploaded = await _upload(client, owner, message_id=message["id"])
        assert uploaded.status_code == 201
        file_id = uploaded.json()["id"]

        listed = await client.get("/api/v1/files", headers=auth_headers(outsider))
        assert listed.status_code == 200
        assert listed.json() == []

        metadata = await client.get(f"/api/v1/files/{file_id}", headers=auth_headers(outsider))
        assert metadata.status_code == 403
        assert metadata.json()["message"] == "Access denied"
        download = await client.get(f"/api/v1/files/{file_id}/download", headers=auth_headers(outsider))
        assert download.status_code == 403

        # The owner is a member of the channel and the uploader
        owned = await client.get("/api/v1/files", headers=auth_headers(owner))
        assert [f["original_name"] for f in owned.json()] == ["payroll.pdf"]
        content = await client.get(f"/api/v1/files/{file_id}/download", headers=auth_headers(owner))
        assert content.status_code == 200
        assert content.content == PDF

    @pytest.mark.asyncio
    async def test_public_channel_attachment_visible(self, client):
        owner = await register_user(client)
        reader = await register_user(client)
        channel = (await client.post("/api/v1/channels", json={"name": "general"}, headers=auth_headers(owner))).json()
        message = (
            await client.post(
                "/api/v1/messages",
                json={"channel_id": channel["id"], "content": "Agenda"},
                headers=auth_headers(owner),
            )
        ).json()
        file_id = (await _upload(client, owner, name="agenda.pdf", message_id=message["id"])).json()["id"]

        listed = await client.get(
            "/api/v1/files", params={"message_id": message["id"]}, headers=auth_headers(reader)
        )
        assert [f["id"] for f in listed.json()] == [file_id]
        assert (await client.get(f"/api/v1/files/{file_id}", headers=auth_headers(reader))).status_code == 200

    @pytest.mark.asyncio
    async def test_unattached_upload_is_private_to_uploader(self, client):
        owner = await register_user(client)
        other = await register_user(client)
        file_id = (await _upload(client, owner, name="draft.pdf")).json()["id"]

        assert (await client.get("/api/v1/files", headers=auth_headers(other))).json() == []
        assert (await client.get(f"/api/v1/files/{file_id}", headers=auth_headers(other))).status_code == 403
        assert (await client.get(f"/api/v1/files/{file_id}", headers=auth_headers(owner))).status_code == 200


class TestUploadLimits:
    @pytest.mark.asyncio
    async def test_oversized_part_rejected_before_body_is_read(self, client):
        owner = await register_user(client)
        with patch("qup.core.files.FILE_MAX_SIZE", 1024), \
             patch.object(UploadFile, "read", new=AsyncMock(return_value=b"")) as read:
            response = await _upload(client, owner, content=b"x" * 2048, name="big.pdf")

        assert response.status_code == 400
        assert "cannot exceed" in response.json()["message"]
        read.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_upload_rejected(self, client):
        owner = await register_user(client)
        response = await _upload(client, owner, content=b"", name="empty.pdf")
        assert response.status_code == 400
        assert response.json()["message"] == "File is empty"
