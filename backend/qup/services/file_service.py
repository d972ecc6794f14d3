"""
Qup Backend - File Storage Service
====================================

What:  Upload, registration, lookup and removal of file attachments.
How:   Size check, MIME sniffing from content bytes (python-magic), type
       classification, then an async write (aiofiles) into a date directory.
Who:   REST files router (upload / download / delete) and GraphQL
       createFile / deleteFile; MessageService links attachments by id.

Storage Layout:
    storage/
    └── 2025/
        └── 03/
            └── 14/
                ├── 6f1c..._1710412345123.png
                └── 6f1c..._1710412399870.pdf

    Stored names come from core.files.generate_file_name; only the
    extension of the client's filename is kept, so no user-supplied path
    component ever reaches the filesystem.

Visibility:
    A file is visible to its uploader and to anyone who can read the channel
    of the message or question it is attached to. Unattached files are
    private to the uploader.
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

import aiofiles
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qup.config import settings
from qup.core import permissions
from qup.core.files import generate_file_name, validate_file_size, validate_upload_type
from qup.exceptions import FileStorageError, NotFoundError, PermissionDeniedError
from qup.models import Channel, File, Message, Question, User
from qup.services.channel_service import channel_service

logger = logging.getLogger(__name__)

DOWNLOAD_URL = "/api/v1/files/{file_id}/download"


class FileService:
    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Disk operations ───────────────────────────────────────────────────

    def detect_mime_type(self, content: bytes) -> str:
        """
        Sniff the MIME type from the file's leading bytes.

        The client-declared Content-Type is never trusted; libmagic inspects
        the signature (e.g. PNG starts with 89 50 4E 47).
        """
        try:
            import magic

            return magic.from_buffer(content[:8192], mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

    def _storage_path(self, stored_name: str) -> Tuple[Path, str]:
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{stored_name}"
        return self.storage_root / relative_path, relative_path

    async def store(self, content: bytes, stored_name: str) -> Tuple[Path, str]:
        absolute_path, relative_path = self._storage_path(stored_name)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )
        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return absolute_path, relative_path

    async def cleanup_file(self, path: Union[str, Path]) -> None:
        """Best-effort removal; a leftover file is logged, never raised."""
        path = Path(path)
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", path, str(e))

    def resolve_path(self, file: File) -> Path:
        """Absolute on-disk path for a stored file, confined to the storage root."""
        if not file.path:
            raise NotFoundError(resource="file content", resource_id=str(file.id))
        path = (self.storage_root / file.path).resolve()
        if self.storage_root not in path.parents:
            raise FileStorageError(
                message="Invalid file path",
                context={"file_id": str(file.id)},
            )
        if not path.is_file():
            raise NotFoundError(resource="file content", resource_id=str(file.id))
        return path

    # ── Link targets ──────────────────────────────────────────────────────

    async def _check_links(
        self,
        db: AsyncSession,
        user: User,
        message_id: Optional[uuid.UUID],
        question_id: Optional[uuid.UUID],
    ) -> None:
        if message_id is not None:
            message = await db.get(Message, message_id)
            if message is None:
                raise NotFoundError(resource="message", resource_id=str(message_id))
            if message.user_id != user.id:
                raise PermissionDeniedError("Cannot attach files to another user's message")
        if question_id is not None:
            question = await db.get(Question, question_id)
            if question is None:
                raise NotFoundError(resource="question", resource_id=str(question_id))
            if question.user_id != user.id:
                raise PermissionDeniedError("Cannot attach files to another user's question")

    # ── Public API ────────────────────────────────────────────────────────

    async def upload(
        self,
        db: AsyncSession,
        user: User,
        filename: str,
        content: bytes,
        message_id: Optional[uuid.UUID] = None,
        question_id: Optional[uuid.UUID] = None,
    ) -> File:
        """
        Validate, store and record an uploaded file.

        Order: size (no I/O) → MIME sniff → link checks → disk write → row.
        If the row cannot be written the stored file is removed again.
        """
        original_name = Path(filename or "upload").name
        validate_file_size(len(content))
        mime_type = self.detect_mime_type(content)
        file_type = validate_upload_type(mime_type)
        await self._check_links(db, user, message_id, question_id)

        stored_name = generate_file_name(original_name, user.id)
        absolute_path, relative_path = await self.store(content, stored_name)

        file_id = uuid.uuid4()
        record = File(
            id=file_id,
            filename=stored_name,
            original_name=original_name,
            mime_type=mime_type,
            size=len(content),
            type=file_type,
            url=DOWNLOAD_URL.format(file_id=file_id),
            path=relative_path,
            uploaded_by=user.id,
            message_id=message_id,
            question_id=question_id,
        )
        db.add(record)
        try:
            await db.flush()
        except Exception:
            await self.cleanup_file(absolute_path)
            raise
        logger.info("File %s uploaded by %s (%s, %d bytes)", record.id, user.id, mime_type, record.size)
        return record

    async def register_file(
        self,
        db: AsyncSession,
        user: User,
        filename: str,
        original_name: str,
        mime_type: str,
        size: int,
        url: str,
        message_id: Optional[uuid.UUID] = None,
        question_id: Optional[uuid.UUID] = None,
    ) -> File:
        """Records metadata for a file stored elsewhere (no bytes pass through here)."""
        validate_file_size(size)
        file_type = validate_upload_type(mime_type)
        await self._check_links(db, user, message_id, question_id)

        record = File(
            filename=filename,
            original_name=original_name,
            mime_type=mime_type,
            size=size,
            type=file_type,
            url=url,
            path=None,
            uploaded_by=user.id,
            message_id=message_id,
            question_id=question_id,
        )
        db.add(record)
        await db.flush()
        logger.info("File %s registered by %s (%s)", record.id, user.id, url)
        return record

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_file(self, db: AsyncSession, file_id: uuid.UUID) -> File:
        file = await db.get(File, file_id)
        if file is None:
            raise NotFoundError(resource="file", resource_id=str(file_id))
        return file

    async def _assert_can_view(self, db: AsyncSession, user: User, file: File) -> None:
        if file.uploaded_by == user.id:
            return
        channel_id = None
        if file.message_id is not None:
            message = await db.get(Message, file.message_id)
            channel_id = message.channel_id if message is not None else None
        elif file.question_id is not None:
            question = await db.get(Question, file.question_id)
            channel_id = question.channel_id if question is not None else None
        channel = await db.get(Channel, channel_id) if channel_id is not None else None
        if channel is None:
            raise PermissionDeniedError("Access denied", context={"file_id": str(file.id)})
        await channel_service.assert_can_view(db, user, channel)

    async def get_visible_file(self, db: AsyncSession, user: User, file_id: uuid.UUID) -> File:
        """
        A file is visible to its uploader, and to anyone who can read the
        channel of the message or question it is attached to.
        """
        file = await self.get_file(db, file_id)
        await self._assert_can_view(db, user, file)
        return file

    async def files_for(
        self,
        db: AsyncSession,
        message_id: Optional[uuid.UUID] = None,
        question_id: Optional[uuid.UUID] = None,
    ) -> List[File]:
        """Attachments of a message or question the caller is already known to see."""
        query = select(File)
        if message_id is not None:
            query = query.where(File.message_id == message_id)
        if question_id is not None:
            query = query.where(File.question_id == question_id)
        result = await db.execute(query.order_by(File.created_at.asc()))
        return list(result.scalars().all())

    async def list_files(
        self,
        db: AsyncSession,
        user: User,
        message_id: Optional[uuid.UUID] = None,
        question_id: Optional[uuid.UUID] = None,
        uploaded_by: Optional[uuid.UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[File]:
        visible = channel_service.visible_channel_ids(user)
        query = select(File).where(
            or_(
                File.uploaded_by == user.id,
                File.message_id.in_(select(Message.id).where(Message.channel_id.in_(visible))),
                File.question_id.in_(select(Question.id).where(Question.channel_id.in_(visible))),
            )
        )
        if message_id is not None:
            query = query.where(File.message_id == message_id)
        if question_id is not None:
            query = query.where(File.question_id == question_id)
        if uploaded_by is not None:
            query = query.where(File.uploaded_by == uploaded_by)
        query = query.order_by(File.created_at.asc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    # ── Removal ───────────────────────────────────────────────────────────

    async def delete_file(self, db: AsyncSession, user: User, file_id: uuid.UUID) -> bool:
        file = await self.get_file(db, file_id)
        if file.uploaded_by != user.id and not permissions.is_staff(user.role):
            raise PermissionDeniedError("Cannot delete this file", context={"file_id": str(file_id)})

        stored = (self.storage_root / file.path) if file.path else None
        await db.delete(file)
        await db.flush()
        if stored is not None:
            await self.cleanup_file(stored)
        logger.info("File %s deleted by %s", file_id, user.id)
        return True

    async def purge(self, db: AsyncSession, *criteria) -> int:
        """
        Bulk-deletes the File rows matching `criteria` and removes their stored
        bytes, for channel, question and account deletion. Returns the row count.
        """
        result = await db.execute(select(File.path).where(*criteria))
        paths = list(result.scalars().all())
        await db.execute(delete(File).where(*criteria).execution_options(synchronize_session=False))
        await db.flush()
        for path in paths:
            if path:
                await self.cleanup_file(self.storage_root / path)
        if paths:
            logger.info("Purged %d file(s)", len(paths))
        return len(paths)


file_service = FileService()
