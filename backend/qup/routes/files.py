"""
Qup Backend - File Routes
===========================

Request Flow (upload):
    1. FastAPI parses multipart/form-data (UploadFile)
    2. The part size reported by the multipart parser is checked against
       the 100MB limit before the body is read into memory; FileService
       checks the read length again before anything touches the disk
    3. MIME type is sniffed from the bytes, never taken from the client
    4. Bytes are written under STORAGE_ROOT/YYYY/MM/DD and a row is recorded
    5. 201 Created with the file's metadata; `url` points at /download
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File as FormFile, Form, Query, UploadFile
from fastapi.responses import FileResponse as FileDownload
from sqlalchemy.ext.asyncio import AsyncSession

from qup.core.files import validate_file_size
from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import File, User
from qup.schemas.common import ErrorResponse
from qup.schemas.file import FileResponse
from qup.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/files", tags=["Files"])


@router.get("", response_model=List[FileResponse], summary="List files")
async def list_files(
    message_id: Optional[uuid.UUID] = Query(default=None),
    question_id: Optional[uuid.UUID] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[File]:
    """Files the caller uploaded or that are attached to content in channels they can read."""
    return await file_service.list_files(
        db, user, message_id=message_id, question_id=question_id, limit=limit, offset=offset
    )


@router.post(
    "/upload",
    status_code=201,
    response_model=FileResponse,
    responses={
        400: {"description": "Empty, too large or unsupported file", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload a file (max 100MB)",
)
async def upload_file(
    file: UploadFile = FormFile(..., description="Image, video, audio or document"),
    message_id: Optional[uuid.UUID] = Form(default=None),
    question_id: Optional[uuid.UUID] = Form(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> File:
    # Declared multipart part size; lets an oversized upload fail before it is read
    if file.size is not None:
        validate_file_size(file.size)
    content = await file.read()
    logger.info("Upload received: %s (%d bytes) from %s", file.filename, len(content), user.id)
    return await file_service.upload(
        db,
        user,
        filename=file.filename or "upload",
        content=content,
        message_id=message_id,
        question_id=question_id,
    )


@router.get(
    "/{file_id}",
    response_model=FileResponse,
    responses={
        403: {"description": "No access to the file's channel", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="File metadata",
)
async def get_file(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> File:
    return await file_service.get_visible_file(db, user, file_id)


@router.get(
    "/{file_id}/download",
    response_class=FileDownload,
    responses={
        403: {"description": "No access to the file's channel", "model": ErrorResponse},
        404: {"description": "File or its content not found", "model": ErrorResponse},
    },
    summary="Download a stored file",
)
async def download_file(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileDownload:
    record = await file_service.get_visible_file(db, user, file_id)
    path = file_service.resolve_path(record)
    return FileDownload(
        path=str(path),
        media_type=record.mime_type,
        filename=record.original_name,
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.delete("/{file_id}", status_code=204, summary="Delete a file")
async def delete_file(
    file_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await file_service.delete_file(db, user, file_id)
