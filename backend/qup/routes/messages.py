"""
Qup Backend - Message Routes
==============================

Messages are listed per channel, newest first and top-level only; thread
replies come from /{id}/replies. Deleting is soft: the row stays with
empty content and is_deleted=true so threads keep their shape.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import Message, User
from qup.schemas.common import ErrorResponse
from qup.schemas.message import MessageCreateRequest, MessageResponse, MessageUpdateRequest
from qup.services.message_service import message_service

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


@router.get("", response_model=List[MessageResponse], summary="List a channel's messages")
async def list_messages(
    channel_id: uuid.UUID = Query(...),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Message]:
    return await message_service.list_messages(db, user, channel_id, limit=limit, offset=offset)


@router.post(
    "",
    status_code=201,
    response_model=MessageResponse,
    responses={
        400: {"description": "Content, attachment or mention rule broken", "model": ErrorResponse},
        403: {"description": "No access to the channel, or channel archived", "model": ErrorResponse},
    },
    summary="Post a message, reply or answer",
)
async def create_message(
    body: MessageCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Message:
    return await message_service.create_message(
        db,
        user,
        channel_id=body.channel_id,
        content=body.content,
        type=body.type,
        parent_id=body.parent_id,
        question_id=body.question_id,
        attachments=body.attachments,
        mentions=body.mentions,
    )


@router.get("/{message_id}", response_model=MessageResponse, summary="Get a message")
async def get_message(
    message_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Message:
    return await message_service.get_message(db, user, message_id)


@router.get("/{message_id}/replies", response_model=List[MessageResponse], summary="Thread replies")
async def list_replies(
    message_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Message]:
    return await message_service.list_replies(db, user, message_id)


@router.put("/{message_id}", response_model=MessageResponse, summary="Edit a message")
async def update_message(
    message_id: uuid.UUID,
    body: MessageUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Message:
    return await message_service.update_message(db, user, message_id, body.content)


@router.delete("/{message_id}", status_code=204, summary="Delete a message")
async def delete_message(
    message_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await message_service.delete_message(db, user, message_id)
