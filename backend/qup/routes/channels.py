"""
Qup Backend - Channel Routes
==============================

Visibility:
    PUBLIC channels are visible to everyone and open to join. PRIVATE and
    DIRECT channels are visible to their members (and creator) only.
    Archived channels stay listed but reject joins and new posts.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import Channel, ChannelMember, User
from qup.schemas.channel import (
    ChannelCreateRequest,
    ChannelMemberResponse,
    ChannelResponse,
    ChannelUpdateRequest,
    LeaveChannelResponse,
)
from qup.schemas.common import ErrorResponse
from qup.services.channel_service import channel_service

router = APIRouter(prefix="/api/v1/channels", tags=["Channels"])


@router.get("", response_model=List[ChannelResponse], summary="List visible channels")
async def list_channels(
    workspace_id: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Channel]:
    return await channel_service.list_channels(
        db, user, workspace_id=workspace_id, limit=limit, offset=offset
    )


@router.post("", status_code=201, response_model=ChannelResponse, summary="Create a channel")
async def create_channel(
    body: ChannelCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Channel:
    return await channel_service.create_channel(
        db,
        user,
        name=body.name,
        description=body.description,
        type=body.type,
        workspace_id=body.workspace_id,
    )


@router.get(
    "/{channel_id}",
    response_model=ChannelResponse,
    responses={
        403: {"description": "Private channel the caller cannot see", "model": ErrorResponse},
        404: {"description": "Channel not found", "model": ErrorResponse},
    },
    summary="Get a channel",
)
async def get_channel(
    channel_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Channel:
    return await channel_service.get_channel(db, user, channel_id)


@router.put("/{channel_id}", response_model=ChannelResponse, summary="Edit or archive a channel")
async def update_channel(
    channel_id: uuid.UUID,
    body: ChannelUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Channel:
    return await channel_service.update_channel(
        db,
        user,
        channel_id,
        name=body.name,
        description=body.description,
        type=body.type,
        is_archived=body.is_archived,
    )


@router.delete("/{channel_id}", status_code=204, summary="Delete a channel")
async def delete_channel(
    channel_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await channel_service.delete_channel(db, user, channel_id)


@router.post(
    "/{channel_id}/join",
    status_code=201,
    response_model=ChannelMemberResponse,
    responses={
        403: {"description": "Private or archived channel", "model": ErrorResponse},
        409: {"description": "Already a member", "model": ErrorResponse},
    },
    summary="Join a public channel",
)
async def join_channel(
    channel_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ChannelMember:
    return await channel_service.join_channel(db, user, channel_id)


@router.post("/{channel_id}/leave", response_model=LeaveChannelResponse, summary="Leave a channel")
async def leave_channel(
    channel_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LeaveChannelResponse:
    return LeaveChannelResponse(left=await channel_service.leave_channel(db, user, channel_id))


@router.get("/{channel_id}/members", response_model=List[ChannelMemberResponse], summary="List members")
async def list_members(
    channel_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ChannelMember]:
    return await channel_service.list_members(db, user, channel_id)
