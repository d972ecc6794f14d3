"""
Qup Backend - Vote Routes
===========================

Votes are weighted by the voter's role (NORMAL 1, SPECIAL 5, MODERATOR 10,
ADMIN 20). Posting a vote on a target the caller already voted on changes
its direction; it never creates a second vote. Every write answers with the
target's new total.

Every read and write on a target's votes requires read access to the
channel the target lives in.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.enums import VoteTarget
from qup.models import User, Vote
from qup.schemas.common import ErrorResponse
from qup.schemas.vote import (
    VoteCountResponse,
    VoteCreateRequest,
    VoteResponse,
    VoteResult,
    VoteUpdateRequest,
)
from qup.services.vote_service import VoteEvent, vote_service

router = APIRouter(prefix="/api/v1/votes", tags=["Votes"])


def _result(event: VoteEvent) -> VoteResult:
    return VoteResult(vote=VoteResponse.model_validate(event.vote), vote_count=event.vote_count)


@router.get(
    "",
    response_model=List[VoteResponse],
    responses={403: {"description": "No access to the target's channel", "model": ErrorResponse}},
    summary="List votes on a target",
)
async def list_votes(
    target_id: uuid.UUID = Query(...),
    target_type: VoteTarget = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Vote]:
    return await vote_service.list_votes(db, user, target_id, target_type)


@router.get("/count", response_model=VoteCountResponse, summary="Signed vote total of a target")
async def vote_count(
    target_id: uuid.UUID = Query(...),
    target_type: VoteTarget = Query(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VoteCountResponse:
    return VoteCountResponse(vote_count=await vote_service.count_votes(db, user, target_id, target_type))


@router.post(
    "",
    status_code=201,
    response_model=VoteResult,
    responses={
        400: {"description": "Target is not an answer", "model": ErrorResponse},
        403: {"description": "No access to the target's channel", "model": ErrorResponse},
        404: {"description": "Target not found", "model": ErrorResponse},
        409: {"description": "Concurrent vote could not be recorded", "model": ErrorResponse},
    },
    summary="Vote on a message, answer or question",
)
async def cast_vote(
    body: VoteCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResult:
    return _result(await vote_service.cast_vote(db, user, body.target_id, body.target_type, body.type))


@router.put("/{vote_id}", response_model=VoteResult, summary="Change a vote's direction")
async def update_vote(
    vote_id: uuid.UUID,
    body: VoteUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> VoteResult:
    return _result(await vote_service.update_vote(db, user, vote_id, body.type))


@router.delete("/{vote_id}", status_code=204, summary="Withdraw a vote")
async def delete_vote(
    vote_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await vote_service.delete_vote(db, user, vote_id)
