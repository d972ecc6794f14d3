"""
Qup Backend - Question Routes
===============================
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.enums import QuestionStatus
from qup.models import Message, Question, User
from qup.schemas.common import ErrorResponse
from qup.schemas.message import MessageResponse
from qup.schemas.question import (
    BestAnswerRequest,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
)
from qup.services.question_service import question_service

router = APIRouter(prefix="/api/v1/questions", tags=["Questions"])


@router.get("", response_model=List[QuestionResponse], summary="List questions")
async def list_questions(
    channel_id: Optional[uuid.UUID] = Query(default=None),
    status: Optional[QuestionStatus] = Query(default=None),
    tag: Optional[str] = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Question]:
    return await question_service.list_questions(
        db, user, channel_id=channel_id, status=status, tag=tag, limit=limit, offset=offset
    )


@router.post("", status_code=201, response_model=QuestionResponse, summary="Ask a question")
async def create_question(
    body: QuestionCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Question:
    return await question_service.create_question(
        db, user, channel_id=body.channel_id, title=body.title, content=body.content, tags=body.tags
    )


@router.get(
    "/{question_id}",
    response_model=QuestionResponse,
    responses={404: {"description": "Question not found", "model": ErrorResponse}},
    summary="Get a question (counts a view)",
)
async def get_question(
    question_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Question:
    return await question_service.get_question(db, user, question_id)


@router.get("/{question_id}/answers", response_model=List[MessageResponse], summary="List answers")
async def list_answers(
    question_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Message]:
    await question_service.get_question(db, user, question_id, count_view=False)
    return await question_service.list_answers(db, question_id)


@router.put("/{question_id}", response_model=QuestionResponse, summary="Edit a question")
async def update_question(
    question_id: uuid.UUID,
    body: QuestionUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Question:
    return await question_service.update_question(
        db,
        user,
        question_id,
        title=body.title,
        content=body.content,
        tags=body.tags,
        status=body.status,
    )


@router.delete("/{question_id}", status_code=204, summary="Delete a question and its answers")
async def delete_question(
    question_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await question_service.delete_question(db, user, question_id)


@router.post(
    "/{question_id}/best-answer",
    response_model=QuestionResponse,
    responses={400: {"description": "Answer does not belong to this question", "model": ErrorResponse}},
    summary="Mark the best answer",
)
async def mark_best_answer(
    question_id: uuid.UUID,
    body: BestAnswerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Question:
    return await question_service.mark_best_answer(db, user, question_id, body.answer_id)


@router.post("/{question_id}/close", response_model=QuestionResponse, summary="Close a question")
async def close_question(
    question_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Question:
    return await question_service.close_question(db, user, question_id)
