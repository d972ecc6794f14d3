"""Search endpoint: GET /api/v1/search?q=...&type=messages|questions|users"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import User
from qup.schemas.common import ErrorResponse
from qup.schemas.search import SearchResponse
from qup.services.search_service import search_service

router = APIRouter(prefix="/api/v1", tags=["Search"])


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={400: {"description": "Empty query or unknown type", "model": ErrorResponse}},
    summary="Search messages, questions and users",
)
async def search(
    q: str = Query(..., description="Case-insensitive substring"),
    type: Optional[str] = Query(default=None, description="Restrict to messages, questions or users"),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SearchResponse:
    results = await search_service.search(db, user, q, type=type, limit=limit)
    return SearchResponse.model_validate(results, from_attributes=True)
