"""
Qup Backend - Notification Routes
===================================

A caller only ever sees their own notifications; someone else's id answers
404 rather than 403.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qup.database import get_db_session
from qup.dependencies import get_current_user
from qup.models import Notification, User
from qup.schemas.notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from qup.services.notification_service import notification_service

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse], summary="List own notifications")
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[Notification]:
    return await notification_service.list_notifications(
        db, user, limit=limit, offset=offset, unread_only=unread_only
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Unread count")
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await notification_service.unread_count(db, user))


@router.put("/read-all", response_model=MarkAllReadResponse, summary="Mark all as read")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=await notification_service.mark_all_read(db, user))


@router.get("/{notification_id}", response_model=NotificationResponse, summary="Get a notification")
async def get_notification(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Notification:
    return await notification_service.get_notification(db, user, notification_id)


@router.put("/{notification_id}/read", response_model=NotificationResponse, summary="Mark as read")
async def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Notification:
    return await notification_service.mark_read(db, user, notification_id)


@router.delete("/{notification_id}", status_code=204, summary="Delete a notification")
async def delete_notification(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await notification_service.delete(db, user, notification_id)
