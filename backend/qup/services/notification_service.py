"""
Qup Backend - Notification Service
====================================

What:  Per-user inbox: create, list, count, mark read, delete.
Who:   Called by the message, question and vote services (fan-out) and by
       the notifications REST router and GraphQL resolvers.

Every created notification is also queued for NOTIFICATION_CREATED keyed
by the recipient's id, which feeds the `notificationCreated` subscription.
Another user's notification is reported as not found, never as forbidden.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qup.core import pubsub
from qup.enums import NotificationType
from qup.exceptions import NotFoundError
from qup.models import Notification, User

logger = logging.getLogger(__name__)


class NotificationService:
    async def notify(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
        )
        db.add(notification)
        await db.flush()
        logger.info("Notification %s (%s) created for user %s", notification.id, type.value, user_id)
        pubsub.publish_on_commit(db, pubsub.NOTIFICATION_CREATED, str(user_id), notification)
        return notification

    async def list_notifications(
        self,
        db: AsyncSession,
        user: User,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
    ) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user.id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc()).limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user.id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar() or 0

    async def get_notification(self, db: AsyncSession, user: User, notification_id: uuid.UUID) -> Notification:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user.id,
            )
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))
        return notification

    async def mark_read(self, db: AsyncSession, user: User, notification_id: uuid.UUID) -> Notification:
        notification = await self.get_notification(db, user, notification_id)
        notification.is_read = True
        await db.flush()
        return notification

    async def mark_all_read(self, db: AsyncSession, user: User) -> int:
        """Returns the number of notifications that changed state."""
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        return result.rowcount or 0

    async def delete(self, db: AsyncSession, user: User, notification_id: uuid.UUID) -> bool:
        notification = await self.get_notification(db, user, notification_id)
        await db.delete(notification)
        await db.flush()
        return True


notification_service = NotificationService()
