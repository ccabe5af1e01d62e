"""
Expert In The City Backend — Notification Service
==================================================

What:  Inserts notifications (the sink used by the reputation engine) and
       lets recipients list, mark read and delete their own notifications.

Best-effort creation:
    create_notification() runs its INSERT inside a SAVEPOINT. If the insert
    fails, only the savepoint is rolled back, the failure is logged at
    WARNING and None is returned. The surrounding review mutation and
    reputation update still commit.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expertcity.exceptions import DatabaseError, ForbiddenError, NotFoundError
from expertcity.models.enums import NotificationType
from expertcity.models.notification import Notification
from expertcity.schemas.common import Pagination, PaginationParams
from expertcity.schemas.notification import (
    NotificationListData,
    NotificationListResponse,
    NotificationResponse,
)

logger = logging.getLogger(__name__)


class NotificationService:

    async def create_notification(
        self,
        db: AsyncSession,
        *,
        type: NotificationType,
        content: str,
        recipient_id: UUID,
        sender_id: Optional[UUID] = None,
    ) -> Optional[Notification]:
        """
        Inserts one notification; never raises for database failures.

        Returns:
            The flushed Notification, or None when the insert failed.
        """
        notification = Notification(
            type=type,
            content=content,
            recipient_id=recipient_id,
            sender_id=sender_id,
        )
        try:
            async with db.begin_nested():
                db.add(notification)
        except SQLAlchemyError as e:
            logger.warning(
                "Could not create %s notification for user %s: %s",
                type.value,
                recipient_id,
                str(e),
            )
            return None
        return notification

    async def list_notifications(
        self,
        db: AsyncSession,
        recipient_id: UUID,
        params: PaginationParams,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        """Newest-first page of the recipient's notifications plus unread count."""
        try:
            where = [Notification.recipient_id == recipient_id]
            if unread_only:
                where.append(Notification.is_read.is_(False))

            total = await db.scalar(select(func.count(Notification.id)).where(*where)) or 0
            unread = await db.scalar(
                select(func.count(Notification.id)).where(
                    Notification.recipient_id == recipient_id,
                    Notification.is_read.is_(False),
                )
            ) or 0

            result = await db.execute(
                select(Notification)
                .where(*where)
                .options(selectinload(Notification.sender))
                .order_by(Notification.created_at.desc(), Notification.id)
                .offset(params.offset)
                .limit(params.limit)
            )
            notifications = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notifications for %s: %s", recipient_id, str(e))
            raise DatabaseError(
                message="Could not retrieve notifications. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return NotificationListResponse(
            data=NotificationListData(
                notifications=[NotificationResponse.model_validate(n) for n in notifications],
                unread_count=unread,
            ),
            pagination=Pagination.build(params, total),
        )

    async def _get_owned(
        self, db: AsyncSession, notification_id: UUID, user_id: UUID, action: str
    ) -> Notification:
        result = await db.execute(
            select(Notification)
            .where(Notification.id == notification_id)
            .options(selectinload(Notification.sender))
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=str(notification_id))
        if notification.recipient_id != user_id:
            raise ForbiddenError(message=f"Not authorized to {action} this notification")
        return notification

    async def mark_as_read(
        self, db: AsyncSession, notification_id: UUID, user_id: UUID
    ) -> NotificationResponse:
        notification = await self._get_owned(db, notification_id, user_id, "update")
        notification.is_read = True
        await db.flush()
        return NotificationResponse.model_validate(notification)

    async def mark_all_as_read(self, db: AsyncSession, user_id: UUID) -> int:
        """Returns the number of notifications that flipped to read."""
        result = await db.execute(
            update(Notification)
            .where(Notification.recipient_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount or 0

    async def delete_notification(
        self, db: AsyncSession, notification_id: UUID, user_id: UUID
    ) -> None:
        notification = await self._get_owned(db, notification_id, user_id, "delete")
        await db.delete(notification)
        await db.flush()


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService()
