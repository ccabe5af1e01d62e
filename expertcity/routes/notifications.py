"""
Expert In The City Backend — Notification Route Handlers
=========================================================

Route Inventory:
    GET    /api/notifications                 my notifications (paginated)
    PATCH  /api/notifications/read-all        mark all of mine read
    PATCH  /api/notifications/{id}/read       mark one read
    DELETE /api/notifications/{id}            delete one

/read-all is declared before /{id}/read so the literal path wins.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from expertcity.database import get_db_session
from expertcity.models.user import User
from expertcity.routes.dependencies import get_current_user, get_pagination
from expertcity.schemas.common import ErrorResponse, MessageResponse, PaginationParams
from expertcity.schemas.notification import (
    NotificationData,
    NotificationEnvelope,
    NotificationListResponse,
)
from expertcity.services.notification_service import notification_service

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse, summary="List my notifications")
async def list_notifications(
    unread_only: bool = Query(default=False, description="Only return unread notifications"),
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    return await notification_service.list_notifications(
        db=db,
        recipient_id=current_user.id,
        params=pagination,
        unread_only=unread_only,
    )


@router.patch("/read-all", response_model=MessageResponse, summary="Mark all my notifications read")
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.mark_all_as_read(db=db, user_id=current_user.id)
    return MessageResponse(message="All notifications marked as read")


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationEnvelope,
    responses={
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Mark one notification read",
)
async def mark_as_read(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationEnvelope:
    notification = await notification_service.mark_as_read(
        db=db, notification_id=notification_id, user_id=current_user.id
    )
    return NotificationEnvelope(data=NotificationData(notification=notification))


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Delete one notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await notification_service.delete_notification(
        db=db, notification_id=notification_id, user_id=current_user.id
    )
    return MessageResponse(message="Notification deleted successfully")
