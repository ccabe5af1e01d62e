"""Response schemas for the notification endpoints."""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from expertcity.models.enums import NotificationType
from expertcity.schemas.common import Pagination
from expertcity.schemas.review import UserSummary


class NotificationResponse(BaseModel):
    id: uuid.UUID
    type: NotificationType
    content: str
    recipient_id: uuid.UUID
    sender_id: Optional[uuid.UUID] = None
    sender: Optional[UserSummary] = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationData(BaseModel):
    notification: NotificationResponse


class NotificationEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: NotificationData


class NotificationListData(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class NotificationListResponse(BaseModel):
    status: Literal["success"] = "success"
    data: NotificationListData
    pagination: Pagination
