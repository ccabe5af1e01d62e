"""
Expert In The City Backend — Notification SQLAlchemy Model
===========================================================

What:  ORM model for the `notifications` table.
When:  BADGE_EARNED rows are inserted by the reputation engine; other types
       come from the wider social product. Rows are never edited except to
       flip `is_read`.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expertcity.database import Base
from expertcity.models.types import UTCDateTime
from expertcity.models.enums import NotificationType
from expertcity.models.user import User


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    type: Mapped[NotificationType] = mapped_column(
        SQLEnum(NotificationType, native_enum=False, length=30),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # NULL for system-generated notifications such as BADGE_EARNED
    sender_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_read: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    sender: Mapped[Optional[User]] = relationship(foreign_keys=[sender_id])

    __table_args__ = (
        Index("idx_notifications_recipient_created", "recipient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, type='{self.type}', "
            f"recipient_id={self.recipient_id}, is_read={self.is_read})>"
        )
