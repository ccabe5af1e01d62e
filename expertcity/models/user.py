"""
Expert In The City Backend — User SQLAlchemy Model
===================================================

What:  ORM model for the `users` table.
How:   Only the columns the review and notification features read are
       mapped here: identity, display name, avatar and role. Account
       management (passwords, social sign-in) lives outside this service.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Enum as SQLEnum, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expertcity.database import Base
from expertcity.models.types import UTCDateTime
from expertcity.models.enums import UserRole

if TYPE_CHECKING:
    from expertcity.models.expert import ExpertDetails


class User(Base):
    """A registered user; experts additionally own one ExpertDetails row."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(120), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False, length=20),
        nullable=False,
        default=UserRole.USER,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    expert_details: Mapped[Optional["ExpertDetails"]] = relationship(
        back_populates="user",
        uselist=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}', role='{self.role}')>"
