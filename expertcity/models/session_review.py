"""
Expert In The City Backend — SessionReview SQLAlchemy Model
============================================================

What:  ORM model for the `session_reviews` table.
How:   A rating (1-5), a satisfaction category and free-text remarks left by
       a reviewer about an expert, loosely tied to an external session id.

One review per (reviewer, expert):
    The review service finds an existing review for the pair and updates it
    in place. The unique constraint below turns a concurrent duplicate
    insert into an IntegrityError instead of a second row.

Indexes:
    - (expert_id, created_at): the recompute reads all reviews of one expert
      and counts the recent ones for IN_DEMAND
    - reviewer_id: "my reviews" listing
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expertcity.database import Base
from expertcity.models.types import UTCDateTime
from expertcity.models.enums import Satisfaction

if TYPE_CHECKING:
    from expertcity.models.expert import ExpertDetails
    from expertcity.models.user import User


class SessionReview(Base):
    """A reviewer's current opinion of an expert."""

    __tablename__ = "session_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    expert_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("expert_details.id", ondelete="CASCADE"),
        nullable=False,
    )

    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    session_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Opaque reference to the booked session",
    )

    rating: Mapped[float] = mapped_column(Float, nullable=False)

    satisfaction: Mapped[Satisfaction] = mapped_column(
        SQLEnum(Satisfaction, native_enum=False, length=30),
        nullable=False,
    )

    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    expert: Mapped["ExpertDetails"] = relationship(back_populates="reviews")

    reviewer: Mapped["User"] = relationship()

    __table_args__ = (
        UniqueConstraint("reviewer_id", "expert_id", name="uq_session_reviews_reviewer_expert"),
        Index("idx_session_reviews_expert_created", "expert_id", "created_at"),
        Index("idx_session_reviews_reviewer", "reviewer_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<SessionReview(id={self.id}, expert_id={self.expert_id}, "
            f"rating={self.rating})>"
        )
