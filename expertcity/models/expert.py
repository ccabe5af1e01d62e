"""
Expert In The City Backend — ExpertDetails SQLAlchemy Model
============================================================

What:  ORM model for the `expert_details` table: one row per expert user.
Who:   Written by the reputation engine (ratings, progress_level, badges);
       read by the review listings.

Derived columns:
    ratings, progress_level and the derived subset of badges are never set
    by clients. They are recomputed from the expert's session reviews after
    every review mutation (see services/reputation_service.py).

Badge storage:
    `badges` is a JSON array of tag strings. It is written sorted and
    without duplicates; `badge_set` gives the set view the service code
    works with. JSON (rather than a PostgreSQL ARRAY) keeps the model usable
    on SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, FrozenSet, Iterable, List, Optional

from sqlalchemy import (
    JSON,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expertcity.database import Base
from expertcity.models.types import UTCDateTime
from expertcity.models.enums import ProgressLevel

if TYPE_CHECKING:
    from expertcity.models.session_review import SessionReview
    from expertcity.models.user import User


class ExpertDetails(Base):
    """
    Expert profile plus the reputation state derived from its reviews.

    Query Patterns:
        - By owning user: WHERE user_id = :uid (unique index) when a review
          is submitted against an expert's user id
        - By primary key with FOR UPDATE during recompute
    """

    __tablename__ = "expert_details"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    headline: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    about: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    expertise: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Reputation (derived) ──────────────────────────────────────────────
    ratings: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        server_default=text("0"),
        comment="Average review rating rounded to one decimal",
    )

    progress_level: Mapped[ProgressLevel] = mapped_column(
        SQLEnum(ProgressLevel, native_enum=False, length=20),
        nullable=False,
        default=ProgressLevel.BRONZE,
        server_default=text("'BRONZE'"),
    )

    badges: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

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

    user: Mapped["User"] = relationship(back_populates="expert_details")

    reviews: Mapped[List["SessionReview"]] = relationship(
        back_populates="expert",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def badge_set(self) -> FrozenSet[str]:
        return frozenset(self.badges or ())

    def set_badges(self, badges: Iterable[str]) -> None:
        """Stores badges de-duplicated and sorted. Always assigns a new list."""
        self.badges = sorted(set(badges))

    def __repr__(self) -> str:
        return (
            f"<ExpertDetails(id={self.id}, ratings={self.ratings}, "
            f"progress_level='{self.progress_level}')>"
        )
