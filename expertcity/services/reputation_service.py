"""
Expert In The City Backend — Reputation Engine
===============================================

What:  Keeps an expert's rating, progress level and badge set in sync with
       their session reviews, and notifies the expert of newly earned badges.
Who:   Called by ReviewService after every review create, update or delete,
       inside the same database transaction as the review write.

Recompute Flow:
    ┌──────────────┐   ┌──────────────┐   ┌──────────────┐   ┌─────────────┐
    │ Lock expert  │──▶│ Load reviews │──▶│ Rate / tier  │──▶│ Persist +   │
    │ (per-expert) │   │ + 30d count  │   │ / badges     │   │ notify diff │
    └──────────────┘   └──────────────┘   └──────────────┘   └─────────────┘

Rules:
    average     mean of all ratings, 0 with no reviews; stored rounded
                half-up to one decimal (4.75 -> 4.8). Thresholds compare
                the unrounded mean.
    tier        first match of PLATINUM (>=100, >=4.8), GOLD (>=50, >=4.7),
                SILVER (>=10, >=4.5), else BRONZE
    badges      derived badges rebuilt from scratch each time, unioned with
                the manual badges already on the record. Nothing else is kept.
    notify      one BADGE_EARNED notification per badge in (new - old).
                Losing a badge is silent.

Concurrency:
    Two recomputes for the same expert must not interleave their
    read-modify-write cycles. Each recompute holds
      1. an in-process asyncio.Lock keyed by expert id, and
      2. a SELECT ... FOR UPDATE row lock on expert_details, held until the
         request transaction ends (ignored by SQLite).
    The row lock covers multiple workers; the asyncio lock covers the
    single-process case, including SQLite.
"""

import asyncio
import logging
import math
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import AsyncIterator, Collection, FrozenSet, Hashable, Iterable, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expertcity.config import settings
from expertcity.exceptions import NotFoundError
from expertcity.models.enums import Badge, MANUAL_BADGES, NotificationType, ProgressLevel
from expertcity.models.expert import ExpertDetails
from expertcity.models.session_review import SessionReview
from expertcity.services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)

_MANUAL_BADGE_VALUES = frozenset(badge.value for badge in MANUAL_BADGES)

# (min reviews, min average, level), evaluated top to bottom
PROGRESS_TIERS: Tuple[Tuple[int, float, ProgressLevel], ...] = (
    (100, 4.8, ProgressLevel.PLATINUM),
    (50, 4.7, ProgressLevel.GOLD),
    (10, 4.5, ProgressLevel.SILVER),
)

VERSATILE_MIN_EXPERTISE = 3


# ══════════════════════════════════════════════════════════════════════════
# Pure rules
# ══════════════════════════════════════════════════════════════════════════


def mean_rating(ratings: Sequence[float]) -> float:
    """Arithmetic mean of the ratings, or 0.0 for an empty sequence."""
    if not ratings:
        return 0.0
    return math.fsum(ratings) / len(ratings)


def round_rating(value: float) -> float:
    """Half-up rounding to one decimal place: 4.75 -> 4.8, 4.74 -> 4.7."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def determine_progress_level(review_count: int, average_rating: float) -> ProgressLevel:
    for min_reviews, min_average, level in PROGRESS_TIERS:
        if review_count >= min_reviews and average_rating >= min_average:
            return level
    return ProgressLevel.BRONZE


def determine_derived_badges(
    review_count: int,
    average_rating: float,
    recent_review_count: int,
    expertise_count: int,
) -> FrozenSet[Badge]:
    """Derived badges whose condition holds right now. Not sticky."""
    earned = set()
    if average_rating >= 4.8 and review_count >= 10:
        earned.add(Badge.TOP_RATED)
    if 3 <= review_count < 10:
        earned.add(Badge.RISING_EXPERT)
    if recent_review_count >= settings.in_demand_min_reviews:
        earned.add(Badge.IN_DEMAND)
    if review_count >= 100 and average_rating >= 4.8:
        earned.add(Badge.ELITE_EXPERT)
    if expertise_count >= VERSATILE_MIN_EXPERTISE and average_rating >= 4.5:
        earned.add(Badge.VERSATILE_PRO)
    return frozenset(earned)


def merge_badges(derived: Iterable[Badge], current: Iterable[str]) -> FrozenSet[str]:
    """Derived badges plus whichever manual badges the record already carries."""
    kept_manual = {tag for tag in current if tag in _MANUAL_BADGE_VALUES}
    return frozenset({badge.value for badge in derived} | kept_manual)


def badge_earned_message(badge: str) -> str:
    return f"Congratulations! You have earned the {Badge(badge).display_name} badge."


@dataclass(frozen=True)
class ReputationUpdate:
    """Outcome of one recompute: the persisted values and the badge diff."""

    review_count: int
    average_rating: float
    ratings: float
    progress_level: ProgressLevel
    badges: FrozenSet[str]
    earned_badges: Tuple[str, ...]
    lost_badges: Tuple[str, ...]


def compute_reputation(
    ratings: Sequence[float],
    recent_review_count: int,
    expertise: Collection[str],
    current_badges: Iterable[str],
) -> ReputationUpdate:
    """
    Applies every rule to an in-memory view of the expert.

    Args:
        ratings: rating of every review of the expert
        recent_review_count: reviews created inside the IN_DEMAND window
        expertise: the expert's skill tags
        current_badges: badges stored on the record before this recompute
    """
    previous = frozenset(current_badges)
    review_count = len(ratings)
    average = mean_rating(ratings)

    derived = determine_derived_badges(
        review_count=review_count,
        average_rating=average,
        recent_review_count=recent_review_count,
        expertise_count=len(expertise),
    )
    badges = merge_badges(derived, previous)

    return ReputationUpdate(
        review_count=review_count,
        average_rating=average,
        ratings=round_rating(average),
        progress_level=determine_progress_level(review_count, average),
        badges=badges,
        earned_badges=tuple(sorted(badges - previous)),
        lost_badges=tuple(sorted(previous - badges)),
    )


# ══════════════════════════════════════════════════════════════════════════
# Per-expert locking
# ══════════════════════════════════════════════════════════════════════════


class ExpertLocks:
    """
    asyncio.Lock registry keyed by expert id.

    Locks live only while someone holds or waits on them (weak values), so
    the registry does not grow with the number of experts ever touched.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self.lock_for(key)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class ReputationService:
    """
    Database-facing half of the engine.

    Stateless apart from the lock registry; errors from the expert and review
    queries propagate so the enclosing review mutation fails with them.
    Notification failures do not propagate (see NotificationService).
    """

    def __init__(
        self,
        locks: Optional[ExpertLocks] = None,
        notifications: Optional[NotificationService] = None,
    ) -> None:
        self.locks = locks if locks is not None else ExpertLocks()
        self.notifications = notifications if notifications is not None else notification_service

    async def recompute_expert_reputation(
        self,
        db: AsyncSession,
        expert_id: UUID,
        now: Optional[datetime] = None,
    ) -> ReputationUpdate:
        """
        Recalculates and persists rating, progress level and badges.

        Args:
            db: the request's session; the caller owns commit/rollback
            expert_id: ExpertDetails primary key
            now: reference time for the IN_DEMAND window (defaults to UTC now)

        Raises:
            NotFoundError: the expert row does not exist (or vanished)
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=settings.in_demand_window_days)

        async with self.locks.hold(expert_id):
            expert = (
                await db.execute(
                    select(ExpertDetails)
                    .where(ExpertDetails.id == expert_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if expert is None:
                raise NotFoundError(resource="expert", resource_id=str(expert_id))

            ratings = list(
                (
                    await db.execute(
                        select(SessionReview.rating).where(SessionReview.expert_id == expert_id)
                    )
                ).scalars().all()
            )
            recent_review_count = await db.scalar(
                select(func.count(SessionReview.id)).where(
                    SessionReview.expert_id == expert_id,
                    SessionReview.created_at >= cutoff,
                )
            ) or 0

            update = compute_reputation(
                ratings=ratings,
                recent_review_count=recent_review_count,
                expertise=expert.expertise or [],
                current_badges=expert.badge_set,
            )

            expert.ratings = update.ratings
            expert.progress_level = update.progress_level
            expert.set_badges(update.badges)
            await db.flush()

            logger.info(
                "Recomputed reputation for expert %s: %d reviews, avg=%.1f, level=%s, badges=%s",
                expert_id,
                update.review_count,
                update.ratings,
                update.progress_level.value,
                sorted(update.badges),
            )

            for badge in update.earned_badges:
                logger.info("Expert %s earned badge %s", expert_id, badge)
                await self.notifications.create_notification(
                    db,
                    type=NotificationType.BADGE_EARNED,
                    content=badge_earned_message(badge),
                    recipient_id=expert.user_id,
                    sender_id=None,
                )

        return update


# ── Singleton Instance ────────────────────────────────────────────────────
# One registry per process; the locks must be shared by every request.
reputation_service = ReputationService()
