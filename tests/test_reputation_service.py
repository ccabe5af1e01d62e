"""
Expert In The City Backend — Reputation Service Tests
======================================================

What:  Tests for ReputationService.recompute_expert_reputation against a
       real (in-memory SQLite) database.

What we test:
    ✅ Persisted rating / level / badges after a recompute
    ✅ The tenth five-star review promotes to SILVER and notifies TOP RATED
    ✅ Recompute is idempotent and sends no duplicate notifications
    ✅ Losing a badge is silent
    ✅ Manual badges survive recomputes
    ✅ IN_DEMAND only counts reviews inside the trailing window, start inclusive
    ✅ An empty lock registry passed in is used, not replaced
    ✅ Missing expert raises NotFoundError
    ✅ A failing notification insert does not undo the reputation update
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select, text

from expertcity.exceptions import NotFoundError
from expertcity.models import ExpertDetails, Notification, NotificationType, ProgressLevel
from expertcity.services.notification_service import NotificationService
from expertcity.services.reputation_service import ExpertLocks, ReputationService


async def _notifications_for(db, user_id):
    result = await db.execute(
        select(Notification)
        .where(Notification.recipient_id == user_id)
        .order_by(Notification.created_at, Notification.content)
    )
    return result.scalars().all()


class TestRecompute:

    def setup_method(self):
        self.service = ReputationService(locks=ExpertLocks(), notifications=NotificationService())

    @pytest.mark.asyncio
    async def test_no_reviews_resets_to_defaults(self, db_session, make_expert):
        expert = await make_expert(badges=["TOP_RATED"])
        expert.ratings = 4.9
        expert.progress_level = ProgressLevel.GOLD
        await db_session.flush()

        update = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert update.review_count == 0
        assert expert.ratings == 0.0
        assert expert.progress_level == ProgressLevel.BRONZE
        assert expert.badges == []
        assert update.lost_badges == ("TOP_RATED",)

    @pytest.mark.asyncio
    async def test_stores_rounded_average(self, db_session, make_expert, add_review):
        expert = await make_expert()
        await add_review(expert, rating=5.0)
        await add_review(expert, rating=4.5)

        await self.service.recompute_expert_reputation(db_session, expert.id)

        assert expert.ratings == 4.8
        assert expert.progress_level == ProgressLevel.BRONZE

    @pytest.mark.asyncio
    async def test_tenth_five_star_review_reaches_silver(self, db_session, make_expert, add_review):
        expert = await make_expert()
        for _ in range(9):
            await add_review(expert, rating=5.0)
        await self.service.recompute_expert_reputation(db_session, expert.id)

        assert expert.progress_level == ProgressLevel.BRONZE
        assert expert.badges == ["RISING_EXPERT"]
        before = len(await _notifications_for(db_session, expert.user_id))

        await add_review(expert, rating=5.0)
        update = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert expert.ratings == 5.0
        assert expert.progress_level == ProgressLevel.SILVER
        assert "TOP_RATED" in expert.badges
        assert "RISING_EXPERT" not in expert.badges
        assert "TOP_RATED" in update.earned_badges

        notifications = await _notifications_for(db_session, expert.user_id)
        new = notifications[before:]
        assert len(new) == len(update.earned_badges)
        assert all(n.type == NotificationType.BADGE_EARNED for n in new)
        assert all(n.sender_id is None for n in new)
        assert any("TOP RATED" in n.content for n in new)

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, db_session, make_expert, add_review):
        expert = await make_expert()
        for _ in range(3):
            await add_review(expert, rating=4.0)

        first = await self.service.recompute_expert_reputation(db_session, expert.id)
        after_first = len(await _notifications_for(db_session, expert.user_id))
        state = (expert.ratings, expert.progress_level, list(expert.badges))

        second = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert first.earned_badges == ("RISING_EXPERT",)
        assert second.earned_badges == ()
        assert (expert.ratings, expert.progress_level, list(expert.badges)) == state
        assert len(await _notifications_for(db_session, expert.user_id)) == after_first

    @pytest.mark.asyncio
    async def test_losing_a_badge_sends_nothing(self, db_session, make_expert, add_review):
        expert = await make_expert()
        reviews = [await add_review(expert, rating=4.0) for _ in range(3)]
        await self.service.recompute_expert_reputation(db_session, expert.id)
        count = len(await _notifications_for(db_session, expert.user_id))

        await db_session.delete(reviews[0])
        await db_session.flush()
        update = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert update.lost_badges == ("RISING_EXPERT",)
        assert expert.badges == []
        assert len(await _notifications_for(db_session, expert.user_id)) == count

    @pytest.mark.asyncio
    async def test_low_rating_revokes_top_rated(self, db_session, make_expert, add_review):
        expert = await make_expert()
        for _ in range(10):
            await add_review(expert, rating=5.0)
        await self.service.recompute_expert_reputation(db_session, expert.id)
        assert "TOP_RATED" in expert.badges
        count = len(await _notifications_for(db_session, expert.user_id))

        await add_review(expert, rating=1.0)
        update = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert "TOP_RATED" not in expert.badges
        assert update.lost_badges == ("TOP_RATED",)
        assert update.earned_badges == ()
        assert expert.progress_level == ProgressLevel.SILVER
        assert len(await _notifications_for(db_session, expert.user_id)) == count

    @pytest.mark.asyncio
    async def test_manual_badges_survive(self, db_session, make_expert, add_review):
        expert = await make_expert(badges=["SPECIALIST", "COMMUNITY_CONTRIBUTOR"])
        await add_review(expert, rating=2.0)

        update = await self.service.recompute_expert_reputation(db_session, expert.id)

        assert expert.badges == ["COMMUNITY_CONTRIBUTOR", "SPECIALIST"]
        assert update.earned_badges == ()

    @pytest.mark.asyncio
    async def test_versatile_pro_from_expertise(self, db_session, make_expert, add_review):
        expert = await make_expert(expertise=["food", "history", "nightlife"])
        await add_review(expert, rating=4.5)

        await self.service.recompute_expert_reputation(db_session, expert.id)

        assert expert.badges == ["VERSATILE_PRO"]


class TestInDemandWindow:

    def setup_method(self):
        self.service = ReputationService(locks=ExpertLocks(), notifications=NotificationService())

    @pytest.mark.asyncio
    async def test_old_reviews_do_not_count(self, db_session, make_expert, add_review):
        now = datetime.now(timezone.utc)
        expert = await make_expert()
        for _ in range(10):
            await add_review(expert, rating=3.0, created_at=now - timedelta(days=40))

        await self.service.recompute_expert_reputation(db_session, expert.id, now=now)

        assert "IN_DEMAND" not in expert.badges

    @pytest.mark.asyncio
    async def test_reviews_inside_window_count(self, db_session, make_expert, add_review):
        now = datetime.now(timezone.utc)
        expert = await make_expert()
        for _ in range(10):
            await add_review(expert, rating=3.0, created_at=now - timedelta(days=40))

        # Same reviews seen from 15 days after they were written
        await self.service.recompute_expert_reputation(
            db_session, expert.id, now=now - timedelta(days=25)
        )

        assert "IN_DEMAND" in expert.badges

    @pytest.mark.asyncio
    async def test_review_exactly_at_window_start_counts(self, db_session, make_expert, add_review):
        now = datetime.now(timezone.utc)
        expert = await make_expert()
        for _ in range(10):
            await add_review(expert, rating=3.0, created_at=now - timedelta(days=30))

        await self.service.recompute_expert_reputation(db_session, expert.id, now=now)

        assert "IN_DEMAND" in expert.badges

    @pytest.mark.asyncio
    async def test_review_just_outside_window_does_not_count(
        self, db_session, make_expert, add_review
    ):
        now = datetime.now(timezone.utc)
        expert = await make_expert()
        for _ in range(9):
            await add_review(expert, rating=3.0, created_at=now - timedelta(days=30))
        await add_review(
            expert, rating=3.0, created_at=now - timedelta(days=30, microseconds=1)
        )

        await self.service.recompute_expert_reputation(db_session, expert.id, now=now)

        assert "IN_DEMAND" not in expert.badges

    @pytest.mark.asyncio
    async def test_nine_recent_reviews_are_not_enough(self, db_session, make_expert, add_review):
        now = datetime.now(timezone.utc)
        expert = await make_expert()
        for _ in range(9):
            await add_review(expert, rating=3.0, created_at=now - timedelta(days=1))
        await add_review(expert, rating=3.0, created_at=now - timedelta(days=31))

        await self.service.recompute_expert_reputation(db_session, expert.id, now=now)

        assert "IN_DEMAND" not in expert.badges


class TestRecomputeFailures:

    @pytest.mark.asyncio
    async def test_missing_expert_raises_not_found(self, db_session):
        service = ReputationService(locks=ExpertLocks(), notifications=NotificationService())
        with pytest.raises(NotFoundError):
            await service.recompute_expert_reputation(db_session, uuid4())

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_reputation(self, db_session, make_expert, add_review):
        """With the notifications table gone, inserts fail but the recompute still lands."""
        service = ReputationService(locks=ExpertLocks(), notifications=NotificationService())
        expert = await make_expert()
        for _ in range(3):
            await add_review(expert, rating=5.0)
        await db_session.execute(text("DROP TABLE notifications"))

        update = await service.recompute_expert_reputation(db_session, expert.id)

        assert update.earned_badges == ("RISING_EXPERT",)
        assert expert.badges == ["RISING_EXPERT"]
        stored = await db_session.scalar(
            select(ExpertDetails.badges).where(ExpertDetails.id == expert.id)
        )
        assert stored == ["RISING_EXPERT"]

    @pytest.mark.asyncio
    async def test_recompute_holds_the_expert_lock(self, db_session, make_expert):
        held = []

        class RecordingLocks(ExpertLocks):
            def lock_for(self, key):
                held.append(key)
                return super().lock_for(key)

        service = ReputationService(locks=RecordingLocks(), notifications=NotificationService())
        expert = await make_expert()

        await service.recompute_expert_reputation(db_session, expert.id)

        assert held == [expert.id]

    def test_empty_lock_registry_is_kept(self):
        shared = ExpertLocks()
        first = ReputationService(locks=shared, notifications=NotificationService())
        second = ReputationService(locks=shared, notifications=NotificationService())

        assert len(shared) == 0
        assert first.locks is shared
        assert second.locks is first.locks


@pytest.mark.asyncio
async def test_notification_rows_match_earned_badges(db_session, make_expert, add_review):
    service = ReputationService(locks=ExpertLocks(), notifications=NotificationService())
    expert = await make_expert(expertise=["a", "b", "c"])
    for _ in range(3):
        await add_review(expert, rating=5.0)

    update = await service.recompute_expert_reputation(db_session, expert.id)

    count = await db_session.scalar(
        select(func.count(Notification.id)).where(Notification.recipient_id == expert.user_id)
    )
    assert set(update.earned_badges) == {"RISING_EXPERT", "VERSATILE_PRO"}
    assert count == 2
