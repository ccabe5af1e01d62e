"""
Expert In The City Backend — Notification Service Tests
========================================================

What we test:
    ✅ create_notification inserts a row and returns it
    ✅ create_notification swallows database failures (returns None)
    ✅ Listing is recipient-scoped, newest-first, with unread count
    ✅ mark_as_read / mark_all_as_read / delete enforce ownership
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from expertcity.exceptions import ForbiddenError, NotFoundError
from expertcity.models import Notification, NotificationType
from expertcity.schemas.common import PaginationParams
from expertcity.services.notification_service import NotificationService


class TestCreateNotification:

    def setup_method(self):
        self.service = NotificationService()

    @pytest.mark.asyncio
    async def test_creates_row(self, db_session, make_user):
        user = await make_user()

        notification = await self.service.create_notification(
            db_session,
            type=NotificationType.BADGE_EARNED,
            content="Congratulations! You have earned the TOP RATED badge.",
            recipient_id=user.id,
        )

        assert notification is not None
        assert await db_session.get(Notification, notification.id) is notification
        assert notification.is_read is False
        assert notification.sender_id is None

    @pytest.mark.asyncio
    async def test_database_failure_returns_none(self, mock_db_session):
        mock_db_session.begin_nested = MagicMock(
            side_effect=OperationalError("SAVEPOINT", {}, Exception("database is locked"))
        )

        result = await self.service.create_notification(
            mock_db_session,
            type=NotificationType.BADGE_EARNED,
            content="x",
            recipient_id=uuid4(),
        )

        assert result is None


class TestRecipientOperations:

    def setup_method(self):
        self.service = NotificationService()

    async def _notify(self, db, user, content="hello", created_at=None, sender=None):
        notification = Notification(
            type=NotificationType.REVIEW,
            content=content,
            recipient_id=user.id,
            sender_id=sender.id if sender else None,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db.add(notification)
        await db.flush()
        return notification

    @pytest.mark.asyncio
    async def test_list_newest_first_with_unread_count(self, db_session, make_user):
        now = datetime.now(timezone.utc)
        user = await make_user()
        other = await make_user()
        old = await self._notify(db_session, user, "old", now - timedelta(hours=2))
        new = await self._notify(db_session, user, "new", now - timedelta(hours=1), sender=other)
        await self._notify(db_session, other, "not mine")
        old.is_read = True
        await db_session.flush()

        page = await self.service.list_notifications(db_session, user.id, PaginationParams())

        assert [n.id for n in page.data.notifications] == [new.id, old.id]
        assert page.data.notifications[0].sender.id == other.id
        assert page.data.unread_count == 1
        assert page.pagination.total == 2

    @pytest.mark.asyncio
    async def test_list_unread_only(self, db_session, make_user):
        user = await make_user()
        read = await self._notify(db_session, user, "read")
        unread = await self._notify(db_session, user, "unread")
        read.is_read = True
        await db_session.flush()

        page = await self.service.list_notifications(
            db_session, user.id, PaginationParams(), unread_only=True
        )

        assert [n.id for n in page.data.notifications] == [unread.id]

    @pytest.mark.asyncio
    async def test_mark_as_read(self, db_session, make_user):
        user = await make_user()
        notification = await self._notify(db_session, user)

        result = await self.service.mark_as_read(db_session, notification.id, user.id)

        assert result.is_read is True

    @pytest.mark.asyncio
    async def test_mark_as_read_by_other_user_is_forbidden(self, db_session, make_user):
        user = await make_user()
        other = await make_user()
        notification = await self._notify(db_session, user)

        with pytest.raises(ForbiddenError):
            await self.service.mark_as_read(db_session, notification.id, other.id)

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, db_session, make_user):
        user = await make_user()
        other = await make_user()
        for _ in range(3):
            await self._notify(db_session, user)
        theirs = await self._notify(db_session, other)

        changed = await self.service.mark_all_as_read(db_session, user.id)

        assert changed == 3
        assert theirs.is_read is False

    @pytest.mark.asyncio
    async def test_delete(self, db_session, make_user):
        user = await make_user()
        notification = await self._notify(db_session, user)

        await self.service.delete_notification(db_session, notification.id, user.id)

        assert await db_session.get(Notification, notification.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await self.service.delete_notification(db_session, uuid4(), user.id)
