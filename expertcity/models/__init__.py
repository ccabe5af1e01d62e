"""
ORM models. Importing this package registers every table on Base.metadata,
which Alembic and the test suite rely on.
"""

from expertcity.models.enums import (
    MANUAL_BADGES,
    Badge,
    NotificationType,
    ProgressLevel,
    Satisfaction,
    UserRole,
)
from expertcity.models.user import User
from expertcity.models.expert import ExpertDetails
from expertcity.models.session_review import SessionReview
from expertcity.models.notification import Notification

__all__ = [
    "Badge",
    "ExpertDetails",
    "MANUAL_BADGES",
    "Notification",
    "NotificationType",
    "ProgressLevel",
    "Satisfaction",
    "SessionReview",
    "User",
    "UserRole",
]
