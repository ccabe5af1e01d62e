"""
Enumerations shared by the ORM models, schemas and services.

All enums subclass `str` so they serialize as their plain value in JSON and
compare equal to the raw strings stored in the database.
"""

from enum import Enum
from typing import FrozenSet


class UserRole(str, Enum):
    USER = "USER"
    EXPERT = "EXPERT"
    ADMIN = "ADMIN"


class ProgressLevel(str, Enum):
    """Reputation tier; totally ordered BRONZE < SILVER < GOLD < PLATINUM."""

    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"

    @property
    def rank(self) -> int:
        return _PROGRESS_ORDER.index(self)


_PROGRESS_ORDER = (
    ProgressLevel.BRONZE,
    ProgressLevel.SILVER,
    ProgressLevel.GOLD,
    ProgressLevel.PLATINUM,
)


class Badge(str, Enum):
    """
    Achievement tags shown on an expert profile.

    Derived badges are recalculated on every recompute. Manual badges are
    assigned out-of-band and only ever carried forward.
    """

    # derived
    TOP_RATED = "TOP_RATED"
    RISING_EXPERT = "RISING_EXPERT"
    IN_DEMAND = "IN_DEMAND"
    ELITE_EXPERT = "ELITE_EXPERT"
    VERSATILE_PRO = "VERSATILE_PRO"

    # manual
    COMMUNITY_CONTRIBUTOR = "COMMUNITY_CONTRIBUTOR"
    SPECIALIST = "SPECIALIST"
    MULTICITY_EXPERT = "MULTICITY_EXPERT"
    QUICK_RESPONDER = "QUICK_RESPONDER"

    @property
    def display_name(self) -> str:
        """TOP_RATED -> 'TOP RATED'."""
        return self.value.replace("_", " ")


MANUAL_BADGES: FrozenSet[Badge] = frozenset({
    Badge.COMMUNITY_CONTRIBUTOR,
    Badge.SPECIALIST,
    Badge.MULTICITY_EXPERT,
    Badge.QUICK_RESPONDER,
})


class Satisfaction(str, Enum):
    VERY_DISSATISFIED = "VERY_DISSATISFIED"
    DISSATISFIED = "DISSATISFIED"
    NEUTRAL = "NEUTRAL"
    SATISFIED = "SATISFIED"
    VERY_SATISFIED = "VERY_SATISFIED"


class NotificationType(str, Enum):
    BADGE_EARNED = "BADGE_EARNED"
    REVIEW = "REVIEW"
    FOLLOW = "FOLLOW"
    LIKE = "LIKE"
    COMMENT = "COMMENT"
