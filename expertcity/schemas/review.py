"""
Expert In The City Backend — Review Request/Response Schemas
=============================================================

What:  The API contract for the session review endpoints.
How:   Request models validate rating range and satisfaction category before
       any service code runs (FastAPI answers 422 otherwise). Response models
       are built from ORM rows with `from_attributes`.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from expertcity.models.enums import ProgressLevel, Satisfaction
from expertcity.schemas.common import Pagination

RATING_MIN = 1
RATING_MAX = 5


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ReviewCreate(BaseModel):
    """Body of POST /api/reviews/expert/{expert_user_id}."""

    session_id: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Reference to the booked session this review is about",
    )
    rating: float = Field(ge=RATING_MIN, le=RATING_MAX, description="Rating from 1 to 5")
    satisfaction: Satisfaction = Field(description="Overall satisfaction with the session")
    remarks: Optional[str] = Field(default=None, max_length=5000)


class ReviewUpdate(BaseModel):
    """Body of PATCH /api/reviews/{review_id}. At least one field is required."""

    rating: Optional[float] = Field(default=None, ge=RATING_MIN, le=RATING_MAX)
    satisfaction: Optional[Satisfaction] = None
    remarks: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def require_some_field(self) -> "ReviewUpdate":
        if not self.model_fields_set:
            raise ValueError("Provide at least one of: rating, satisfaction, remarks")
        if "rating" in self.model_fields_set and self.rating is None:
            raise ValueError("rating cannot be null")
        if "satisfaction" in self.model_fields_set and self.satisfaction is None:
            raise ValueError("satisfaction cannot be null")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserSummary(BaseModel):
    id: uuid.UUID
    name: str
    avatar: Optional[str] = None

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    id: uuid.UUID
    expert_id: uuid.UUID
    reviewer_id: uuid.UUID
    session_id: Optional[str] = None
    rating: float
    satisfaction: Satisfaction
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    reviewer: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class ExpertSummary(BaseModel):
    id: uuid.UUID
    headline: Optional[str] = None
    ratings: float
    progress_level: ProgressLevel
    badges: List[str]
    user: UserSummary

    model_config = {"from_attributes": True}


class UserReviewResponse(ReviewResponse):
    """A review as seen by its author, with the reviewed expert attached."""

    expert: ExpertSummary


class ReviewData(BaseModel):
    review: ReviewResponse


class ReviewEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: ReviewData


class ExpertReviewsData(BaseModel):
    reviews: List[ReviewResponse]
    average_rating: float
    progress_level: ProgressLevel
    badges: List[str]


class ExpertReviewsResponse(BaseModel):
    """GET /api/reviews/expert/{expert_id}: reviews plus current reputation."""

    status: Literal["success"] = "success"
    data: ExpertReviewsData
    pagination: Pagination


class UserReviewsData(BaseModel):
    reviews: List[UserReviewResponse]


class UserReviewsResponse(BaseModel):
    status: Literal["success"] = "success"
    data: UserReviewsData
    pagination: Pagination
