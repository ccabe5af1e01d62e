"""
Expert In The City Backend — Session Review Route Handlers
===========================================================

What:  HTTP surface of the review feature. Every mutating endpoint triggers
       a reputation recompute for the reviewed expert (inside ReviewService).
How:   Extracts path/body/caller, delegates to ReviewService, wraps the result
       in the success envelope.

Route Inventory:
    POST   /api/reviews/expert/{expert_user_id}   create or overwrite my review
    GET    /api/reviews/expert/{expert_id}        reviews + current reputation
    GET    /api/reviews/user                      reviews I have written
    PATCH  /api/reviews/{review_id}               update my review
    DELETE /api/reviews/{review_id}               delete my review

Note the asymmetry inherited from the public API: POST addresses the expert
by *user* id, GET by expert profile id.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from expertcity.database import get_db_session
from expertcity.models.user import User
from expertcity.routes.dependencies import get_current_user, get_pagination
from expertcity.schemas.common import ErrorResponse, MessageResponse, PaginationParams
from expertcity.schemas.review import (
    ExpertReviewsResponse,
    ReviewCreate,
    ReviewData,
    ReviewEnvelope,
    ReviewUpdate,
    UserReviewsResponse,
)
from expertcity.services.review_service import review_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.post(
    "/expert/{expert_user_id}",
    status_code=201,
    response_model=ReviewEnvelope,
    responses={
        401: {"description": "Missing or unknown caller", "model": ErrorResponse},
        404: {"description": "Expert not found", "model": ErrorResponse},
        409: {"description": "Concurrent duplicate submission", "model": ErrorResponse},
    },
    summary="Create or overwrite the caller's review of an expert",
)
async def submit_review(
    expert_user_id: UUID,
    payload: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewEnvelope:
    """
    A reviewer has at most one current review per expert: submitting again
    overwrites the earlier one (same id) instead of adding a second row.
    """
    review = await review_service.submit_or_update_review(
        db=db,
        reviewer_id=current_user.id,
        expert_user_id=expert_user_id,
        payload=payload,
    )
    return ReviewEnvelope(data=ReviewData(review=review))


@router.get(
    "/expert/{expert_id}",
    response_model=ExpertReviewsResponse,
    responses={404: {"description": "Expert not found", "model": ErrorResponse}},
    summary="List an expert's reviews with their current reputation",
)
async def list_expert_reviews(
    expert_id: UUID,
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ExpertReviewsResponse:
    return await review_service.list_expert_reviews(db=db, expert_id=expert_id, params=pagination)


@router.get(
    "/user",
    response_model=UserReviewsResponse,
    summary="List reviews written by the caller",
)
async def list_my_reviews(
    pagination: PaginationParams = Depends(get_pagination),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserReviewsResponse:
    return await review_service.list_user_reviews(
        db=db, reviewer_id=current_user.id, params=pagination
    )


@router.patch(
    "/{review_id}",
    response_model=ReviewEnvelope,
    responses={
        403: {"description": "Not the author of the review", "model": ErrorResponse},
        404: {"description": "Review not found", "model": ErrorResponse},
    },
    summary="Update rating, satisfaction or remarks of the caller's review",
)
async def update_review(
    review_id: UUID,
    payload: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewEnvelope:
    review = await review_service.update_review(
        db=db,
        review_id=review_id,
        requester_id=current_user.id,
        payload=payload,
    )
    return ReviewEnvelope(data=ReviewData(review=review))


@router.delete(
    "/{review_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the author of the review", "model": ErrorResponse},
        404: {"description": "Review not found", "model": ErrorResponse},
    },
    summary="Delete the caller's review",
)
async def delete_review(
    review_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await review_service.delete_review(db=db, review_id=review_id, requester_id=current_user.id)
    return MessageResponse(message="Review deleted successfully")
