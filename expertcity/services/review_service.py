"""
Expert In The City Backend — Review Service (Business Logic Orchestrator)
==========================================================================

What:  Session review CRUD. Every mutation is followed by a reputation
       recompute for the affected expert, in the same transaction.
Who:   Called by the review route handlers.

Mutation Flow:
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────────┐
    │  Route   │───▶│ Ownership / │───▶│ Write review │───▶│  Recompute   │
    │          │    │ existence   │    │ (flush)      │    │  reputation  │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────────┘

    Nothing is committed here. get_db_session commits after the route
    returns, or rolls back everything if any step raised.

Error Handling Strategy:
    Application exceptions (NotFoundError, ForbiddenError)
    propagate unchanged. A unique-constraint violation on
    (reviewer_id, expert_id) becomes ConflictError; any other SQLAlchemy
    error becomes DatabaseError with a generic message.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from expertcity.exceptions import (
    ConflictError,
    DatabaseError,
    ExpertCityError,
    ForbiddenError,
    NotFoundError,
)
from expertcity.models.expert import ExpertDetails
from expertcity.models.session_review import SessionReview
from expertcity.schemas.common import Pagination, PaginationParams
from expertcity.schemas.review import (
    ExpertReviewsData,
    ExpertReviewsResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
    UserReviewResponse,
    UserReviewsData,
    UserReviewsResponse,
)
from expertcity.services.reputation_service import ReputationService, reputation_service

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Business logic layer for session reviews.

    Responsibilities:
        - submit_or_update_review(): one current review per reviewer/expert
        - update_review() / delete_review(): owner-only mutations
        - list_expert_reviews() / list_user_reviews(): read-only listings
    """

    def __init__(self, reputation: Optional[ReputationService] = None) -> None:
        self.reputation = reputation if reputation is not None else reputation_service

    # ── Mutations ─────────────────────────────────────────────────────────

    async def submit_or_update_review(
        self,
        db: AsyncSession,
        reviewer_id: UUID,
        expert_user_id: UUID,
        payload: ReviewCreate,
    ) -> ReviewResponse:
        """
        Creates the caller's review of an expert, or overwrites the existing one.

        An existing review keeps its id and created_at; session_id, rating,
        satisfaction and remarks are replaced.

        Args:
            db: Async database session
            reviewer_id: the authenticated caller
            expert_user_id: the *user* id of the expert being reviewed
            payload: validated request body

        Raises:
            NotFoundError: no expert profile for expert_user_id
            ConflictError: a concurrent first review for the same pair won
        """
        try:
            expert = (
                await db.execute(
                    select(ExpertDetails).where(ExpertDetails.user_id == expert_user_id)
                )
            ).scalar_one_or_none()
            if expert is None:
                raise NotFoundError(resource="expert", resource_id=str(expert_user_id))

            review = (
                await db.execute(
                    select(SessionReview).where(
                        SessionReview.reviewer_id == reviewer_id,
                        SessionReview.expert_id == expert.id,
                    )
                )
            ).scalar_one_or_none()

            if review is not None:
                review.session_id = payload.session_id
                review.rating = payload.rating
                review.satisfaction = payload.satisfaction
                review.remarks = payload.remarks
                logger.info("Overwriting review %s of expert %s", review.id, expert.id)
            else:
                review = SessionReview(
                    expert_id=expert.id,
                    reviewer_id=reviewer_id,
                    session_id=payload.session_id,
                    rating=payload.rating,
                    satisfaction=payload.satisfaction,
                    remarks=payload.remarks,
                )
                db.add(review)

            try:
                await db.flush()
            except IntegrityError as e:
                logger.warning(
                    "Duplicate review insert for reviewer %s / expert %s: %s",
                    reviewer_id,
                    expert.id,
                    str(e.orig),
                )
                raise ConflictError(
                    message="A review for this expert is already being submitted. Please retry.",
                    context={"expert_id": str(expert.id)},
                )

            await self.reputation.recompute_expert_reputation(db, expert.id)
            return await self._to_response(db, review)

        except ExpertCityError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error submitting review: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save your review. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def update_review(
        self,
        db: AsyncSession,
        review_id: UUID,
        requester_id: UUID,
        payload: ReviewUpdate,
    ) -> ReviewResponse:
        """
        Partially updates rating, satisfaction and remarks of an owned review.

        Raises:
            NotFoundError: review does not exist
            ForbiddenError: requester is not the reviewer
        """
        try:
            review = await self._get_owned(db, review_id, requester_id, "update")

            changes = payload.model_dump(exclude_unset=True)
            for field, value in changes.items():
                setattr(review, field, value)
            await db.flush()
            logger.info("Updated review %s fields=%s", review.id, sorted(changes))

            await self.reputation.recompute_expert_reputation(db, review.expert_id)
            return await self._to_response(db, review)

        except ExpertCityError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating review %s: %s", review_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the review. Please try again.",
                context={"review_id": str(review_id)},
            )

    async def delete_review(self, db: AsyncSession, review_id: UUID, requester_id: UUID) -> None:
        """
        Deletes an owned review and recomputes the expert's reputation.

        Raises:
            NotFoundError: review does not exist
            ForbiddenError: requester is not the reviewer
        """
        try:
            review = await self._get_owned(db, review_id, requester_id, "delete")
            expert_id = review.expert_id

            await db.delete(review)
            await db.flush()
            logger.info("Deleted review %s of expert %s", review_id, expert_id)

            await self.reputation.recompute_expert_reputation(db, expert_id)

        except ExpertCityError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting review %s: %s", review_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the review. Please try again.",
                context={"review_id": str(review_id)},
            )

    # ── Listings ──────────────────────────────────────────────────────────

    async def list_expert_reviews(
        self,
        db: AsyncSession,
        expert_id: UUID,
        params: PaginationParams,
    ) -> ExpertReviewsResponse:
        """
        Newest-first page of an expert's reviews plus their current reputation.

        Read-only: the stored ratings/progress_level/badges are returned as-is.
        """
        try:
            expert = await db.get(ExpertDetails, expert_id)
            if expert is None:
                raise NotFoundError(resource="expert", resource_id=str(expert_id))

            total = await db.scalar(
                select(func.count(SessionReview.id)).where(SessionReview.expert_id == expert_id)
            ) or 0
            result = await db.execute(
                select(SessionReview)
                .where(SessionReview.expert_id == expert_id)
                .options(selectinload(SessionReview.reviewer))
                .order_by(SessionReview.created_at.desc(), SessionReview.id)
                .offset(params.offset)
                .limit(params.limit)
            )
            reviews = result.scalars().all()

        except ExpertCityError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error listing reviews of %s: %s", expert_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve reviews. Please try again.",
                context={"expert_id": str(expert_id)},
            )

        return ExpertReviewsResponse(
            data=ExpertReviewsData(
                reviews=[ReviewResponse.model_validate(r) for r in reviews],
                average_rating=expert.ratings,
                progress_level=expert.progress_level,
                badges=sorted(expert.badge_set),
            ),
            pagination=Pagination.build(params, total),
        )

    async def list_user_reviews(
        self,
        db: AsyncSession,
        reviewer_id: UUID,
        params: PaginationParams,
    ) -> UserReviewsResponse:
        """Newest-first page of reviews written by the caller."""
        try:
            total = await db.scalar(
                select(func.count(SessionReview.id)).where(SessionReview.reviewer_id == reviewer_id)
            ) or 0
            result = await db.execute(
                select(SessionReview)
                .where(SessionReview.reviewer_id == reviewer_id)
                .options(
                    selectinload(SessionReview.reviewer),
                    selectinload(SessionReview.expert).selectinload(ExpertDetails.user),
                )
                .order_by(SessionReview.created_at.desc(), SessionReview.id)
                .offset(params.offset)
                .limit(params.limit)
            )
            reviews = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing reviews by %s: %s", reviewer_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve your reviews. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return UserReviewsResponse(
            data=UserReviewsData(
                reviews=[UserReviewResponse.model_validate(r) for r in reviews],
            ),
            pagination=Pagination.build(params, total),
        )

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _get_owned(
        self, db: AsyncSession, review_id: UUID, requester_id: UUID, action: str
    ) -> SessionReview:
        review = await db.get(SessionReview, review_id)
        if review is None:
            raise NotFoundError(resource="review", resource_id=str(review_id))
        if review.reviewer_id != requester_id:
            raise ForbiddenError(message=f"You can only {action} your own reviews")
        return review

    async def _to_response(self, db: AsyncSession, review: SessionReview) -> ReviewResponse:
        # reviewer is not loaded on freshly inserted rows; load it explicitly
        # since lazy loading is not available on an AsyncSession.
        await db.refresh(review, attribute_names=["reviewer"])
        return ReviewResponse.model_validate(review)


# ── Singleton Instance ────────────────────────────────────────────────────
review_service = ReviewService()
