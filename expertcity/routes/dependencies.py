"""
Shared route dependencies: caller identity and pagination.

Token issuance and verification happen upstream (API gateway / auth
service). Requests reach this service with the authenticated user's id in
the X-User-ID header; the dependency below only checks that the id is a
UUID of an existing user.
"""

from uuid import UUID

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from expertcity.database import get_db_session
from expertcity.exceptions import UnauthorizedError
from expertcity.models.user import User
from expertcity.schemas.common import PaginationParams


async def get_current_user(
    x_user_id: str | None = Header(default=None, description="Authenticated user id"),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if not x_user_id:
        raise UnauthorizedError()
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise UnauthorizedError(message="Invalid user id in X-User-ID header")

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError(message="User not found")
    return user


def get_pagination(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(default=10, ge=1, le=100, description="Items per page (max 100)"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)
