"""
Expert In The City Backend — Shared Pydantic Schemas
=====================================================

What:  Envelopes and helpers used by every route module: pagination block,
       plain message response, error envelope and health response.

Envelope shapes:
    success:    {"status": "success", "data": {...}}
    paginated:  {"status": "success", "data": {...}, "pagination": {...}}
    error:      {"status": "error", "code": "...", "message": "...", ...}
"""

import math
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Page/limit pair accepted by every listing endpoint."""

    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int = Field(default=10, ge=1, le=100, description="Items per page (max 100)")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, params: PaginationParams, total: int) -> "Pagination":
        total_pages = math.ceil(total / params.limit) if total else 0
        return cls(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=total_pages,
            has_next_page=params.page < total_pages,
            has_prev_page=params.page > 1,
        )


class MessageResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "status": "error",
            "code": "forbidden",
            "message": "You can only delete your own reviews",
            "request_id": "a1b2c3d4"
        }
    """
    status: Literal["error"] = "error"
    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
