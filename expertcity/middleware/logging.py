"""
Expert In The City Backend — Access Log Middleware
===================================================

What:  One line per API call: method, matched route, status, duration and
       the calling user.
How:   The route is logged as its template (`/api/reviews/{review_id}`), not
       the raw path, so lines for the same endpoint group together and ids
       in the URL are not repeated in every line. The caller is the
       X-User-ID header when it parses as a UUID, "anonymous" otherwise.
       Severity follows the status code (5xx ERROR, 4xx WARNING, else INFO).
       The request id is added by RequestIDLogFilter on the handler.

Health checks are not logged. Request bodies are never logged (review
remarks are user content).
"""

import logging
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("expertcity.access")

SKIP_PATHS = frozenset({"/health"})


def caller_label(raw: Optional[str]) -> str:
    if raw:
        try:
            return str(uuid.UUID(raw))
        except ValueError:
            return "invalid"
    return "anonymous"


def route_label(request: Request) -> str:
    """Template of the matched route; the raw path for 404s."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        route = route_label(request)
        caller = caller_label(request.headers.get("X-User-ID"))
        logger.log(
            log_level,
            "%s %s -> %d in %.1fms (caller %s)",
            request.method,
            route,
            status,
            duration_ms,
            caller,
            extra={
                "method": request.method,
                "route": route,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "caller": caller,
            },
        )

        return response
