"""
Expert In The City Backend — Request ID Middleware
===================================================

What:  Gives every request a correlation id, echoes it in the X-Request-ID
       response header and stamps it on every log line the request produces.
How:   A well-formed client X-Request-ID is reused; anything else (missing,
       too long, odd characters) is replaced by a generated id so arbitrary
       header text never reaches the logs. The id lives in a ContextVar that
       RequestIDLogFilter reads, so the recompute and badge logs emitted deep
       in the services carry it without being passed the request.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")


def resolve_request_id(incoming: Optional[str]) -> str:
    """The client's id when it is safe to log, otherwise a fresh 8-char id."""
    if incoming and _VALID_REQUEST_ID.fullmatch(incoming):
        return incoming
    return uuid.uuid4().hex[:8]


class RequestIDLogFilter(logging.Filter):
    """
    Adds `request_id` to every record passing through the handler.

    Records logged outside a request (startup, migrations) get "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
