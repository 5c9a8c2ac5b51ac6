"""
Lintgate Backend: Request ID Middleware
========================================

What:  Assigns a correlation ID to each request and echoes it in the
       X-Request-ID response header.
How:   A client-supplied X-Request-ID is kept when it is a short token of
       safe characters; anything else is replaced by a generated ID. The ID
       is stored in a ContextVar (read by the log filter and the error
       envelope) and on request.state (read by route handlers).
Who:   Outermost stage of the pipeline.
"""

import logging
import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client IDs end up in log lines and headers; keep them short and inert
SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9_\-.]{1,64}$")


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIdFilter(logging.Filter):
    """Adds `request_id` to every log record so the format string can use it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Read X-Request-ID from the client
        2. Keep it if it matches SAFE_REQUEST_ID, else generate an 8-char ID
        3. Publish it to the ContextVar and request.state
        4. Copy it onto the response
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if SAFE_REQUEST_ID.match(supplied) else new_request_id()

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
