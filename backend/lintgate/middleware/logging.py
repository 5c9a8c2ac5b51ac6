"""
Lintgate Backend: Request Logging Middleware
=============================================

What:  One access log line per request: method, path, status, duration,
       client address, masked API key prefix.
How:   Times the rest of the pipeline with perf_counter and logs at a level
       chosen from the status (5xx ERROR, 4xx WARNING, else INFO). The key
       prefix is read after the response, once the auth stage has attached
       it to the shared request state; requests without one log "anon".
       Throttled requests also log the Retry-After they were given.
Who:   Second stage, directly inside RequestIDMiddleware.

Request bodies and full credentials are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lintgate.security_log import mask_token

logger = logging.getLogger("lintgate.access")

# Probed every few seconds by orchestrators; not worth a log line
QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        api_key = getattr(request.state, "api_key", None)
        line = "%s %s %d %.1fms client=%s key=%s"
        args = [
            request.method,
            request.url.path,
            status,
            elapsed_ms,
            request.client.host if request.client else "unknown",
            mask_token(api_key) if api_key else "anon",
        ]
        if status == 429:
            line += " retry_after=%s"
            args.append(response.headers.get("Retry-After", "?"))

        logger.log(level, line, *args)
        return response
