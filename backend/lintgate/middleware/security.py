"""
Lintgate Backend: Security Policy Middleware
=============================================

What:  Transport-level policy applied before authentication: CORS
       negotiation and preflight, rate limiting, static security headers.
How:   For each request:
           1. OPTIONS with CORS enabled → 204, CORS headers, no body. Stops
              here: preflights are never rate limited, authenticated, or routed.
           2. Rate limiting enabled → run the auth-sensitive policy for
              `rate_limit.auth_paths`, the general policy otherwise. A denial
              becomes a RateLimitExceededError 429 envelope.
           3. Otherwise call the next stage.
       Every non-preflight response, 429s included, leaves with the security
       headers and (CORS enabled) the negotiated CORS headers.
Who:   Third stage, after request ID and access log.
"""

from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from lintgate.config import Settings
from lintgate.exceptions import RateLimitExceededError
from lintgate.middleware.paths import match_any
from lintgate.responses import error_response_for
from lintgate.security_log import log_rate_limited
from lintgate.services.rate_limiter import RateLimiter, resolve_client_id


def negotiate_origin(request_origin: Optional[str], allowed: List[str]) -> Optional[str]:
    """
    Value for Access-Control-Allow-Origin.

    No Origin header means "*". A specific origin is echoed when it, or "*",
    is allowed; otherwise the first configured origin is sent so the browser
    rejects the response. None means the header is omitted.
    """
    origin = request_origin or "*"
    if origin != "*" and "*" not in allowed and origin not in allowed:
        return allowed[0] if allowed else None
    return origin


class SecurityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, settings: Settings, rate_limiter: RateLimiter):
        super().__init__(app)
        self.cors = settings.cors
        self.rate_limit = settings.rate_limit
        self.security_headers = dict(settings.security_headers)
        self.rate_limiter = rate_limiter

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self.cors.enabled and request.method == "OPTIONS":
            response = Response(status_code=204)
            self._apply_cors(request, response)
            return response

        if self.rate_limit.enabled:
            denial = self._check_rate_limit(request)
            if denial is not None:
                return self._finish(request, denial)

        response = await call_next(request)
        return self._finish(request, response)

    # ── Rate limiting ─────────────────────────────────────────────────────

    def _check_rate_limit(self, request: Request) -> Optional[Response]:
        path = request.url.path
        client_id = resolve_client_id(request)
        decision = self.rate_limiter.check(
            client_id, auth_sensitive=match_any(self.rate_limit.auth_paths, path)
        )
        if decision.allowed:
            return None

        log_rate_limited(
            path=path,
            client_id=client_id,
            policy=decision.policy,
            limit=decision.limit,
            period=decision.period,
            retry_after=decision.retry_after,
        )
        return error_response_for(
            RateLimitExceededError(
                retry_after=decision.retry_after,
                message=decision.message,
                context={"policy": decision.policy, "client": client_id},
            )
        )

    # ── Headers ───────────────────────────────────────────────────────────

    def _finish(self, request: Request, response: Response) -> Response:
        for name, value in self.security_headers.items():
            response.headers[name] = value
        if self.cors.enabled:
            self._apply_cors(request, response)
        return response

    def _apply_cors(self, request: Request, response: Response) -> None:
        headers = self.cors_headers(request.headers.get("Origin"))
        for name, value in headers.items():
            response.headers[name] = value
        # The header varies per caller unless it is the literal "*"
        if headers.get("Access-Control-Allow-Origin", "*") != "*":
            response.headers["Vary"] = "Origin"

    def cors_headers(self, request_origin: Optional[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        origin = negotiate_origin(request_origin, self.cors.allowed_origins)
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
        if self.cors.allowed_methods:
            headers["Access-Control-Allow-Methods"] = ", ".join(self.cors.allowed_methods)
        if self.cors.allowed_headers:
            headers["Access-Control-Allow-Headers"] = ", ".join(self.cors.allowed_headers)
        if self.cors.expose_headers:
            headers["Access-Control-Expose-Headers"] = ", ".join(self.cors.expose_headers)
        if self.cors.max_age is not None:
            headers["Access-Control-Max-Age"] = str(self.cors.max_age)
        if self.cors.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers
