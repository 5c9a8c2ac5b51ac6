"""
Lintgate Backend: Request Pipeline
===================================

What:  The ordered list of stages every request passes through.
How:   Each stage is a BaseHTTPMiddleware implementing
       `dispatch(request, call_next)`. The list is handed to
       `FastAPI(middleware=...)`, which composes it once at startup with the
       first entry outermost:

    Request → [Request ID] → [Access Log] → [Security] → [Auth] → Router
    Response ← [Request ID] ← [Access Log] ← [Security] ← [Auth] ← Router

    - Request ID first, so every log line and error body carries the ID
    - Access log outside Security, so 429s and preflights are logged too
    - Security before Auth: preflights and throttled clients never reach
      credential lookup
    - Auth directly in front of the router; exception handlers run inside it
"""

from typing import List

from starlette.middleware import Middleware

from lintgate.config import Settings
from lintgate.dependencies import Services
from lintgate.middleware.auth import AuthMiddleware
from lintgate.middleware.logging import RequestLoggingMiddleware
from lintgate.middleware.request_id import RequestIDMiddleware
from lintgate.middleware.security import SecurityMiddleware


def build_middleware(settings: Settings, services: Services) -> List[Middleware]:
    return [
        Middleware(RequestIDMiddleware),
        Middleware(RequestLoggingMiddleware),
        Middleware(SecurityMiddleware, settings=settings, rate_limiter=services.rate_limiter),
        Middleware(AuthMiddleware, settings=settings.auth, authenticator=services.authenticator),
    ]
