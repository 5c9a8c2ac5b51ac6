"""
Lintgate Backend: Authentication Middleware
============================================

What:  Path-based API key protection with per-path scopes.
How:   Unprotected paths (and every path when auth is disabled) pass
       straight through. For a protected path:
           no key                     → 401 + WWW-Authenticate: Bearer
           unknown/expired/revoked    → 403
           key lacks the path's scope → 403
           otherwise                  → request.state.api_key / .credential
                                        are set and the request continues
       The required scope comes from `auth.path_scopes`: an exact entry
       first, then wildcard entries. A protected path with no scope entry
       admits any valid key.
Who:   Fourth stage, directly in front of the router.

Every decision, allowed or denied, is written to the security log.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from lintgate.config import AuthSettings
from lintgate.exceptions import AuthenticationMissingError, AuthorizationDeniedError
from lintgate.middleware.paths import match_any, resolve_scope
from lintgate.responses import error_response_for
from lintgate.security_log import log_auth_attempt
from lintgate.services.authenticator import Authenticator, DenialReason


class AuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, settings: AuthSettings, authenticator: Authenticator):
        super().__init__(app)
        self.settings = settings
        self.authenticator = authenticator

    def is_protected(self, path: str) -> bool:
        return self.settings.enabled and match_any(self.settings.protected_paths, path)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not self.is_protected(path):
            return await call_next(request)

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        required_scope = resolve_scope(self.settings.path_scopes, path)
        result = self.authenticator.authorize(request, required_scope)

        if not result.granted:
            log_auth_attempt(path, result.token, False, reason=result.detail, client_ip=client_ip)
            if result.reason == DenialReason.MISSING_CREDENTIAL:
                return error_response_for(
                    AuthenticationMissingError(),
                    headers={"WWW-Authenticate": "Bearer"},
                )
            return error_response_for(AuthorizationDeniedError())

        log_auth_attempt(path, result.token, True, client_ip=client_ip)
        request.state.api_key = result.token
        request.state.credential = result.credential
        return await call_next(request)
