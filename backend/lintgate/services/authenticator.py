"""
Lintgate Backend: Authenticator
================================

What:  Finds the API key on an inbound request and decides whether it grants
       access, optionally for a specific scope.
How:   `extract()` checks three carriers in priority order; `authorize()`
       validates the key against the credential store and returns an
       `AuthResult` instead of raising, so the auth stage can map the two
       denial kinds to different statuses:

           DenialReason.MISSING_CREDENTIAL  → 401 (+ WWW-Authenticate)
           DenialReason.INVALID_CREDENTIAL  → 403

Credential carriers, first match wins:
    1. Authorization: Bearer <token>
    2. X-Api-Key: <token>
    3. ?api_key=<token>
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from starlette.requests import HTTPConnection

from lintgate.models.credential import Credential
from lintgate.services.credential_store import CredentialStore

BEARER_PATTERN = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)
API_KEY_HEADER = "X-Api-Key"
API_KEY_QUERY_PARAM = "api_key"


class DenialReason(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_CREDENTIAL = "invalid_credential"


@dataclass(frozen=True)
class AuthResult:
    """Outcome of an authorization check."""

    granted: bool
    token: Optional[str] = None
    credential: Optional[Credential] = None
    reason: Optional[DenialReason] = None
    # Audit-log explanation of a denial; never sent to the client
    detail: Optional[str] = None

    @classmethod
    def allow(cls, token: str, credential: Credential) -> "AuthResult":
        return cls(granted=True, token=token, credential=credential)

    @classmethod
    def deny(cls, reason: DenialReason, detail: str, token: Optional[str] = None) -> "AuthResult":
        return cls(granted=False, token=token, reason=reason, detail=detail)


class Authenticator:
    """Request-level wrapper around the credential store."""

    def __init__(self, store: CredentialStore):
        self.store = store

    def extract(self, request: HTTPConnection) -> Optional[str]:
        """Return the API key carried by the request, or None."""
        auth_header = request.headers.get("Authorization")
        if auth_header:
            match = BEARER_PATTERN.match(auth_header.strip())
            if match and match.group(1).strip():
                return match.group(1).strip()

        header_key = request.headers.get(API_KEY_HEADER)
        if header_key and header_key.strip():
            return header_key.strip()

        query_key = request.query_params.get(API_KEY_QUERY_PARAM)
        if query_key and query_key.strip():
            return query_key.strip()

        return None

    def authorize(self, request: HTTPConnection, required_scope: Optional[str] = None) -> AuthResult:
        token = self.extract(request)
        if token is None:
            return AuthResult.deny(DenialReason.MISSING_CREDENTIAL, "No API key provided")

        if not self.store.validate(token, required_scope):
            return AuthResult.deny(
                DenialReason.INVALID_CREDENTIAL,
                self._explain_denial(token, required_scope),
                token=token,
            )

        credential = self.store.lookup(token)
        if credential is None:
            # Key disappeared between validate() and lookup()
            return AuthResult.deny(DenialReason.INVALID_CREDENTIAL, "Unknown API key", token=token)
        return AuthResult.allow(token, credential)

    def _explain_denial(self, token: str, required_scope: Optional[str]) -> str:
        credential = self.store.lookup(token)
        if credential is None:
            return "Unknown API key"
        if not credential.active:
            return "API key has been revoked"
        if credential.is_expired():
            return "API key has expired"
        if required_scope is not None and not credential.has_scope(required_scope):
            return f"API key is missing the '{required_scope}' scope"
        return "Invalid API key"
