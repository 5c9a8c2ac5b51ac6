"""
Lintgate Backend: Credential Store
===================================

What:  Issues, looks up, validates, and revokes API keys.
How:   Tokens are 24 random bytes, hex-encoded (48 chars, 192 bits). Records
       live in a `KeyValueStore` keyed by token; in production that is a
       `JsonFileStore`, so every change is written atomically and the
       in-memory snapshot only moves forward after a successful write.
Who:   The authenticator (validation on every protected request), the
       /keys/generate route, and the `lintgate-keys` CLI.

Lifecycle:
    generate() → active credential
    revoke()   → active=false (the record is kept for audit history)
    expires    → validate() starts returning False, record is kept
"""

import logging
import secrets
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from lintgate.exceptions import StorageError
from lintgate.models.credential import Credential
from lintgate.security_log import mask_token
from lintgate.storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 24


class CredentialStore:
    """Durable mapping from API key to its `Credential` record."""

    def __init__(
        self,
        table: KeyValueStore,
        default_scopes: Optional[List[str]] = None,
    ):
        self._table = table
        self.default_scopes = list(default_scopes or ["analyze", "standards"])

    @classmethod
    def from_file(cls, path: str, default_scopes: Optional[List[str]] = None) -> "CredentialStore":
        return cls(JsonFileStore(path), default_scopes=default_scopes)

    # ── Reads ─────────────────────────────────────────────────────────────

    def lookup(self, token: Optional[str]) -> Optional[Credential]:
        """Return the record for `token`, or None if it was never issued."""
        if not token:
            return None
        raw = self._table.get(token)
        if raw is None:
            return None
        try:
            return Credential.model_validate(raw)
        except PydanticValidationError as e:
            logger.error("Malformed credential record %s: %s", mask_token(token), str(e))
            return None

    def validate(self, token: Optional[str], required_scope: Optional[str] = None) -> bool:
        """
        True iff the token exists, is active, has not expired, and (when
        `required_scope` is given) holds that scope. Unknown tokens are a
        normal outcome and simply return False.
        """
        credential = self.lookup(token)
        if credential is None or not credential.is_valid():
            return False
        if required_scope is not None and not credential.has_scope(required_scope):
            return False
        return True

    def list(self) -> Dict[str, Credential]:
        keys: Dict[str, Credential] = {}
        for token, raw in self._table.items():
            try:
                keys[token] = Credential.model_validate(raw)
            except PydanticValidationError:
                logger.warning("Skipping malformed credential record %s", mask_token(token))
        return keys

    # ── Writes ────────────────────────────────────────────────────────────

    def generate(self, data: Optional[Dict[str, Any]] = None) -> str:
        """
        Mint a new token and persist its record.

        Caller data is merged over the defaults
        `{created: now, active: true, scopes: default_scopes}`; keys that are
        not record fields end up in `metadata`.

        Raises:
            StorageError: the record could not be written, so the token would
                not survive a restart and is not handed out.
                This is the one write in the store that raises instead of
                returning False: there is no token to return.
        """
        token = secrets.token_hex(TOKEN_BYTES)
        record = {
            "created": int(time.time()),
            "active": True,
            "scopes": list(self.default_scopes),
            **(data or {}),
        }
        credential = Credential.model_validate(record)

        if not self._table.set(token, credential.model_dump(mode="json")):
            raise StorageError(
                message="Could not store the new API key. Please try again.",
                context={"key_prefix": mask_token(token)},
            )

        logger.info("Generated API key %s (%s)", mask_token(token), credential.name or "unnamed")
        return token

    def revoke(self, token: Optional[str]) -> bool:
        """
        Mark a key inactive. Returns False for unknown keys or when the
        change could not be persisted; revoking an already revoked key
        returns True.
        """
        credential = self.lookup(token)
        if credential is None:
            return False

        revoked = credential.model_copy(update={"active": False})
        if not self._table.set(token, revoked.model_dump(mode="json")):
            logger.error("Failed to persist revocation of %s", mask_token(token))
            return False

        logger.info("Revoked API key %s", mask_token(token))
        return True
