"""
Lintgate Backend: Credential Model
===================================

What:  The record stored for every issued API key.
How:   A pydantic model persisted as plain JSON inside the credential file,
       keyed by the token itself. The token is never part of the record.

Stored shape (one entry of api_keys.json):
    {
        "name": "CI pipeline",
        "created": 1735689600,
        "expires": null,
        "active": true,
        "scopes": ["analyze", "standards"],
        "metadata": {"owner": "platform-team"}
    }
"""

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class Credential(BaseModel):
    """An API key's metadata. Valid iff active and not past `expires`."""

    name: str = Field(default="", description="Display name")
    created: int = Field(description="Creation time (epoch seconds)")
    expires: Optional[int] = Field(default=None, description="Expiry (epoch seconds), null = never")
    active: bool = Field(default=True, description="False once revoked")
    scopes: List[str] = Field(default_factory=list, description="Granted permissions")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form attributes")

    @model_validator(mode="before")
    @classmethod
    def collect_metadata(cls, data: Any) -> Any:
        """Fold keys that are not record fields into `metadata`."""
        if not isinstance(data, dict):
            return data
        known = set(cls.model_fields)
        extras = {k: v for k, v in data.items() if k not in known}
        if not extras:
            return data
        cleaned = {k: v for k, v in data.items() if k in known}
        cleaned["metadata"] = {**extras, **(cleaned.get("metadata") or {})}
        return cleaned

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires is None:
            return False
        return self.expires <= (time.time() if now is None else now)

    def is_valid(self, now: Optional[float] = None) -> bool:
        return self.active and not self.is_expired(now)

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes
