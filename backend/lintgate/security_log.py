"""
Lintgate Backend: Security Event Log
=====================================

What:  Audit records for authentication attempts, rate limit trips, and
       other security-relevant events.
How:   Everything goes to the `lintgate.security` logger, which
       `setup_logging()` pins at INFO. Records therefore reach the handlers
       even when LOG_LEVEL is WARNING or ERROR for the rest of the app.
       Structured fields travel in `extra` so a JSON formatter can index them.

Tokens are never logged in full; `mask_token()` keeps the first 8 characters.
"""

import logging
from typing import Any, Dict, Optional

security_logger = logging.getLogger("lintgate.security")


def mask_token(token: Optional[str]) -> str:
    """Loggable form of a token: its first 8 characters."""
    if not token:
        return "none"
    return f"{token[:8]}..."


def log_auth_attempt(
    path: str,
    token: Optional[str],
    success: bool,
    reason: Optional[str] = None,
    client_ip: str = "unknown",
) -> None:
    """Record one authentication decision made by the auth stage."""
    key_prefix = mask_token(token)
    security_logger.log(
        logging.INFO if success else logging.WARNING,
        "auth %s path=%s key=%s ip=%s%s",
        "success" if success else "failure",
        path,
        key_prefix,
        client_ip,
        f" reason={reason}" if reason else "",
        extra={
            "event": "auth_attempt",
            "path": path,
            "key_prefix": key_prefix,
            "success": success,
            "reason": reason,
            "client_ip": client_ip,
        },
    )


def log_rate_limited(
    path: str,
    client_id: str,
    policy: str,
    limit: int,
    period: str,
    retry_after: int,
) -> None:
    """Record a rate limit denial."""
    # Client ids may be API keys; mask them like any other token
    client_ref = client_id if _looks_like_address(client_id) else mask_token(client_id)
    security_logger.warning(
        "rate limit exceeded policy=%s path=%s client=%s limit=%d/%s retry_after=%ds",
        policy,
        path,
        client_ref,
        limit,
        period,
        retry_after,
        extra={
            "event": "rate_limited",
            "policy": policy,
            "path": path,
            "client": client_ref,
            "limit": limit,
            "period": period,
            "retry_after": retry_after,
        },
    )


def log_security_event(event: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
    """Record any other security-relevant event (oversized input, key minting)."""
    context = context or {}
    security_logger.warning(
        "%s: %s %s",
        event,
        message,
        " ".join(f"{k}={v}" for k, v in sorted(context.items())),
        extra={"event": event, **{f"ctx_{k}": v for k, v in context.items()}},
    )


def _looks_like_address(client_id: str) -> bool:
    return client_id == "unknown" or any(c in client_id for c in ".:")
