"""
Error envelope shared by middleware denials, exception handlers and the
route class:

    {"error": <code>, "message": <text>, [extra fields], "request_id": <id>}
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from lintgate.exceptions import LintgateError, RateLimitExceededError
from lintgate.middleware.request_id import request_id_var


def error_response(
    status_code: int,
    error: str,
    message: str,
    headers: Optional[Dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    content.update({k: v for k, v in extra.items() if v is not None})
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def error_response_for(exc: LintgateError, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """Envelope for a domain exception. `exc.context` stays server-side."""
    if isinstance(exc, RateLimitExceededError):
        headers = {**(headers or {}), "Retry-After": str(exc.retry_after)}
        return error_response(
            exc.status_code, exc.error_code, exc.message, headers=headers, retry_after=exc.retry_after
        )
    return error_response(exc.status_code, exc.error_code, exc.message, headers=headers)
