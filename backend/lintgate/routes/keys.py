"""
Lintgate Backend: API Key Minting Route
========================================

What:  POST /keys/generate mints a new API key.
How:   Unauthenticated, but only in non-production environments: with
       ENVIRONMENT=production the route answers 404 exactly like an unknown
       path. The auth-sensitive rate limit policy applies (`/keys/*`).
       Production keys are issued with the `lintgate-keys` CLI instead.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from lintgate.dependencies import Services, get_services
from lintgate.exceptions import NotFoundError
from lintgate.routing import GuardedRoute
from lintgate.schemas.api import ErrorResponse, KeyGenerateRequest, KeyGenerateResponse
from lintgate.security_log import log_security_event, mask_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/keys", tags=["Keys"], route_class=GuardedRoute)


@router.post(
    "/generate",
    response_model=KeyGenerateResponse,
    summary="Generate an API key (non-production only)",
    responses={
        404: {"model": ErrorResponse, "description": "Disabled in production"},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse, "description": "Key could not be stored"},
    },
)
async def generate_key(
    request: Request,
    body: Optional[KeyGenerateRequest] = Body(default=None),
    services: Services = Depends(get_services),
) -> KeyGenerateResponse:
    if services.settings.is_production:
        raise NotFoundError(resource="route", context={"path": request.url.path})

    body = body or KeyGenerateRequest()
    data: Dict[str, Any] = {
        "name": body.name or f"API Key {datetime.now(timezone.utc):%Y-%m-%d %H:%M:%S}",
        "scopes": body.scopes if body.scopes is not None else list(services.settings.auth.default_scopes),
    }
    if body.expires:
        data["expires"] = body.expires

    store = services.credential_store
    key = store.generate(data)
    credential = store.lookup(key)

    client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
    log_security_event(
        "api_key_generated",
        "API key generated over HTTP",
        {
            "key_prefix": mask_token(key),
            "name": data["name"],
            "scopes": ",".join(data["scopes"]),
            "ip": client_ip,
        },
    )

    return KeyGenerateResponse(
        success=True,
        key=key,
        data=credential.model_dump() if credential else data,
    )
