"""
Lintgate Backend: Cache Administration Routes
==============================================

What:  POST /cache/clear and GET /cache/stats, both requiring the `admin`
       scope (enforced by the auth stage via `auth.path_scopes`).
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from lintgate.dependencies import Services, get_services
from lintgate.routing import GuardedRoute
from lintgate.schemas.api import CacheClearResponse, CacheStats, CacheStatsResponse, ErrorResponse
from lintgate.security_log import mask_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cache",
    tags=["Cache"],
    route_class=GuardedRoute,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse, "description": "Key lacks the 'admin' scope"},
    },
)


@router.post("/clear", response_model=CacheClearResponse, summary="Clear the result cache")
async def clear_cache(
    request: Request,
    services: Services = Depends(get_services),
) -> CacheClearResponse:
    before = await asyncio.to_thread(services.cache.stats)
    success = await asyncio.to_thread(services.cache.clear)
    items_cleared = before["count"] if success else 0

    logger.info(
        "Cache cleared by admin key %s: %d entries, %d bytes (success=%s)",
        mask_token(getattr(request.state, "api_key", None)),
        items_cleared,
        before["size"],
        success,
    )
    return CacheClearResponse(
        success=success,
        message="Cache cleared successfully" if success else "Failed to clear cache",
        items_cleared=items_cleared,
    )


@router.get("/stats", response_model=CacheStatsResponse, summary="Result cache statistics")
async def cache_stats(services: Services = Depends(get_services)) -> CacheStatsResponse:
    stats = await asyncio.to_thread(services.cache.stats)
    return CacheStatsResponse(success=True, stats=CacheStats(**stats))
