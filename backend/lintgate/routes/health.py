"""
Lintgate Backend: Health Check Route
=====================================

What:  Public liveness/readiness endpoint for load balancers and monitoring.
How:   Probes the analysis engine with a version query and reports cache
       statistics. The API answers 200 either way:
           healthy:   the engine reported its version
           degraded:  the engine could not be queried (analysis will fail)
Who:   Docker health checks, load balancers, on-call humans.
"""

import asyncio
import logging
import time

from fastapi import APIRouter, Depends

from lintgate import __version__
from lintgate.dependencies import Services, get_services
from lintgate.routing import GuardedRoute
from lintgate.schemas.api import CacheStats, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"], route_class=GuardedRoute)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(services: Services = Depends(get_services)) -> HealthResponse:
    engine_version = await services.engine.version()
    cache_stats = await asyncio.to_thread(services.cache.stats)
    status = "healthy"
    if engine_version == "unknown":
        status = "degraded"
        logger.warning("Health check: analysis engine did not report a version")

    now = time.time()
    return HealthResponse(
        status=status,
        version=__version__,
        engine_version=engine_version,
        timestamp=int(now),
        uptime_seconds=round(now - services.started_at, 2),
        cache=CacheStats(**cache_stats),
    )
