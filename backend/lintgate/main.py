"""
Lintgate Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds the services from Settings,
       composes the middleware pipeline, registers exception handlers and
       mounts the routers.
Who:   uvicorn (`lintgate-server`, or `uvicorn lintgate.main:create_app
       --factory`) and the test suite.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Pipeline:                                                │
    │  ┌──────────┐ ┌────────────┐ ┌──────────┐ ┌──────────┐   │
    │  │ Req ID   │→│ Access log │→│ Security │→│   Auth   │   │
    │  └──────────┘ └────────────┘ └──────────┘ └──────────┘   │
    │                                                           │
    │  Routes (GuardedRoute):                                   │
    │    POST /analyze       GET /standards    GET /health      │
    │    POST /cache/clear   GET /cache/stats                   │
    │    POST /keys/generate                                    │
    │                                                           │
    │  Exception Handlers:                                      │
    │    LintgateError → own status   validation → 400          │
    │    404 / 405 → 404 not_found                              │
    └───────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lintgate import __version__
from lintgate.config import Settings, get_settings
from lintgate.dependencies import build_services
from lintgate.exceptions import LintgateError
from lintgate.middleware.request_id import RequestIdFilter, request_id_var
from lintgate.pipeline import build_middleware
from lintgate.responses import error_response, error_response_for
from lintgate.routes import analyze, cache, health, keys
from lintgate.security_log import security_logger
from lintgate.services.analyzer_base import AnalysisEngine

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s

    The security logger is pinned at INFO so authentication and rate limit
    records are kept even when LOG_LEVEL is WARNING or quieter.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    security_logger.setLevel(logging.INFO)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    services = app.state.services

    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("%s %s starting up (environment=%s)", settings.app_name, __version__, settings.environment)
    logger.info("Analysis engine: %s", await services.engine.version())
    logger.info(
        "Auth %s, rate limiting %s, cache %s",
        "on" if settings.auth.enabled else "OFF",
        "on" if settings.rate_limit.enabled else "OFF",
        f"on ({settings.cache.directory}, ttl={settings.cache.ttl}s)" if settings.cache.enabled else "off",
    )
    if not settings.is_production:
        logger.warning("POST /keys/generate is enabled; set ENVIRONMENT=production to disable it")
    logger.info("=" * 60)

    yield

    logger.info("%s shutting down", settings.app_name)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map raised exceptions to the JSON error envelope.

        LintgateError subclasses → their own status_code / error_code
        RequestValidationError   → 400 validation_error
        404 / 405 from routing   → 404 not_found

    Context attached to domain exceptions is logged, never returned.
    """

    @app.exception_handler(LintgateError)
    async def handle_lintgate_error(request: Request, exc: LintgateError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        return error_response_for(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", message)
        logger.warning("[%s] Request validation failed: %s", request_id_var.get(""), message)
        return error_response(400, "validation_error", message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return error_response(404, "not_found", "The requested endpoint does not exist")
        return error_response(
            exc.status_code,
            "http_error",
            str(exc.detail),
            headers=getattr(exc, "headers", None),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AnalysisEngine] = None,
) -> FastAPI:
    """
    Build a fully wired application.

    Args:
        settings: Configuration; defaults to the environment via get_settings().
        engine:   Analysis engine override; defaults to PhpcsEngine.
    """
    settings = settings or get_settings()
    services = build_services(settings, engine)

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "PHP_CodeSniffer as a service: authenticated, rate limited, "
            "cached static analysis of PHP source."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        middleware=build_middleware(settings, services),
    )
    app.state.settings = settings
    app.state.services = services

    register_exception_handlers(app)

    app.include_router(analyze.router)
    app.include_router(cache.router)
    app.include_router(keys.router)
    app.include_router(health.router)

    return app


def run() -> None:
    """Console entry point: `lintgate-server`."""
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "lintgate.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
