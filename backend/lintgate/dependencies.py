"""
Lintgate Backend: Service Wiring
=================================

What:  Builds the long-lived service objects from Settings and exposes them
       to route handlers through FastAPI dependency injection.
How:   `build_services()` is called once by create_app(); the result lives
       on `app.state.services` and `get_services()` hands it to handlers.
       Nothing is module-global, so every app instance (and every test) gets
       its own credential file, cache directory and rate limit counters.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from lintgate.config import Settings
from lintgate.services.analysis_service import AnalysisService
from lintgate.services.analyzer_base import AnalysisEngine
from lintgate.services.authenticator import Authenticator
from lintgate.services.cache_service import ResultCache
from lintgate.services.credential_store import CredentialStore
from lintgate.services.phpcs_service import PhpcsEngine
from lintgate.services.rate_limiter import RateLimiter


@dataclass
class Services:
    settings: Settings
    credential_store: CredentialStore
    authenticator: Authenticator
    rate_limiter: RateLimiter
    cache: ResultCache
    engine: AnalysisEngine
    analysis: AnalysisService
    started_at: float = field(default_factory=time.time)


def build_services(settings: Settings, engine: Optional[AnalysisEngine] = None) -> Services:
    """
    Args:
        settings: Frozen application settings.
        engine:   Analysis engine override (tests pass a fake); defaults to
                  PhpcsEngine built from `settings.analyzer`.
    """
    credential_store = CredentialStore.from_file(
        settings.auth.keys_file, default_scopes=settings.auth.default_scopes
    )
    cache = ResultCache(settings.cache)
    engine = engine or PhpcsEngine(settings.analyzer)

    return Services(
        settings=settings,
        credential_store=credential_store,
        authenticator=Authenticator(credential_store),
        rate_limiter=RateLimiter(settings.rate_limit),
        cache=cache,
        engine=engine,
        analysis=AnalysisService(
            engine,
            cache,
            default_standard=settings.analyzer.default_standard,
            max_code_size=settings.max_code_size,
        ),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
