"""
Lintgate Backend: Analysis Service (Business Logic Orchestrator)
=================================================================

What:  Coordinates the validate → fingerprint → cache → engine workflow
       behind POST /analyze.
How:   Composes an AnalysisEngine and a ResultCache handed in by
       create_app(). Holds no per-request state.
Who:   Called by the /analyze route handler.

Orchestration Flow:
    ┌──────────┐    ┌─────────────┐    ┌─────────────┐    ┌──────────┐
    │ Validate │───▶│ Fingerprint │───▶│ Cache get() │───▶│  Engine  │
    │ sanitize │    │  (sha256)   │    │  hit → done │    │  → set() │
    └──────────┘    └─────────────┘    └─────────────┘    └──────────┘

    A failed cache write is logged and ignored: the caller still gets the
    report, the next identical request simply runs the engine again.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from lintgate.exceptions import ValidationError
from lintgate.schemas.api import AnalysisOptions
from lintgate.security_log import log_security_event
from lintgate.services.analyzer_base import AnalysisEngine
from lintgate.services.cache_service import ResultCache

logger = logging.getLogger(__name__)

STANDARD_STRIP = re.compile(r"[^A-Za-z0-9_\-/]")
PHP_VERSION_STRIP = re.compile(r"[^0-9.\-,]")
COMPATIBILITY_STANDARDS = ("phpcompatibility", "php-compatibility")


@dataclass
class AnalysisOutcome:
    report: Dict[str, Any]
    cached: bool


class AnalysisService:
    """Business logic for code analysis requests."""

    def __init__(
        self,
        engine: AnalysisEngine,
        cache: ResultCache,
        default_standard: str = "PSR12",
        max_code_size: int = 1_000_000,
    ):
        self.engine = engine
        self.cache = cache
        self.default_standard = default_standard
        self.max_code_size = max_code_size

    # ── Input sanitation ──────────────────────────────────────────────────

    def check_size(self, code: str, client_ip: str = "unknown") -> None:
        size = len(code.encode("utf-8"))
        if size > self.max_code_size:
            log_security_event(
                "dos_attempt",
                "Code exceeds maximum size limit",
                {"size": size, "limit": self.max_code_size, "ip": client_ip},
            )
            raise ValidationError(
                message=f"Code exceeds maximum size limit ({self.max_code_size} bytes)",
                field="code",
                context={"size": size},
            )

    def sanitize_standard(self, standard: Optional[str]) -> str:
        if standard is None:
            return self.default_standard
        cleaned = STANDARD_STRIP.sub("", standard)
        if not cleaned:
            raise ValidationError(
                message="Invalid coding standard name",
                field="standard",
                context={"submitted": standard[:100]},
            )
        return cleaned

    @staticmethod
    def sanitize_php_version(php_version: Optional[str]) -> Optional[str]:
        if php_version is None:
            return None
        return PHP_VERSION_STRIP.sub("", php_version) or None

    # ── Workflow ──────────────────────────────────────────────────────────

    async def analyze(
        self,
        code: str,
        standard: Optional[str] = None,
        php_version: Optional[str] = None,
        options: Optional[AnalysisOptions] = None,
        client_ip: str = "unknown",
    ) -> AnalysisOutcome:
        """
        Analyze `code`, serving from the cache when an identical request was
        analyzed within the TTL.

        Raises:
            ValidationError:      Oversized code or unusable standard name.
            UpstreamFailureError: The engine failed (propagated unchanged).
        """
        self.check_size(code, client_ip)
        standard = self.sanitize_standard(standard)
        php_version = self.sanitize_php_version(php_version)
        flags = (options or AnalysisOptions()).as_dict()

        if php_version and any(name in standard.lower() for name in COMPATIBILITY_STANDARDS):
            logger.info(
                "PHP version compatibility testing requested (standard=%s, php_version=%s, ip=%s)",
                standard,
                php_version,
                client_ip,
            )

        key = self.cache.fingerprint(code, standard, php_version, flags)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit %s", key[:12])
            return AnalysisOutcome(report=cached, cached=True)

        report = await self.engine.analyze(code, standard, php_version, flags)

        if not await self.cache.set(key, report):
            if self.cache.enabled:
                logger.warning("Result for %s was not cached", key[:12])

        return AnalysisOutcome(report=report, cached=False)
