"""
Lintgate Backend: Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the HTTP contract of the API.
How:   FastAPI validates request bodies against these models, serializes
       responses through them, and generates the OpenAPI document from them.
Who:   Route handlers (request/response types) and AnalysisService
       (`AnalysisOptions`, the only client-controlled input that reaches the
       engine's command line).
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AnalysisOptions(BaseModel):
    """
    Engine options a client may set.

    Only the fields below are accepted; anything else in the submitted
    `options` object is dropped before fingerprinting and before the command
    line is built. Field names use the engine's own spelling (`tab-width`)
    on the wire.
    """

    severity: Optional[int] = Field(default=None, ge=0, le=10)
    error_severity: Optional[int] = Field(default=None, ge=0, le=10, alias="error-severity")
    warning_severity: Optional[int] = Field(default=None, ge=0, le=10, alias="warning-severity")
    tab_width: Optional[int] = Field(default=None, ge=0, le=32, alias="tab-width")
    encoding: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9_\-]+$", max_length=32)
    extensions: Optional[Union[str, List[str]]] = None
    sniffs: Optional[Union[str, List[str]]] = None
    exclude: Optional[Union[str, List[str]]] = None

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @field_validator("extensions", "sniffs", "exclude")
    @classmethod
    def normalize_list(cls, v: Optional[Union[str, List[str]]]) -> Optional[str]:
        """Lists become the engine's comma form; only sniff-name characters survive."""
        if v is None:
            return None
        items = v.split(",") if isinstance(v, str) else v
        cleaned = []
        for item in items:
            item = str(item).strip()
            if not item:
                continue
            if not all(c.isalnum() or c in "._-/" for c in item):
                raise ValueError(f"Invalid entry '{item}'")
            cleaned.append(item)
        return ",".join(cleaned) or None

    def as_dict(self) -> Dict[str, Any]:
        """Set options keyed by engine flag name, in a stable order."""
        return dict(sorted(self.model_dump(by_alias=True, exclude_none=True).items()))


class AnalyzeRequest(BaseModel):
    """Body of POST /analyze."""

    code: str = Field(description="PHP source to analyze")
    standard: Optional[str] = Field(default=None, description="Coding standard, default PSR12")
    php_version: Optional[str] = Field(
        default=None,
        alias="phpVersion",
        description="PHP version pin for PHPCompatibility (e.g. '7.4' or '7.0-8.1')",
    )
    options: Optional[AnalysisOptions] = Field(
        default=None, description="Engine options; null or absent means engine defaults"
    )

    model_config = {"populate_by_name": True}


class KeyGenerateRequest(BaseModel):
    """Body of POST /keys/generate. Every field is optional."""

    name: Optional[str] = Field(default=None, max_length=200)
    scopes: Optional[List[str]] = None
    expires: Optional[int] = Field(default=None, description="Expiry (epoch seconds)")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AnalyzeResponse(BaseModel):
    success: bool = True
    cached: bool = Field(description="True when served from the result cache")
    results: Dict[str, Any] = Field(description="The engine's JSON report")


class StandardsResponse(BaseModel):
    success: bool = True
    standards: List[str]


class CacheStats(BaseModel):
    enabled: bool
    count: int
    size: int = Field(description="Total size of all entries in bytes")
    oldest: Optional[int] = Field(default=None, description="Oldest write (epoch seconds)")
    newest: Optional[int] = Field(default=None, description="Newest write (epoch seconds)")


class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: CacheStats


class CacheClearResponse(BaseModel):
    success: bool
    message: str
    items_cleared: int


class KeyGenerateResponse(BaseModel):
    success: bool = True
    key: str = Field(description="The new API key. Shown once; store it securely.")
    data: Dict[str, Any]


class HealthResponse(BaseModel):
    """
    Returned by GET /health.

    `status` is "healthy" when the engine answers a version probe and
    "degraded" when it does not; the API itself is up either way.
    """

    status: str
    version: str
    engine_version: str
    timestamp: int
    uptime_seconds: float
    cache: CacheStats


class ErrorResponse(BaseModel):
    """
    Error envelope shared by every non-2xx response.

    Example:
        {
            "error": "rate_limit_exceeded",
            "message": "You have exceeded the 60 requests per minute rate limit.",
            "retry_after": 42,
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    retry_after: Optional[int] = Field(default=None, description="Seconds to wait (429 only)")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
