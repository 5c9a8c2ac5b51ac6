"""
Lintgate Backend: Application Configuration
============================================

What:  Typed, immutable configuration loaded from environment variables.
How:   Pydantic Settings reads the environment (or a .env file), validates
       types and ranges, and produces a frozen `Settings` object. Each
       component receives the slice it needs at construction time.
Who:   Built once by `create_app()` (or `get_settings()` for the server and
       CLI entry points); never mutated afterwards.

Nested groups are addressed with a double underscore in the environment:

    AUTH__ENABLED=false
    RATE_LIMIT__REQUESTS_PER_MINUTE=120
    CORS__ALLOWED_ORIGINS='["https://app.example.com"]'
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class AuthSettings(BaseModel):
    """API key authentication and path protection rules."""

    model_config = {"frozen": True}

    enabled: bool = True

    # What: JSON file holding every issued credential, keyed by token
    keys_file: str = Field(default="./data/api_keys.json")

    # Exact paths, or prefixes ending in "*" (e.g. "/cache/*")
    protected_paths: List[str] = Field(
        default_factory=lambda: ["/analyze", "/standards", "/cache/*"]
    )

    # Scope a credential must hold for a path; exact entries win over wildcards
    path_scopes: Dict[str, str] = Field(
        default_factory=lambda: {
            "/analyze": "analyze",
            "/standards": "standards",
            "/cache/*": "admin",
        }
    )

    # Scopes granted to newly generated keys when the caller names none
    default_scopes: List[str] = Field(default_factory=lambda: ["analyze", "standards"])


class RateLimitSettings(BaseModel):
    """
    Fixed-window rate limit ceilings.

    A ceiling of 0 disables that window. The auth_* pair applies instead of
    the general pair when the request path matches `auth_paths`.
    """

    model_config = {"frozen": True}

    enabled: bool = True
    requests_per_minute: int = Field(default=60, ge=0)
    requests_per_hour: int = Field(default=1000, ge=0)
    auth_requests_per_minute: int = Field(default=10, ge=0)
    auth_requests_per_hour: int = Field(default=100, ge=0)
    auth_paths: List[str] = Field(default_factory=lambda: ["/keys/*"])


class CorsSettings(BaseModel):
    """Cross-origin negotiation policy applied by the security stage."""

    model_config = {"frozen": True}

    enabled: bool = True
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    allowed_methods: List[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allowed_headers: List[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization", "X-API-Key"]
    )
    expose_headers: List[str] = Field(
        default_factory=lambda: ["X-Request-ID", "Retry-After"]
    )
    max_age: Optional[int] = Field(default=86400, ge=0)
    allow_credentials: bool = False


class CacheSettings(BaseModel):
    """On-disk result cache."""

    model_config = {"frozen": True}

    enabled: bool = True
    directory: str = Field(default="./cache")
    # Seconds an entry stays fresh, measured from its file modification time
    ttl: int = Field(default=3600, ge=1)


class AnalyzerSettings(BaseModel):
    """How the PHP_CodeSniffer binary is invoked."""

    model_config = {"frozen": True}

    phpcs_path: str = Field(default="phpcs")
    default_standard: str = Field(default="PSR12")
    # Upper bound on a single phpcs run, in seconds
    timeout: float = Field(default=30.0, gt=0, le=600)
    temp_dir: Optional[str] = Field(default=None)


def _default_security_headers() -> Dict[str, str]:
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Content-Security-Policy": (
            "default-src 'self'; script-src 'self'; object-src 'none'; frame-ancestors 'none'"
        ),
    }


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development-friendly defaults. Production deployments
    should set ENVIRONMENT=production (which disables key minting over HTTP)
    and restrict CORS__ALLOWED_ORIGINS.
    """

    # ── Application ───────────────────────────────────────────────────────
    app_name: str = Field(default="Lintgate")
    environment: str = Field(default="development")

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)

    # What: Largest accepted source submission, in UTF-8 bytes (default 1MB)
    max_code_size: int = Field(default=1_000_000, ge=1_024, le=10_000_000)

    # ── Component groups ──────────────────────────────────────────────────
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    analyzer: AnalyzerSettings = Field(default_factory=AnalyzerSettings)
    security_headers: Dict[str, str] = Field(default_factory=_default_security_headers)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "frozen": True,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings for the server and CLI entry points."""
    return Settings()
