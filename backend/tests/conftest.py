"""
Lintgate Backend: Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own Settings pointing at tmp_path (credential
       file, cache directory, engine temp dir), a fake analysis engine, and
       a freshly built app. Nothing touches the real phpcs binary.

Fixture Hierarchy (all function-scoped):
    make_settings ─┬─ settings ─┬─ app ─┬─ client
                   │            │       └─ services ─┬─ api_key
                   │            │                    └─ admin_key
    fake_engine ───┘────────────┘
"""

import os
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from lintgate.config import AnalyzerSettings, AuthSettings, CacheSettings, Settings
from lintgate.exceptions import UpstreamFailureError
from lintgate.main import create_app
from lintgate.services.analyzer_base import AnalysisEngine

os.environ.setdefault("LOG_LEVEL", "WARNING")


SAMPLE_REPORT: Dict[str, Any] = {
    "totals": {"errors": 1, "warnings": 0, "fixable": 1},
    "files": {
        "/tmp/phpcs_test.php": {
            "errors": 1,
            "warnings": 0,
            "messages": [
                {
                    "message": "Expected 1 blank line at end of file; 0 found",
                    "source": "PSR2.Files.EndFileNewline.NoneFound",
                    "severity": 5,
                    "fixable": True,
                    "type": "ERROR",
                    "line": 1,
                    "column": 18,
                }
            ],
        }
    },
}


class FakeEngine(AnalysisEngine):
    """
    In-memory stand-in for PhpcsEngine.

    Records every analyze() call. Set `failure` to an exception instance to
    make the next calls raise it; set `engine_version` to "unknown" to
    simulate an unreachable binary.
    """

    def __init__(self):
        self.calls: List[Dict[str, Any]] = []
        self.report: Dict[str, Any] = SAMPLE_REPORT
        self.standards: List[str] = ["PEAR", "PSR1", "PSR2", "PSR12"]
        self.engine_version = "3.9.0"
        self.failure: Optional[Exception] = None

    async def analyze(self, code, standard, php_version=None, options=None):
        self.calls.append(
            {"code": code, "standard": standard, "php_version": php_version, "options": options}
        )
        if self.failure is not None:
            raise self.failure
        return self.report

    async def list_standards(self):
        if self.failure is not None:
            raise UpstreamFailureError()
        return list(self.standards)

    async def version(self):
        return self.engine_version


# ══════════════════════════════════════════════════════════════════════════
# Settings and services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_settings(tmp_path):
    """
    Factory for Settings rooted in tmp_path.

    Usage:
        settings = make_settings(rate_limit=RateLimitSettings(requests_per_minute=2))
    """

    def _make(**overrides) -> Settings:
        values: Dict[str, Any] = {
            "environment": "development",
            "log_level": "WARNING",
            "auth": AuthSettings(keys_file=str(tmp_path / "data" / "api_keys.json")),
            "cache": CacheSettings(directory=str(tmp_path / "cache")),
            "analyzer": AnalyzerSettings(temp_dir=str(tmp_path / "phpcs")),
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def app(settings, fake_engine):
    return create_app(settings=settings, engine=fake_engine)


@pytest.fixture
def make_app(make_settings, fake_engine):
    """Factory for an app with overridden settings; shares fake_engine."""

    def _make(**overrides):
        return create_app(settings=make_settings(**overrides), engine=fake_engine)

    return _make


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
def api_key(services) -> str:
    """A key holding the default analyze + standards scopes."""
    return services.credential_store.generate({"name": "test client"})


@pytest.fixture
def admin_key(services) -> str:
    return services.credential_store.generate(
        {"name": "test admin", "scopes": ["analyze", "standards", "admin"]}
    )


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
