"""
Lintgate Backend: Analysis Service Unit Tests
==============================================

What:  Tests for the validate → fingerprint → cache → engine workflow.
How:   Uses the FakeEngine from conftest and a real ResultCache in tmp_path.

What we test:
    ✅ Cache miss runs the engine, identical request is a cache hit
    ✅ Oversized code is rejected before the engine runs
    ✅ Standard and PHP version sanitation
    ✅ Unknown options are dropped before they reach the engine
    ✅ Engine failures propagate unchanged and are not cached
"""

import pytest

from lintgate.config import CacheSettings
from lintgate.exceptions import UpstreamFailureError, ValidationError
from lintgate.schemas.api import AnalysisOptions, AnalyzeRequest
from lintgate.services.analysis_service import AnalysisService
from lintgate.services.cache_service import ResultCache


@pytest.fixture
def service(tmp_path, fake_engine):
    cache = ResultCache(CacheSettings(directory=str(tmp_path / "cache")))
    return AnalysisService(fake_engine, cache, default_standard="PSR12", max_code_size=1024)


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, service, fake_engine):
        first = await service.analyze("<?php echo 1;")
        second = await service.analyze("<?php echo 1;")

        assert first.cached is False
        assert second.cached is True
        assert second.report == first.report
        assert len(fake_engine.calls) == 1
        assert fake_engine.calls[0]["standard"] == "PSR12"

    @pytest.mark.asyncio
    async def test_different_options_miss(self, service, fake_engine):
        await service.analyze("<?php", options=AnalysisOptions(severity=5))
        await service.analyze("<?php", options=AnalysisOptions(severity=3))
        assert len(fake_engine.calls) == 2

    @pytest.mark.asyncio
    async def test_oversized_code_rejected(self, service, fake_engine):
        with pytest.raises(ValidationError) as exc_info:
            await service.analyze("x" * 1025)
        assert exc_info.value.field == "code"
        assert fake_engine.calls == []

    @pytest.mark.asyncio
    async def test_size_is_measured_in_utf8_bytes(self, service):
        # 400 characters, 1200 bytes
        with pytest.raises(ValidationError):
            await service.analyze("€" * 400)

    @pytest.mark.asyncio
    async def test_standard_is_sanitized(self, service, fake_engine):
        await service.analyze("<?php", standard="PSR12; rm -rf /")
        assert fake_engine.calls[0]["standard"] == "PSR12rm-rf/"

    @pytest.mark.asyncio
    async def test_standard_empty_after_sanitizing(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.analyze("<?php", standard="$$$")
        assert exc_info.value.field == "standard"

    @pytest.mark.asyncio
    async def test_php_version_is_sanitized(self, service, fake_engine):
        await service.analyze("<?php", standard="PHPCompatibility", php_version="7.4 - 8.1; x")
        assert fake_engine.calls[0]["php_version"] == "7.4-8.1"

    @pytest.mark.asyncio
    async def test_engine_failure_propagates_and_is_not_cached(self, service, fake_engine):
        fake_engine.failure = UpstreamFailureError()
        with pytest.raises(UpstreamFailureError):
            await service.analyze("<?php")

        fake_engine.failure = None
        outcome = await service.analyze("<?php")
        assert outcome.cached is False


class TestOptions:
    def test_unknown_keys_are_dropped(self):
        request = AnalyzeRequest.model_validate(
            {
                "code": "<?php",
                "options": {"severity": 5, "report": "full", "bootstrap": "/etc/passwd"},
            }
        )
        assert request.options.as_dict() == {"severity": 5}

    def test_wire_names_and_lists(self):
        options = AnalysisOptions.model_validate(
            {"tab-width": 4, "error-severity": 3, "sniffs": ["PSR1.Files.SideEffects", "Generic.PHP.Syntax"]}
        )
        assert options.as_dict() == {
            "error-severity": 3,
            "sniffs": "PSR1.Files.SideEffects,Generic.PHP.Syntax",
            "tab-width": 4,
        }

    def test_rejects_unsafe_list_entries(self):
        with pytest.raises(ValueError):
            AnalysisOptions.model_validate({"exclude": "Foo;echo"})
