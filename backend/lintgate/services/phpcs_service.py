"""
Lintgate Backend: PHP_CodeSniffer Engine
=========================================

What:  AnalysisEngine implementation that shells out to the `phpcs` binary.
How:   The source is written to a temp file with aiofiles, then
       `phpcs -q --report=json --standard=<s> [flags] <file>` runs via
       asyncio.create_subprocess_exec (argument vector, no shell), bounded by
       `analyzer.timeout`. The temp file is removed whatever the outcome.
Who:   Built once by create_app(); used by AnalysisService, /standards and
       /health.

Exit codes:
    phpcs exits 0 when the file is clean and 1/2 when it found problems, so
    the exit code alone says nothing about failure. The run is a failure
    only when stdout is not a JSON report.

Failure handling:
    Missing binary, timeout, and non-JSON output all raise
    UpstreamFailureError with the command, exit code and an output excerpt
    in the context. Nothing is retried: a deterministic linter that failed
    once will fail again.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles

from lintgate.config import AnalyzerSettings
from lintgate.exceptions import UpstreamFailureError
from lintgate.services.analyzer_base import AnalysisEngine

logger = logging.getLogger(__name__)

STANDARDS_PATTERN = re.compile(r"The installed coding standards are (.+)$", re.MULTILINE)
VERSION_PATTERN = re.compile(r"version (\d+\.\d+\.\d+)")

# Probes (-i, --version) are quick; they get a tighter bound than analysis
PROBE_TIMEOUT = 10.0

OUTPUT_EXCERPT = 500


class PhpcsEngine(AnalysisEngine):
    """
    Runs PHP_CodeSniffer as a subprocess.

    Configuration (AnalyzerSettings):
        phpcs_path: Binary to execute (default: "phpcs" on PATH)
        timeout:    Seconds before a run is killed (default: 30)
        temp_dir:   Where source files are staged (default: <tmp>/lintgate)
    """

    def __init__(self, settings: AnalyzerSettings):
        self.phpcs_path = settings.phpcs_path
        self.timeout = settings.timeout
        self.temp_dir = Path(settings.temp_dir or os.path.join(tempfile.gettempdir(), "lintgate"))
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        logger.info("PhpcsEngine initialized (binary=%s, timeout=%.0fs)", self.phpcs_path, self.timeout)

    def build_command(
        self,
        source_path: str,
        standard: str,
        php_version: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        command = [self.phpcs_path, "-q", "--report=json", f"--standard={standard}"]
        if php_version:
            command += ["--runtime-set", "testVersion", php_version]
        for name, value in (options or {}).items():
            command.append(f"--{name}={value}")
        command.append(source_path)
        return command

    async def analyze(
        self,
        code: str,
        standard: str,
        php_version: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        source_path = self.temp_dir / f"phpcs_{uuid.uuid4().hex}.php"
        try:
            async with aiofiles.open(source_path, "w", encoding="utf-8") as f:
                await f.write(code)

            command = self.build_command(str(source_path), standard, php_version, options)
            returncode, stdout, stderr = await self._run(command, self.timeout)

            try:
                report = json.loads(stdout)
            except json.JSONDecodeError:
                report = None

            if not isinstance(report, dict):
                logger.error(
                    "phpcs produced no report (exit %s): %s",
                    returncode,
                    (stderr or stdout)[:OUTPUT_EXCERPT],
                )
                raise UpstreamFailureError(
                    context={
                        "command": command[:-1],
                        "returncode": returncode,
                        "stdout": stdout[:OUTPUT_EXCERPT],
                        "stderr": stderr[:OUTPUT_EXCERPT],
                    },
                )

            totals = report.get("totals", {})
            logger.info(
                "phpcs %s: %s errors, %s warnings",
                standard,
                totals.get("errors", "?"),
                totals.get("warnings", "?"),
            )
            return report

        except OSError as e:
            logger.error("Could not stage source for phpcs: %s", str(e))
            raise UpstreamFailureError(context={"os_error": str(e)})

        finally:
            try:
                source_path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to remove temp file %s: %s", source_path.name, str(e))

    async def list_standards(self) -> List[str]:
        _, stdout, _ = await self._run([self.phpcs_path, "-i"], PROBE_TIMEOUT)
        return parse_standards(stdout)

    async def version(self) -> str:
        try:
            _, stdout, _ = await self._run([self.phpcs_path, "--version"], PROBE_TIMEOUT)
        except UpstreamFailureError:
            return "unknown"
        match = VERSION_PATTERN.search(stdout)
        return match.group(1) if match else "unknown"

    async def _run(self, command: List[str], timeout: float) -> Tuple[int, str, str]:
        """Execute `command` and return (exit code, stdout, stderr)."""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error("Cannot execute %s: %s", self.phpcs_path, str(e))
            raise UpstreamFailureError(
                message="The code analysis engine is not available.",
                context={"binary": self.phpcs_path, "error": str(e)},
            )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error("phpcs timed out after %.0fs", timeout)
            raise UpstreamFailureError(
                message="Code analysis timed out. Try a smaller input.",
                context={"timeout": timeout},
            )

        return (
            process.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )


def parse_standards(output: str) -> List[str]:
    """
    Parse `phpcs -i` output.

    >>> parse_standards("The installed coding standards are PEAR, PSR2 and PSR12")
    ['PEAR', 'PSR2', 'PSR12']
    """
    match = STANDARDS_PATTERN.search(output)
    if not match:
        return []
    names = re.split(r",|\s+and\s+", match.group(1).strip())
    return [name.strip() for name in names if name.strip()]
