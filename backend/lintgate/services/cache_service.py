"""
Lintgate Backend: Result Cache
===============================

What:  Content-addressed, TTL-bounded cache of analysis reports on disk.
How:   The key is a SHA-256 fingerprint of everything that influences a
       report (source text, standard, PHP version pin, options). Each entry
       is one JSON file, `<directory>/<key>.json`; its modification time is
       the write timestamp used for expiry.
Who:   AnalysisService reads before every engine call and writes after every
       successful one; the /cache routes clear and inspect it.

Entry lifecycle:
    set()  → file written to a temp name, then os.replace() onto the key
    get()  → fresh entry returned; expired or undecodable entry removed
    clear()→ every entry removed

Why file-per-entry: writes to different keys never touch the same file, and
os.replace() means a reader sees either the old report or the new one.
"""

import hashlib
import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles

from lintgate.config import CacheSettings

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"


class ResultCache:
    """File-backed report cache."""

    def __init__(self, settings: CacheSettings):
        self.enabled = settings.enabled
        self.ttl = settings.ttl
        self.directory = Path(settings.directory)
        if self.enabled:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                # get/set degrade to misses and failed writes; stats reports it
                logger.error("Cache directory %s is not usable: %s", self.directory, str(e))

    # ── Keys ──────────────────────────────────────────────────────────────

    @staticmethod
    def fingerprint(
        code: str,
        standard: str,
        php_version: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Stable key for one analysis request.

        Option order never matters (keys are sorted before hashing); a change
        to any field produces a different key.
        """
        canonical = json.dumps(
            {
                "code": code,
                "standard": standard,
                "php_version": php_version,
                "options": options or {},
            },
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def _entry_path(self, key: str) -> Path:
        return self.directory / f"{key}{ENTRY_SUFFIX}"

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached report, or None on a miss."""
        if not self.enabled:
            return None

        path = self._entry_path(key)
        try:
            written_at = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cache stat failed for %s: %s", path.name, str(e))
            return None

        if time.time() - written_at > self.ttl:
            logger.debug("Cache entry %s expired", key[:12])
            self._remove(path)
            return None

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cache read failed for %s: %s", path.name, str(e))
            return None

        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Removing undecodable cache entry %s", path.name)
            self._remove(path)
            return None

    # ── Writes ────────────────────────────────────────────────────────────

    async def set(self, key: str, report: Any) -> bool:
        """Store a report, replacing any previous entry for the key."""
        if not self.enabled:
            return False

        path = self._entry_path(key)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            payload = json.dumps(report, ensure_ascii=False)
            self.directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Cache write failed for %s: %s", path.name, str(e))
            self._remove(tmp_path)
            return False
        return True

    def clear(self) -> bool:
        """Remove every entry. False when disabled or the directory is gone."""
        if not self.enabled or not self.directory.is_dir():
            return False

        success = True
        for entry in self.directory.glob(f"*{ENTRY_SUFFIX}"):
            try:
                entry.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Could not remove cache entry %s: %s", entry.name, str(e))
                success = False
        return success

    def stats(self) -> Dict[str, Any]:
        """Entry count, total size in bytes, and oldest/newest write times."""
        if not self.enabled or not self.directory.is_dir():
            return {"enabled": False, "count": 0, "size": 0, "oldest": None, "newest": None}

        count = 0
        size = 0
        oldest: Optional[int] = None
        newest: Optional[int] = None
        for entry in self.directory.glob(f"*{ENTRY_SUFFIX}"):
            try:
                st = entry.stat()
            except FileNotFoundError:
                continue
            count += 1
            size += st.st_size
            mtime = int(st.st_mtime)
            oldest = mtime if oldest is None else min(oldest, mtime)
            newest = mtime if newest is None else max(newest, mtime)

        return {"enabled": True, "count": count, "size": size, "oldest": oldest, "newest": newest}

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path.name, str(e))
