"""
Lintgate Backend: Key/Value Tables
===================================

What:  A small get/set/delete interface over process-local tables, with an
       optional durable mirror in a JSON file.
How:   `MemoryStore` keeps a plain dict. Writers serialize on a lock;
       readers never lock. `JsonFileStore` switches to copy-on-write: a write
       builds a new dict, persists it (temp file + os.replace), and only then
       publishes it, so readers see either the old or the new snapshot and
       never a half-applied change.
Who:   The rate limiter keeps its window tables in `MemoryStore`; the
       credential store keeps issued keys in `JsonFileStore`. Tests can pass a
       `MemoryStore` anywhere a store is expected to avoid disk I/O.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Contract shared by every table implementation."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Store a value. Returns False if the write could not be made durable."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns False if the key was absent or the write failed."""
        ...

    @abstractmethod
    def items(self) -> Iterator[Tuple[str, Any]]:
        """Iterate over a point-in-time view of the table."""
        ...

    def __contains__(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        return sum(1 for _ in self.items())


class MemoryStore(KeyValueStore):
    """In-process table. Writes are serialized, reads are lock-free."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self._write_lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        with self._write_lock:
            self._data[key] = value
        return True

    def setdefault(self, key: str, value: Any) -> Any:
        """Insert `value` only if `key` is absent; return whatever is stored."""
        with self._write_lock:
            return self._data.setdefault(key, value)

    def delete(self, key: str) -> bool:
        with self._write_lock:
            return self._data.pop(key, None) is not None

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._data.items()))


class JsonFileStore(KeyValueStore):
    """
    Table mirrored to a single JSON file.

    Loading:
        Lazy. The file is read on first access and the parsed dict is kept for
        the lifetime of the process. A missing file is an empty table. An
        unreadable or corrupt file is logged and read as empty, but the store
        is marked unloaded: writes are refused (return False) until the file
        loads cleanly, so the records on disk are never overwritten.

    Writing:
        Serialized per instance. The new snapshot is written to
        `<file>.tmp`, chmod'ed to 0640, and atomically renamed over the
        target. The in-memory snapshot changes only after the rename
        succeeds; on failure the previous snapshot stays authoritative and the
        write returns False.
    """

    FILE_MODE = 0o640

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._snapshot: Optional[Dict[str, Any]] = None
        self._load_failed = False
        self._write_lock = threading.Lock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    # ── Reads ─────────────────────────────────────────────────────────────

    def _data(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._write_lock:
            if self._snapshot is None:
                self._snapshot = self._load()
            return self._snapshot

    def _load(self) -> Dict[str, Any]:
        self._load_failed = False
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.error("Could not read %s: %s", self.path, str(e))
            self._load_failed = True
            return {}

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            logger.error("Ignoring corrupt store file %s: %s", self.path, str(e))
            self._load_failed = True
            return {}

        if not isinstance(data, dict):
            logger.error("Ignoring store file %s: top level is not an object", self.path)
            self._load_failed = True
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data().get(key, default)

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(list(self._data().items()))

    # ── Writes ────────────────────────────────────────────────────────────

    def _writable_snapshot(self) -> Optional[Dict[str, Any]]:
        """Current snapshot, reloading a file that failed to load. Caller holds the write lock."""
        if self._snapshot is None or self._load_failed:
            self._snapshot = self._load()
        if self._load_failed:
            logger.error("Refusing to write %s until it loads cleanly", self.path)
            return None
        return self._snapshot

    def set(self, key: str, value: Any) -> bool:
        with self._write_lock:
            current = self._writable_snapshot()
            if current is None:
                return False
            updated = dict(current)
            updated[key] = value
            return self._commit(updated)

    def delete(self, key: str) -> bool:
        with self._write_lock:
            current = self._writable_snapshot()
            if current is None:
                return False
            updated = dict(current)
            if updated.pop(key, None) is None:
                return False
            return self._commit(updated)

    def _commit(self, updated: Dict[str, Any]) -> bool:
        """Persist `updated` and publish it. Caller holds the write lock."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(updated, f, indent=4, sort_keys=True)
            os.chmod(tmp_path, self.FILE_MODE)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to persist %s: %s", self.path, str(e))
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temp file %s", tmp_path)
            return False

        self._snapshot = updated
        return True
