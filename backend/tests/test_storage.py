"""
Lintgate Backend: Key/Value Store Tests
========================================

What we test:
    ✅ MemoryStore get/set/delete/setdefault semantics
    ✅ JsonFileStore persists across instances and restricts file mode
    ✅ Missing and corrupt files load as empty tables
    ✅ A corrupt file refuses writes until it loads cleanly
    ✅ A failed write leaves the previous snapshot authoritative
"""

import json
import os
import stat
from unittest.mock import patch

from lintgate.storage import JsonFileStore, MemoryStore


class TestMemoryStore:
    def test_set_get_delete(self):
        store = MemoryStore()
        assert store.set("a", 1) is True
        assert store.get("a") == 1
        assert "a" in store
        assert store.delete("a") is True
        assert store.get("a", "default") == "default"
        assert store.delete("a") is False

    def test_setdefault_keeps_first_value(self):
        store = MemoryStore()
        first = store.setdefault("k", [1])
        second = store.setdefault("k", [2])
        assert first is second
        assert store.get("k") == [1]

    def test_items_is_a_snapshot(self):
        store = MemoryStore({"a": 1, "b": 2})
        items = store.items()
        store.set("c", 3)
        assert dict(items) == {"a": 1, "b": 2}
        assert len(store) == 3


class TestJsonFileStore:
    def test_missing_file_is_empty(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested" / "keys.json")
        assert len(store) == 0
        assert (tmp_path / "nested").is_dir()

    def test_writes_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "keys.json"
        JsonFileStore(path).set("token", {"name": "ci"})

        reloaded = JsonFileStore(path)
        assert reloaded.get("token") == {"name": "ci"}
        assert json.loads(path.read_text()) == {"token": {"name": "ci"}}

    def test_file_mode_is_restricted(self, tmp_path):
        path = tmp_path / "keys.json"
        JsonFileStore(path).set("token", {})
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o640

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text("{not json")
        assert JsonFileStore(path).get("anything") is None

    def test_non_object_file_loads_empty(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text("[1, 2, 3]")
        assert len(JsonFileStore(path)) == 0

    def test_failed_write_keeps_previous_snapshot(self, tmp_path):
        path = tmp_path / "keys.json"
        store = JsonFileStore(path)
        store.set("kept", {"v": 1})

        with patch("lintgate.storage.os.replace", side_effect=OSError("disk full")):
            assert store.set("lost", {"v": 2}) is False

        assert store.get("kept") == {"v": 1}
        assert store.get("lost") is None
        assert json.loads(path.read_text()) == {"kept": {"v": 1}}
        assert not (tmp_path / "keys.json.tmp").exists()

    def test_delete(self, tmp_path):
        store = JsonFileStore(tmp_path / "keys.json")
        store.set("a", 1)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert JsonFileStore(tmp_path / "keys.json").get("a") is None

    def test_corrupt_file_is_never_overwritten(self, tmp_path):
        path = tmp_path / "keys.json"
        original = '{"revokedkey": {"active": false}, "livekey": {"active": true},}'
        path.write_text(original)
        store = JsonFileStore(path)

        assert store.set("newkey", {"active": True}) is False
        assert store.delete("livekey") is False
        assert path.read_text() == original

    def test_writes_resume_once_the_file_is_repaired(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text("{truncated")
        store = JsonFileStore(path)
        assert store.set("newkey", 1) is False

        path.write_text('{"livekey": 2}')
        assert store.set("newkey", 1) is True
        assert json.loads(path.read_text()) == {"livekey": 2, "newkey": 1}
