"""
Lintgate Backend: Credential Store Tests
=========================================

What we test:
    ✅ generate → valid, revoke → invalid, unknown revoke → False
    ✅ Re-revoking returns True
    ✅ Expired keys are invalid but kept
    ✅ Scope checks
    ✅ Unknown record fields fold into metadata
    ✅ A failed persist raises StorageError on generate, False on revoke
"""

import time
from unittest.mock import patch

import pytest

from lintgate.exceptions import StorageError
from lintgate.services.credential_store import CredentialStore
from lintgate.storage import JsonFileStore, MemoryStore


class FailingStore(MemoryStore):
    """A table whose writes never become durable."""

    def set(self, key, value):
        return False


class TestCredentialLifecycle:
    def setup_method(self):
        self.store = CredentialStore(MemoryStore())

    def test_generated_key_is_valid(self):
        key = self.store.generate({"name": "ci"})
        assert len(key) == 48
        assert self.store.validate(key) is True

        credential = self.store.lookup(key)
        assert credential.name == "ci"
        assert credential.active is True
        assert credential.scopes == ["analyze", "standards"]
        assert abs(credential.created - time.time()) < 5

    def test_keys_are_unique(self):
        keys = {self.store.generate() for _ in range(20)}
        assert len(keys) == 20

    def test_revoked_key_is_invalid_but_kept(self):
        key = self.store.generate()
        assert self.store.revoke(key) is True
        assert self.store.validate(key) is False
        assert self.store.lookup(key).active is False

    def test_revoking_twice_succeeds(self):
        key = self.store.generate()
        self.store.revoke(key)
        assert self.store.revoke(key) is True

    def test_revoking_unknown_key_fails(self):
        assert self.store.revoke("does-not-exist") is False
        assert self.store.revoke(None) is False

    def test_expired_key_is_invalid(self):
        key = self.store.generate({"expires": int(time.time()) - 1})
        assert self.store.validate(key) is False
        assert self.store.lookup(key) is not None

    def test_future_expiry_is_valid(self):
        key = self.store.generate({"expires": int(time.time()) + 3600})
        assert self.store.validate(key) is True

    def test_empty_and_unknown_tokens_are_invalid(self):
        assert self.store.validate("") is False
        assert self.store.validate(None) is False
        assert self.store.validate("nope") is False


class TestScopes:
    def setup_method(self):
        self.store = CredentialStore(MemoryStore(), default_scopes=["analyze"])

    def test_default_scopes_from_constructor(self):
        key = self.store.generate()
        assert self.store.lookup(key).scopes == ["analyze"]

    def test_required_scope(self):
        key = self.store.generate({"scopes": ["analyze", "admin"]})
        assert self.store.validate(key, "analyze") is True
        assert self.store.validate(key, "admin") is True
        assert self.store.validate(key, "standards") is False

    def test_scope_check_on_revoked_key(self):
        key = self.store.generate({"scopes": ["admin"]})
        self.store.revoke(key)
        assert self.store.validate(key, "admin") is False


class TestRecords:
    def test_unknown_fields_become_metadata(self):
        store = CredentialStore(MemoryStore())
        key = store.generate({"name": "ci", "owner": "platform", "metadata": {"team": "x"}})
        credential = store.lookup(key)
        assert credential.metadata == {"owner": "platform", "team": "x"}

    def test_malformed_record_is_not_a_credential(self):
        table = MemoryStore({"bad": {"created": "not a number", "scopes": 5}})
        store = CredentialStore(table)
        assert store.lookup("bad") is None
        assert store.validate("bad") is False
        assert store.list() == {}

    def test_list_returns_every_record(self):
        store = CredentialStore(MemoryStore())
        a = store.generate({"name": "a"})
        b = store.generate({"name": "b"})
        listed = store.list()
        assert set(listed) == {a, b}
        assert listed[a].name == "a"

    def test_file_backed_store_survives_restart(self, tmp_path):
        path = tmp_path / "api_keys.json"
        key = CredentialStore.from_file(str(path)).generate({"name": "durable"})

        reloaded = CredentialStore.from_file(str(path))
        assert reloaded.validate(key) is True
        assert reloaded.lookup(key).name == "durable"


class TestPersistenceFailures:
    def test_generate_raises_when_write_fails(self):
        store = CredentialStore(FailingStore())
        with pytest.raises(StorageError):
            store.generate({"name": "ci"})

    def test_revoke_returns_false_when_write_fails(self, tmp_path):
        store = CredentialStore.from_file(str(tmp_path / "keys.json"))
        key = store.generate()

        with patch("lintgate.storage.os.replace", side_effect=OSError("read-only")):
            assert store.revoke(key) is False

        assert store.validate(key) is True

    def test_corrupt_keys_file_is_not_replaced_by_generate(self, tmp_path):
        path = tmp_path / "api_keys.json"
        original = (
            '{"revokedkey": {"created": 1, "active": false},'
            ' "livekey": {"created": 1, "active": true},}'
        )
        path.write_text(original)

        with pytest.raises(StorageError):
            CredentialStore.from_file(str(path)).generate({"name": "new"})

        assert path.read_text() == original
