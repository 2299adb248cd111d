"""
Tests for the per-account key cache.

Covers: file naming, round trip, permissions, atomic replace, and the
"reads never fail" rule for missing or corrupt files.
"""

import logging
import os
import stat

import pytest

from keyward.cache.store import CacheStore
from keyward.exceptions import CacheWriteError
from keyward.keys.models import Key


@pytest.fixture
def store(tmp_path):
    return CacheStore(tmp_path)


class TestCacheStore:

    def test_path_is_hidden_per_account(self, store, tmp_path):
        assert store.path_for("alice") == tmp_path / ".alice.json"

    def test_round_trip(self, store, key_fixture):
        keys = key_fixture("keys_mixed_signers.json")
        store.write("alice", keys)
        assert store.read("alice") == keys

    def test_empty_set_round_trip(self, store):
        store.write("alice", [])
        assert store.path_for("alice").exists()
        assert store.read("alice") == []

    def test_accounts_are_separate(self, store):
        store.write("alice", [Key("a")])
        store.write("bob", [Key("b")])
        assert store.read("alice") == [Key("a")]
        assert store.read("bob") == [Key("b")]

    def test_overwrite_replaces_snapshot(self, store):
        store.write("alice", [Key("old1"), Key("old2")])
        store.write("alice", [Key("new")])
        assert store.read("alice") == [Key("new")]

    def test_file_mode_0600(self, store):
        path = store.write("alice", [Key("a")])
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, store, tmp_path):
        store.write("alice", [Key("a")])
        assert sorted(p.name for p in tmp_path.iterdir()) == [".alice.json"]

    def test_wire_format(self, store):
        path = store.write("alice", [Key("k", "ab", "alice@example.com", "no-pty")])
        assert '"email": "alice@example.com"' in path.read_text()

    def test_missing_file_reads_empty(self, store):
        assert store.read("nobody") == []

    def test_corrupt_file_reads_empty(self, store, caplog):
        store.path_for("alice").write_text("{not json")
        with caplog.at_level(logging.WARNING, logger="keyward"):
            assert store.read("alice") == []
        assert "corrupt cache file" in caplog.text

    def test_wrong_shape_reads_empty(self, store):
        store.path_for("alice").write_text('{"public_key": "x"}')
        assert store.read("alice") == []

    def test_missing_directory_write_fails(self, tmp_path):
        store = CacheStore(tmp_path / "does" / "not" / "exist")
        with pytest.raises(CacheWriteError):
            store.write("alice", [Key("a")])

    def test_missing_directory_read_empty(self, tmp_path):
        assert CacheStore(tmp_path / "missing").read("alice") == []

    @pytest.mark.parametrize("account", ["", "../etc/passwd", "a/b"])
    def test_unusable_account_names(self, store, account):
        with pytest.raises(CacheWriteError):
            store.write(account, [Key("a")])
        assert store.read(account) == []
