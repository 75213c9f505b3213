"""Tests for the SQLite-backed local persistence store."""

import sqlite3
import tempfile
from pathlib import Path
from unittest.mock import patch

from src.storage.kv_store import LocalStore


class TestLocalStore:
    """Test cases for LocalStore."""

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / "store.db"
        self.store = LocalStore(str(self.db_path))

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_get_missing_key_returns_none(self):
        assert self.store.get("ai_chat_messages") is None

    def test_set_and_get(self):
        assert self.store.set("last_active_time", "1700000000000") is True
        assert self.store.get("last_active_time") == "1700000000000"

    def test_set_overwrites(self):
        self.store.set("key", "first")
        self.store.set("key", "second")
        assert self.store.get("key") == "second"

    def test_values_survive_new_instance(self):
        self.store.set("key", "durable")
        reopened = LocalStore(str(self.db_path))
        assert reopened.get("key") == "durable"

    def test_delete(self):
        self.store.set("key", "value")
        assert self.store.delete("key") is True
        assert self.store.get("key") is None
        # Deleting a missing key is fine
        assert self.store.delete("key") is True

    def test_errors_are_swallowed(self):
        with patch("src.storage.kv_store.sqlite3.connect", side_effect=sqlite3.OperationalError("disk I/O error")):
            assert self.store.get("key") is None
            assert self.store.set("key", "value") is False
            assert self.store.delete("key") is False
