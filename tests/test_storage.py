"""
Tests for key-value storage backends.

Every backend must honour the same get/set/remove/keys contract.
"""

from pathlib import Path

import pytest

from convo_memory.config import StorageSettings
from convo_memory.core.exceptions import DatabaseError, StorageError
from convo_memory.storage import (
    FileStore,
    InMemoryStore,
    KeyValueStore,
    SQLiteStore,
    create_storage,
)


@pytest.fixture(params=["memory", "sqlite", "file"])
def backend(request, temp_dir: Path):
    """Provide each storage backend in turn."""
    if request.param == "memory":
        kv = InMemoryStore()
    elif request.param == "sqlite":
        kv = SQLiteStore(temp_dir / "kv.db")
    else:
        kv = FileStore(temp_dir / "kv")
    yield kv
    kv.close()


class TestKeyValueContract:
    """Tests shared by all backends."""

    def test_satisfies_protocol(self, backend):
        assert isinstance(backend, KeyValueStore)

    def test_get_missing_returns_none(self, backend):
        assert backend.get("conversation_missing") is None

    def test_set_then_get(self, backend):
        backend.set("conversation_a", '{"x": 1}')

        assert backend.get("conversation_a") == '{"x": 1}'

    def test_set_overwrites(self, backend):
        backend.set("memory_settings", "one")
        backend.set("memory_settings", "two")

        assert backend.get("memory_settings") == "two"

    def test_remove(self, backend):
        backend.set("conversation_a", "value")
        backend.remove("conversation_a")

        assert backend.get("conversation_a") is None

    def test_remove_missing_is_silent(self, backend):
        backend.remove("conversation_never_written")

    def test_keys_with_prefix(self, backend):
        backend.set("conversation_a", "1")
        backend.set("conversation_b", "2")
        backend.set("user_conversations_u1", "[]")

        assert backend.keys("conversation_") == ["conversation_a", "conversation_b"]
        assert len(backend.keys()) == 3

    def test_prefix_underscore_is_literal(self, backend):
        """Underscores in prefixes must not act as wildcards."""
        backend.set("conversationXa", "1")
        backend.set("conversation_b", "2")

        assert backend.keys("conversation_") == ["conversation_b"]

    def test_unicode_and_unsafe_keys(self, backend):
        key = "user_conversations_ünïcode/../user"
        backend.set(key, "[]")

        assert backend.get(key) == "[]"
        assert key in backend.keys("user_conversations_")


class TestSQLiteStore:
    """Tests specific to the SQLite backend."""

    def test_database_file_created(self, temp_dir: Path):
        path = temp_dir / "nested" / "memory.db"
        db = SQLiteStore(path)

        assert path.exists()
        db.close()

    def test_wal_mode(self, sqlite_storage: SQLiteStore):
        with sqlite_storage.connection() as conn:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]

        assert mode.lower() == "wal"

    def test_values_survive_reopen(self, temp_dir: Path):
        path = temp_dir / "memory.db"
        first = SQLiteStore(path)
        first.set("conversation_a", "persisted")
        first.close()

        second = SQLiteStore(path)
        assert second.get("conversation_a") == "persisted"
        second.close()

    def test_query_failure_raises_database_error(self, sqlite_storage: SQLiteStore):
        with sqlite_storage.connection() as conn:
            conn.execute("DROP TABLE kv_store")

        with pytest.raises(DatabaseError):
            sqlite_storage.get("conversation_a")


class TestFileStore:
    """Tests specific to the file backend."""

    def test_one_file_per_key(self, temp_dir: Path):
        kv = FileStore(temp_dir / "kv")
        kv.set("conversation_a", "{}")
        kv.set("conversation_b", "{}")

        assert len(list((temp_dir / "kv").glob("*.json"))) == 2

    def test_failed_write_leaves_no_temp_file(self, temp_dir: Path, monkeypatch):
        kv = FileStore(temp_dir / "kv")
        kv.set("conversation_a", "old")

        def refuse_replace(src, dst):
            raise OSError("read-only file system")

        monkeypatch.setattr("convo_memory.storage.file.os.replace", refuse_replace)

        with pytest.raises(StorageError) as exc_info:
            kv.set("conversation_a", "new")

        assert exc_info.value.key == "conversation_a"
        assert list((temp_dir / "kv").glob("*.tmp")) == []
        assert kv.get("conversation_a") == "old"


class TestCreateStorage:
    """Tests for backend selection from settings."""

    def test_memory_backend(self):
        assert isinstance(create_storage(StorageSettings(backend="memory")), InMemoryStore)

    def test_sqlite_backend(self, temp_dir: Path):
        kv = create_storage(StorageSettings(
            backend="sqlite", database_path=temp_dir / "x.db"))

        assert isinstance(kv, SQLiteStore)
        kv.close()

    def test_file_backend(self, temp_dir: Path):
        kv = create_storage(StorageSettings(
            backend="file", directory=temp_dir / "files"))

        assert isinstance(kv, FileStore)
