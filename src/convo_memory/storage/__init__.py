"""
Storage module for the conversation memory manager.

Provides key-value persistence backends:
- SQLite table with WAL mode
- Directory of JSON files
- In-process dictionary
"""

from convo_memory.config import StorageSettings
from convo_memory.core.exceptions import ConfigurationError
from convo_memory.storage.base import KeyValueStore
from convo_memory.storage.file import FileStore
from convo_memory.storage.memory import InMemoryStore
from convo_memory.storage.sqlite import SQLiteStore


def create_storage(settings: StorageSettings) -> KeyValueStore:
    """
    Build the backend named in storage settings.

    Args:
        settings: Storage configuration

    Returns:
        Ready-to-use key-value store

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    if settings.backend == "sqlite":
        return SQLiteStore(settings.database_path, wal_mode=settings.wal_mode)
    if settings.backend == "file":
        return FileStore(settings.directory)
    if settings.backend == "memory":
        return InMemoryStore()

    raise ConfigurationError(
        f"Unknown storage backend: {settings.backend}",
        details={"backend": settings.backend},
    )


__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "SQLiteStore",
    "FileStore",
    "create_storage",
]
