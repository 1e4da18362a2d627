"""
Shared pytest fixtures for conversation memory tests.

Provides reusable fixtures for:
- Configuration and settings
- Storage backends
- Memory stores with a deterministic clock
- Temporary resources
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest

from convo_memory.config import MemorySettings, Settings
from convo_memory.memory_store import MemoryStore
from convo_memory.storage import InMemoryStore, SQLiteStore
from convo_memory.utils.logging import reset_logging


class TickingClock:
    """Clock advancing one second on every reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset logging handlers around each test so CLI runs start clean."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Provide settings pointing storage at a temporary directory."""
    return Settings(
        storage={
            "backend": "sqlite",
            "database_path": str(temp_dir / "memory.db"),
            "directory": str(temp_dir / "conversations"),
        },
    )


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def storage() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sqlite_storage(temp_dir: Path) -> Generator[SQLiteStore, None, None]:
    db = SQLiteStore(temp_dir / "memory.db")
    yield db
    db.close()


@pytest.fixture
def store(storage: InMemoryStore, clock: TickingClock) -> MemoryStore:
    """Memory store over an in-memory backend with default settings."""
    return MemoryStore(storage, clock=clock)


@pytest.fixture
def low_threshold_store(storage: InMemoryStore, clock: TickingClock) -> MemoryStore:
    """Memory store that compresses after a few short messages."""
    return MemoryStore(
        storage,
        settings=MemorySettings(compression_threshold=100),
        clock=clock,
    )


@pytest.fixture
def amy_context() -> dict:
    return {
        "name": "Amy",
        "companyName": "Acme",
        "jobTitle": "CMO",
        "industry": "Retail",
    }
