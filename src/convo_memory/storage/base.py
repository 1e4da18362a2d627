"""
Key-value storage interface.

The memory store persists JSON snapshots through this small interface so
the same logic runs against SQLite, a directory of files, or a plain dict.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for string key-value persistence backends."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> list[str]: ...

    def close(self) -> None: ...
