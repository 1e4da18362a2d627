"""
Directory-backed key-value storage.

Each key is stored as one JSON file whose name is the URL-quoted key,
so arbitrary user ids stay filesystem safe.
"""

import os
import tempfile
from pathlib import Path
from urllib.parse import quote, unquote

from convo_memory.core.exceptions import StorageError
from convo_memory.utils.logging import get_logger

logger = get_logger(__name__)

SUFFIX = ".json"
TMP_SUFFIX = ".tmp"


class FileStore:
    """Key-value store keeping one file per key under a directory."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Cannot create storage directory: {e}",
                details={"directory": str(self.directory)},
            ) from e

        logger.info(f"File store ready (directory={self.directory})")

    def _path_for(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read key: {e}", key=key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        # Write to a sibling temp file and rename so readers never see a partial file
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=TMP_SUFFIX)
        except OSError as e:
            raise StorageError(f"Failed to write key: {e}", key=key) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write key: {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove key: {e}", key=key) from e

    def keys(self, prefix: str = "") -> list[str]:
        found = []
        for path in self.directory.glob(f"*{SUFFIX}"):
            key = unquote(path.name[: -len(SUFFIX)])
            if key.startswith(prefix):
                found.append(key)
        return sorted(found)

    def close(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"FileStore(directory={str(self.directory)!r})"
