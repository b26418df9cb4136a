"""Durable key-value slots for the serialized application state.

Backends store opaque strings under a key, mirroring a browser's
``localStorage``. Failures are reported as PersistenceError so callers can
decide whether they are fatal.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Protocol

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Minimal interface the StateStore needs from a storage backend."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...


class MemoryStorage:
    """Process-local storage, used by tests and embedders without a disk."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """Stores each key as ``<directory>/<key>.json``.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so a crash never leaves a half-written record.
    """

    def __init__(self, directory: Path):
        """Initialize file storage.

        Args:
            directory: Directory holding the state files (created on first write)
        """
        self.directory = directory

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as err:
            raise PersistenceError(f"Failed to read {path}: {err}") from err

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path_str = tempfile.mkstemp(
                dir=self.directory,
                prefix=f".{path.name}.",
                suffix=".tmp",
                text=True,
            )
        except OSError as err:
            raise PersistenceError(f"Failed to prepare {path}: {err}") from err

        temp_path = Path(temp_path_str)
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(value)
            temp_path.replace(path)
        except OSError as err:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError as cleanup_err:
                logger.debug(f"Could not remove temp file {temp_path}: {cleanup_err}")
            raise PersistenceError(f"Failed to write {path}: {err}") from err
