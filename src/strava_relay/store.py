"""Key-value stores holding serialized token records."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from .errors import StoreAccessFailure

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """String-keyed store; each ``get`` and ``put`` is individually atomic."""

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str) -> None: ...


class InMemoryStore:
    """Process-local store for development and tests.

    Values are lost when the process restarts, requiring every athlete to log
    in again.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if absent."""
        return self._values.get(key)

    async def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        self._values[key] = value


class FileStore:
    """Durable store keeping one JSON file per key under a directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        # Keys contain "/" (athletes/<id>); flatten them into a single filename.
        return self.root / f"{quote(key, safe='')}.json"

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        # Each writer gets its own temp file so overlapping puts never collide.
        fd, tmp = tempfile.mkstemp(
            dir=self.root, prefix=f".{path.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> str | None:
        """Read the file for ``key``.

        Returns:
            The stored value, or None if no file exists for the key.

        Raises:
            StoreAccessFailure: If the file exists but cannot be read.
        """
        path = self._path(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise StoreAccessFailure(f"Could not read {key} from {path}: {e}") from e

    async def put(self, key: str, value: str) -> None:
        """Atomically replace the file for ``key`` with ``value``.

        Raises:
            StoreAccessFailure: If the directory or file cannot be written.
        """
        path = self._path(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except OSError as e:
            raise StoreAccessFailure(f"Could not write {key} to {path}: {e}") from e
        logger.debug("Wrote %s to %s", key, path)


def create_store(root: Path | None) -> KeyValueStore:
    """Return a file store rooted at ``root``, or an in-memory store if unset."""
    if root is None:
        logger.warning("No store directory configured; tokens are kept in memory only")
        return InMemoryStore()
    return FileStore(root)
