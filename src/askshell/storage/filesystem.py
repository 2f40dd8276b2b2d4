"""Filesystem storage backend.

Persists each session as an individual JSON file under a configurable
directory.  Defaults to ``~/.askshell/sessions/``.  Blocking file calls
are pushed onto a worker thread with ``asyncio.to_thread`` so callers can
await them.

Classes
-------
- AsyncFilesystemBackend  — JSON-file-per-session storage
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Sequence

from askshell.storage.async_base import AsyncStorageBackend, StorageError

logger = logging.getLogger(__name__)

_DEFAULT_STORAGE_DIR: Path = Path.home() / ".askshell" / "sessions"
_FILE_EXTENSION = ".json"


def _is_plain_key(key: str) -> bool:
    return bool(key) and key not in (".", "..") and os.path.basename(key) == key and "\\" not in key


class AsyncFilesystemBackend(AsyncStorageBackend):
    """Stores sessions as individual JSON files.

    Each session is stored as ``<storage_dir>/<name>.json``.  Separate
    shells share the directory; each file is written whole, so concurrent
    writers to the same name resolve as last-writer-wins.

    Parameters
    ----------
    storage_dir:
        Root directory for session files.  Created on first write if absent.
    """

    def __init__(self, storage_dir: str | Path | None = None) -> None:
        self._storage_dir: Path = (
            Path(storage_dir) if storage_dir is not None else _DEFAULT_STORAGE_DIR
        )

    @property
    def storage_dir(self) -> Path:
        return self._storage_dir

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_dir(self) -> None:
        """Create the storage directory tree; tolerates a concurrent creator."""
        self._storage_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # Keys map to files directly inside storage_dir, never elsewhere.
        if not _is_plain_key(key):
            raise ValueError(f"Invalid storage key {key!r}")
        return self._storage_dir / f"{key}{_FILE_EXTENSION}"

    def _write(self, key: str, payload: str) -> None:
        try:
            self._ensure_dir()
            self._path_for(key).write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise StorageError(key, "save", exc.strerror or str(exc)) from exc

    def _read(self, key: str) -> str:
        if not _is_plain_key(key):
            raise KeyError(f"Session {key!r} not found")
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise KeyError(f"Session {key!r} not found at {path}") from None
        except OSError as exc:
            raise StorageError(key, "load", exc.strerror or str(exc)) from exc

    def _list(self) -> list[str]:
        if not self._storage_dir.exists():
            return []
        return [
            path.stem
            for path in self._storage_dir.glob(f"*{_FILE_EXTENSION}")
            if path.is_file()
        ]

    def _unlink(self, key: str) -> bool:
        if not _is_plain_key(key):
            return False
        try:
            self._path_for(key).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StorageError(key, "delete", exc.strerror or str(exc)) from exc
        return True

    # ------------------------------------------------------------------
    # AsyncStorageBackend interface
    # ------------------------------------------------------------------

    async def save(self, key: str, payload: str) -> None:
        await asyncio.to_thread(self._write, key, payload)
        logger.debug("AsyncFilesystemBackend: wrote %s", self._path_for(key))

    async def load(self, key: str) -> str:
        return await asyncio.to_thread(self._read, key)

    async def list_keys(self) -> Sequence[str]:
        """Return keys derived from file stems; empty if the directory is absent."""
        return await asyncio.to_thread(self._list)

    async def delete(self, key: str) -> bool:
        deleted = await asyncio.to_thread(self._unlink, key)
        if deleted:
            logger.debug("AsyncFilesystemBackend: removed %s", self._path_for(key))
        return deleted

    async def exists(self, key: str) -> bool:
        if not _is_plain_key(key):
            return False
        return await asyncio.to_thread(self._path_for(key).exists)

    def __repr__(self) -> str:
        return f"AsyncFilesystemBackend(storage_dir={str(self._storage_dir)!r})"


__all__ = ["AsyncFilesystemBackend"]
