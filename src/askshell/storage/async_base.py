"""Abstract base class for async session storage backends.

All concrete backends must implement the operations defined here.
The raw payload exchanged with the backend is always a UTF-8 string
(a JSON-encoded ``SessionRecord``), keyed by session name.

Classes
-------
- AsyncStorageBackend  — abstract base for all backends
- StorageError         — raised when the medium fails for reasons other than absence
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class StorageError(OSError):
    """Raised when a read, write, or delete fails for a reason other than absence.

    Missing keys are reported through ``KeyError`` / ``False`` return
    values instead; this error covers permissions, full disks, and the like.
    """

    def __init__(self, key: str, operation: str, reason: str) -> None:
        self.key = key
        self.operation = operation
        super().__init__(f"Could not {operation} session {key!r}: {reason}")


class AsyncStorageBackend(ABC):
    """Protocol for async reading and writing of raw session payloads.

    All methods are coroutines.  Backends hold no locks: concurrent
    writers in different processes resolve as last-writer-wins per key.
    """

    @abstractmethod
    async def save(self, key: str, payload: str) -> None:
        """Persist ``payload`` under ``key``, overwriting any prior content.

        Raises
        ------
        StorageError
            If the payload cannot be written.
        """

    @abstractmethod
    async def load(self, key: str) -> str:
        """Return the raw payload stored under ``key``.

        Raises
        ------
        KeyError
            If no entry exists for ``key``.
        StorageError
            If the entry exists but cannot be read.
        """

    @abstractmethod
    async def list_keys(self) -> Sequence[str]:
        """Return every stored key.  Order is implementation-defined."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove the entry for ``key``.

        Returns
        -------
        bool
            True if the entry existed and was deleted, False otherwise.

        Raises
        ------
        StorageError
            If the entry exists but cannot be removed.
        """

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if an entry for ``key`` exists."""


__all__ = ["AsyncStorageBackend", "StorageError"]
