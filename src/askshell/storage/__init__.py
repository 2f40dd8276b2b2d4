"""Storage backend subpackage.

All backends implement the ``AsyncStorageBackend`` ABC and exchange raw
UTF-8 payloads keyed by session name.

Public surface
--------------
- AsyncStorageBackend    — abstract base class
- AsyncFilesystemBackend — persist sessions as JSON files
- AsyncInMemoryBackend   — in-process dict (useful for testing)
- StorageError           — non-absence failure of the storage medium
"""
from __future__ import annotations

from askshell.storage.async_base import AsyncStorageBackend, StorageError
from askshell.storage.async_memory import AsyncInMemoryBackend
from askshell.storage.filesystem import AsyncFilesystemBackend

__all__ = [
    "AsyncFilesystemBackend",
    "AsyncInMemoryBackend",
    "AsyncStorageBackend",
    "StorageError",
]
