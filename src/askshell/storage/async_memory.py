"""Process-local session storage, used by the test suite.

Nothing survives the process.  ``save_calls`` counts writes so tests can
assert that an operation left storage untouched.

Classes
-------
- AsyncInMemoryBackend  — payloads kept in a dict
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from askshell.storage.async_base import AsyncStorageBackend


class AsyncInMemoryBackend(AsyncStorageBackend):
    """Keep session payloads in memory, keyed by session name.

    Parameters
    ----------
    initial_data:
        Payloads to start with, copied on construction.
    """

    def __init__(self, initial_data: dict[str, str] | None = None) -> None:
        self._payloads: dict[str, str] = dict(initial_data or {})
        self._lock = asyncio.Lock()
        self.save_calls: int = 0

    async def save(self, key: str, payload: str) -> None:
        async with self._lock:
            self._payloads[key] = payload
            self.save_calls += 1

    async def load(self, key: str) -> str:
        async with self._lock:
            try:
                return self._payloads[key]
            except KeyError:
                raise KeyError(f"No payload stored for {key!r}") from None

    async def list_keys(self) -> Sequence[str]:
        async with self._lock:
            return list(self._payloads)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._payloads.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return key in self._payloads

    def __len__(self) -> int:
        return len(self._payloads)

    def __repr__(self) -> str:
        return f"AsyncInMemoryBackend(entries={len(self._payloads)}, save_calls={self.save_calls})"


__all__ = ["AsyncInMemoryBackend"]
