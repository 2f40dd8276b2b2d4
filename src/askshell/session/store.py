"""Durable name -> SessionRecord mapping.

``SessionStore`` layers record (de)serialization over an
``AsyncStorageBackend``.  Reads are forgiving: a missing or malformed
entry reads as "does not exist yet".  Writes and deletes are not: a
failing medium surfaces as ``StorageError``.

Classes
-------
- SessionStore          — load / save / delete / list records by name
- SessionNotFoundError  — raised by callers that require a record to exist
"""
from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from askshell.session.serializer import RecordSerializer, SchemaVersionError
from askshell.session.state import SessionRecord
from askshell.storage.async_base import AsyncStorageBackend

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a requested session does not exist in the store."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Session {name!r} not found.")

    def __str__(self) -> str:
        return self.args[0]


class SessionStore:
    """Persist session records keyed by their name.

    Parameters
    ----------
    backend:
        The storage backend holding one payload per session name.
    serializer:
        Optional custom serializer.
    """

    def __init__(
        self,
        backend: AsyncStorageBackend,
        serializer: RecordSerializer | None = None,
    ) -> None:
        self._backend = backend
        self._serializer = serializer or RecordSerializer()

    @property
    def backend(self) -> AsyncStorageBackend:
        return self._backend

    async def load(self, name: str) -> SessionRecord | None:
        """Return the record stored under ``name``, or None.

        None covers both a missing entry and one that cannot be parsed.

        Raises
        ------
        StorageError
            If the entry exists but the medium refuses to read it.
        """
        try:
            raw = await self._backend.load(name)
        except KeyError:
            return None
        except UnicodeDecodeError as exc:
            logger.warning("Ignoring undecodable session %r: %s", name, exc)
            return None
        try:
            return self._serializer.from_json(raw)
        except (json.JSONDecodeError, SchemaVersionError, ValidationError, ValueError) as exc:
            logger.warning("Ignoring unreadable session %r: %s", name, exc)
            return None

    async def save(self, record: SessionRecord) -> None:
        """Overwrite the entry for ``record.name`` with the full record."""
        await self._backend.save(record.name, self._serializer.to_json(record))
        logger.debug("SessionStore: saved %r (%s)", record.name, record.kind.value)

    async def delete(self, name: str) -> bool:
        """Remove the entry for ``name``; False when nothing matched."""
        deleted = await self._backend.delete(name)
        if deleted:
            logger.debug("SessionStore: deleted %r", name)
        return deleted

    async def names(self) -> list[str]:
        """Return every stored name, readable or not."""
        return sorted(await self._backend.list_keys())

    async def list_all(self) -> list[SessionRecord]:
        """Return every readable record, most recently used first."""
        records: list[SessionRecord] = []
        for name in await self._backend.list_keys():
            record = await self.load(name)
            if record is not None:
                records.append(record)
        records.sort(key=lambda record: record.last_used, reverse=True)
        return records
