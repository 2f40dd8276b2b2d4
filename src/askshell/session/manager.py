"""Session management facade.

Provides ``SessionManager``, the single entry point the CLI and the
exchange runner use to resolve, update, inspect, export, and delete
sessions.  It composes the store, resolver, lifecycle policy, and
failure cache.

The manager holds no notion of a "current" session.  Callers own a
``SessionContext`` and pass it to the operations that read or clear the
active session.

Classes
-------
- SessionContext  — caller-owned pointer to the active session
- SessionManager  — facade over store, resolver, lifecycle, failure cache
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from askshell.config import UserConfig
from askshell.session.failures import FailureCache
from askshell.session.lifecycle import ExportFormat, SessionLifecycle
from askshell.session.resolver import SessionResolver
from askshell.session.state import ResolutionRequest, SessionRecord, TokenUsage
from askshell.session.store import SessionNotFoundError, SessionStore
from askshell.storage.async_base import AsyncStorageBackend

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """The session a run is working with, threaded through by the caller."""

    active: SessionRecord | None = None

    @property
    def active_name(self) -> str | None:
        return self.active.name if self.active is not None else None

    def forget(self, name: str) -> None:
        """Drop the active pointer if it refers to ``name``."""
        if self.active is not None and self.active.name == name:
            self.active = None


class SessionManager:
    """Resolve, update, list, export, and delete sessions.

    Parameters
    ----------
    backend:
        Storage backend holding one payload per session name.
    config:
        User configuration; supplies pricing and expiry settings.
    failures:
        Optional failure cache; a fresh one is created per manager.
    """

    def __init__(
        self,
        backend: AsyncStorageBackend,
        config: UserConfig | None = None,
        failures: FailureCache | None = None,
    ) -> None:
        self._config = config or UserConfig()
        self._store = SessionStore(backend)
        self._resolver = SessionResolver(self._store)
        self._lifecycle = SessionLifecycle(self._store, self._config.pricing)
        self._failures = failures or FailureCache()

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def config(self) -> UserConfig:
        return self._config

    # ------------------------------------------------------------------
    # Resolution and update
    # ------------------------------------------------------------------

    async def resolve_session(
        self,
        request: ResolutionRequest,
        context: SessionContext | None = None,
    ) -> SessionRecord:
        """Return the record ``request`` selects, creating it if needed.

        When ``context`` is given the record becomes its active session.
        """
        record = await self._resolver.resolve(request)
        if context is not None:
            context.active = record
        return record

    async def record_exchange_outcome(
        self,
        record: SessionRecord,
        ephemeral: bool,
        turns: int,
        usage: TokenUsage,
        errored: bool = False,
    ) -> SessionRecord:
        return await self._lifecycle.record_exchange_outcome(
            record, ephemeral=ephemeral, turns=turns, usage=usage, errored=errored
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    async def list_sessions(self) -> list[SessionRecord]:
        """Return every session, most recently used first."""
        return await self._store.list_all()

    async def get_session_info(
        self,
        name: str | None = None,
        context: SessionContext | None = None,
    ) -> SessionRecord:
        """Return session ``name``, or the context's active session.

        Raises
        ------
        SessionNotFoundError
            If the named session does not exist, or no name was given and
            there is no active session.
        """
        if name is None:
            if context is None or context.active is None:
                raise SessionNotFoundError("(active)")
            return context.active
        record = await self._store.load(name)
        if record is None:
            raise SessionNotFoundError(name)
        return record

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_session(self, name: str, context: SessionContext | None = None) -> bool:
        """Delete session ``name``; False if it did not exist."""
        deleted = await self._store.delete(name)
        if deleted and context is not None:
            context.forget(name)
        return deleted

    async def delete_all(self, context: SessionContext | None = None) -> int:
        removed = await self._lifecycle.delete_all()
        if context is not None:
            context.active = None
        return removed

    async def sweep_expired(self) -> int:
        """Run the expiry sweep with the configured thresholds."""
        removed = await self._lifecycle.sweep_expired(self._config.sessions)
        if removed:
            logger.info("Removed %d expired session(s)", removed)
        return removed

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_session(
        self,
        name: str,
        destination: str | Path,
        fmt: ExportFormat = "text",
    ) -> Path:
        return await self._lifecycle.export(name, destination, fmt)

    # ------------------------------------------------------------------
    # Failure cache
    # ------------------------------------------------------------------

    def record_failure(self, question: str) -> None:
        self._failures.record_failure(question)

    def consume_last_failure(self) -> str | None:
        return self._failures.consume_last_failure()

    def require_last_failure(self) -> str:
        return self._failures.require_last_failure()
