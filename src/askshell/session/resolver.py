"""Map an invocation's selection hints to exactly one session record.

Decision order, first match wins:

1. an explicit name resolves a named session (``wants_new_named`` resets it);
   the reserved names ``"global"`` and ``shell-<pid>`` keep their own kind;
2. a shell-scoped request with a process id resolves ``shell-<pid>``;
3. anything else resolves the ``"global"`` session.

Resolution is load-or-create and is not transactional across processes:
two shells creating the same name at once both write, and the last
writer wins.
"""
from __future__ import annotations

import logging

from askshell.session.state import (
    GLOBAL_SESSION_NAME,
    GlobalScope,
    NamedScope,
    ResolutionRequest,
    SessionRecord,
    ShellScope,
    shell_process_id,
    shell_session_name,
)
from askshell.session.store import SessionStore

logger = logging.getLogger(__name__)


def _scope_for_name(name: str) -> GlobalScope | ShellScope | NamedScope:
    # Reserved names resolve to the session kind that owns them.
    if name == GLOBAL_SESSION_NAME:
        return GlobalScope()
    process_id = shell_process_id(name)
    if process_id is not None:
        return ShellScope(process_id=process_id)
    return NamedScope()


class SessionResolver:
    """Pick or create the record a request belongs to.

    Parameters
    ----------
    store:
        The session store records are loaded from and created in.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    async def resolve(self, request: ResolutionRequest) -> SessionRecord:
        if request.explicit_name is not None:
            name = request.explicit_name.strip()
            scope = _scope_for_name(name)
            if request.wants_new_named:
                return await self._create(name, scope)
            return await self._load_or_create(name, scope)

        if request.shell_scoped and request.caller_process_id is not None:
            pid = request.caller_process_id
            return await self._load_or_create(shell_session_name(pid), ShellScope(process_id=pid))

        return await self._load_or_create(GLOBAL_SESSION_NAME, GlobalScope())

    async def _load_or_create(
        self, name: str, scope: GlobalScope | ShellScope | NamedScope
    ) -> SessionRecord:
        existing = await self._store.load(name)
        if existing is not None:
            logger.debug("SessionResolver: resumed %r", name)
            return existing
        return await self._create(name, scope)

    async def _create(
        self, name: str, scope: GlobalScope | ShellScope | NamedScope
    ) -> SessionRecord:
        record = SessionRecord.fresh(name, scope)
        await self._store.save(record)
        logger.debug("SessionResolver: created %s session %r", record.kind.value, name)
        return record
