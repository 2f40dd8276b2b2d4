"""Session management subpackage.

Decides which conversation context an invocation belongs to, persists
that context's metadata, and applies recency and expiry policy.

Public surface
--------------
- SessionRecord        — persisted metadata of one conversation
- SessionKind          — enum: GLOBAL, SHELL, NAMED
- GlobalScope / ShellScope / NamedScope — tagged scope variants
- ResolutionRequest    — selection hints of one invocation
- TokenUsage           — token counts of one exchange
- SessionStore         — load / save / delete / list by name
- SessionResolver      — request -> record, load-or-create
- SessionLifecycle     — update-on-use, expiry, bulk clear, export
- FailureCache         — last failed question, in memory only
- SessionManager       — facade over all of the above
- SessionContext       — caller-owned active-session pointer
"""
from __future__ import annotations

from askshell.session.failures import FailureCache, NoPriorFailureError
from askshell.session.lifecycle import (
    SessionLifecycle,
    format_relative_time,
    format_session_info,
    format_session_list,
)
from askshell.session.manager import SessionContext, SessionManager
from askshell.session.resolver import SessionResolver
from askshell.session.serializer import RecordSerializer, SchemaVersionError
from askshell.session.state import (
    GLOBAL_SESSION_NAME,
    GlobalScope,
    NamedScope,
    ResolutionRequest,
    SessionKind,
    SessionRecord,
    ShellScope,
    TokenUsage,
    shell_process_id,
    shell_session_name,
)
from askshell.session.store import SessionNotFoundError, SessionStore

__all__ = [
    "GLOBAL_SESSION_NAME",
    "FailureCache",
    "GlobalScope",
    "NamedScope",
    "NoPriorFailureError",
    "RecordSerializer",
    "ResolutionRequest",
    "SchemaVersionError",
    "SessionContext",
    "SessionKind",
    "SessionLifecycle",
    "SessionManager",
    "SessionNotFoundError",
    "SessionRecord",
    "SessionResolver",
    "SessionStore",
    "ShellScope",
    "TokenUsage",
    "format_relative_time",
    "format_session_info",
    "format_session_list",
    "shell_process_id",
    "shell_session_name",
]
