"""Session record domain models.

All types are Pydantic BaseModel subclasses to enable runtime validation,
JSON serialisation, and schema versioning.

Classes
-------
- SessionKind       — enum: GLOBAL, SHELL, NAMED
- GlobalScope       — scope variant of the single ``"global"`` session
- ShellScope        — scope variant bound to one shell process id
- NamedScope        — scope variant of a user-named session
- TokenUsage        — input/output token counts reported by one exchange
- SessionRecord     — persisted metadata of one conversation context
- ResolutionRequest — selection hints supplied by one CLI invocation
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, ClassVar, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

GLOBAL_SESSION_NAME = "global"
_SHELL_SESSION_PREFIX = "shell-"
_SHELL_SESSION_NAME = re.compile(r"shell-(\d+)")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def shell_session_name(process_id: int) -> str:
    """Return the storage name of the session owned by ``process_id``."""
    return f"{_SHELL_SESSION_PREFIX}{process_id}"


def shell_process_id(name: str) -> int | None:
    """Return the process id encoded in a ``shell-<pid>`` name, else None."""
    match = _SHELL_SESSION_NAME.fullmatch(name)
    return int(match.group(1)) if match else None


class SessionKind(str, Enum):
    """Which resolver branch created a session, and how it expires."""

    GLOBAL = "global"
    SHELL = "shell"
    NAMED = "named"


class GlobalScope(BaseModel):
    """Scope of the single fallback session.  Never expires."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["global"] = "global"


class ShellScope(BaseModel):
    """Scope of a session owned by one shell process."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["shell"] = "shell"
    process_id: int = Field(ge=0)


class NamedScope(BaseModel):
    """Scope of a session the user created by name."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["named"] = "named"


SessionScope = Annotated[
    Union[GlobalScope, ShellScope, NamedScope],
    Field(discriminator="kind"),
]


class TokenUsage(BaseModel):
    """Token counts reported by the engine for one exchange."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


class SessionRecord(BaseModel):
    """Persisted metadata of one conversation context.

    The transcript itself lives in the engine's own storage; a record only
    carries the resume token that points at it plus usage accounting.

    Parameters
    ----------
    id:
        Opaque unique identifier, assigned at creation and never reused.
    name:
        Storage key, unique across every kind of session.
    scope:
        Tagged variant describing the session kind.  Only ``ShellScope``
        carries a process id.
    resume_token:
        Engine-issued token; when present the next exchange resumes the
        prior conversation.
    created:
        Creation timestamp (UTC).  Never modified.
    last_used:
        Timestamp of the last non-ephemeral exchange (UTC).
    message_count:
        Accumulated conversational turns.
    total_tokens:
        Accumulated input plus output tokens.
    total_cost:
        Accumulated estimated cost in USD, frozen at recording time.
    override_prompt:
        Per-session system prompt; falls back to the configured preset.
    override_tools:
        Per-session tool allowlist; falls back to the configured list.
    schema_version:
        Schema version string used for forward/backward compatibility.
    """

    SCHEMA_VERSION: ClassVar[str] = "1.0"

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    scope: SessionScope
    resume_token: str | None = None
    created: datetime = Field(default_factory=utcnow)
    last_used: datetime = Field(default_factory=utcnow)
    message_count: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    total_cost: float = Field(default=0.0, ge=0.0)
    override_prompt: str | None = None
    override_tools: list[str] | None = None
    schema_version: str = "1.0"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Session name must be a non-empty string")
        if "/" in value or "\\" in value or value in (".", ".."):
            raise ValueError(f"Session name {value!r} must not contain path separators")
        return value

    @field_validator("created", "last_used")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_scope_matches_name(self) -> "SessionRecord":
        is_global_name = self.name == GLOBAL_SESSION_NAME
        if isinstance(self.scope, GlobalScope) and not is_global_name:
            raise ValueError(f"A global session must be named {GLOBAL_SESSION_NAME!r}")
        if is_global_name and not isinstance(self.scope, GlobalScope):
            raise ValueError(f"The name {GLOBAL_SESSION_NAME!r} is reserved for the global session")
        reserved_pid = shell_process_id(self.name)
        if reserved_pid is not None and not isinstance(self.scope, ShellScope):
            raise ValueError(f"The name {self.name!r} is reserved for the session of shell {reserved_pid}")
        return self

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def fresh(cls, name: str, scope: GlobalScope | ShellScope | NamedScope) -> "SessionRecord":
        """Return a brand-new record with zeroed accumulators and no token."""
        now = utcnow()
        return cls(name=name, scope=scope, created=now, last_used=now)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def kind(self) -> SessionKind:
        return SessionKind(self.scope.kind)

    @property
    def process_id(self) -> int | None:
        if isinstance(self.scope, ShellScope):
            return self.scope.process_id
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def attach_resume_token(self, token: str) -> None:
        """Store the engine's newly issued resume token.

        A blank token is ignored so an existing token is never cleared.
        """
        if token:
            self.resume_token = token

    def apply_exchange(self, turns: int, usage: TokenUsage, cost: float, *, now: datetime | None = None) -> None:
        """Fold one completed exchange into the accumulators."""
        if turns < 0:
            raise ValueError(f"turns must be non-negative, got {turns}")
        if cost < 0:
            raise ValueError(f"cost must be non-negative, got {cost}")
        self.last_used = now or utcnow()
        self.message_count += turns
        self.total_tokens += usage.total
        self.total_cost += cost


class ResolutionRequest(BaseModel):
    """Selection hints of one invocation.

    Parameters
    ----------
    explicit_name:
        Session requested by name (``--session`` / ``--new-session``).
    caller_process_id:
        Process id supplied by the shell integration.
    wants_new_named:
        Reset the named session instead of resuming it.
    shell_scoped:
        Route to a per-shell session when ``caller_process_id`` is set.
    """

    model_config = ConfigDict(frozen=True)

    explicit_name: str | None = None
    caller_process_id: int | None = Field(default=None, ge=0)
    wants_new_named: bool = False
    shell_scoped: bool = False
