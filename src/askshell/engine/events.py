"""Engine request and event types.

The engine is an opaque streaming service: askshell submits a
``QueryRequest`` and consumes a sequence of ``EngineEvent`` values.

Classes
-------
- PermissionMode   — how the engine treats tool permission prompts
- QueryRequest     — everything submitted for one exchange
- SystemInitEvent  — carries the resume token issued for the exchange
- TextEvent        — one fragment of response text
- ResultEvent      — terminal event with turns, usage, and the error flag
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from askshell.session.state import TokenUsage


class PermissionMode(str, Enum):
    DEFAULT = "default"
    ACCEPT_EDITS = "acceptEdits"
    BYPASS_PERMISSIONS = "bypassPermissions"
    PLAN = "plan"


class QueryRequest(BaseModel):
    """One exchange as submitted to the engine."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_prompt: str
    allowed_tools: list[str] = Field(default_factory=list)
    permission_mode: PermissionMode = PermissionMode.BYPASS_PERMISSIONS
    cwd: Path = Field(default_factory=Path.cwd)
    max_turns: int = Field(default=50, ge=1)
    resume: str | None = None
    model: str | None = None


class SystemInitEvent(BaseModel):
    type: Literal["init"] = "init"
    resume_token: str


class TextEvent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    num_turns: int = Field(default=0, ge=0)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    is_error: bool = False
    error_message: str | None = None


EngineEvent = Annotated[
    Union[SystemInitEvent, TextEvent, ResultEvent],
    Field(discriminator="type"),
]
