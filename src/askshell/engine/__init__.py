"""AI engine seam.

Public surface
--------------
- QueryEngine        — abstract streaming engine
- ClaudeAgentEngine  — Claude Agent SDK implementation
- ExchangeRunner     — runs one question against a session
- ExchangeResult     — outcome of one exchange
- QueryRequest, PermissionMode, SystemInitEvent, TextEvent, ResultEvent
- EngineError        — an exchange raised or reported an error
"""
from __future__ import annotations

from askshell.engine.base import EngineError, QueryEngine
from askshell.engine.claude import ClaudeAgentEngine
from askshell.engine.events import (
    EngineEvent,
    PermissionMode,
    QueryRequest,
    ResultEvent,
    SystemInitEvent,
    TextEvent,
)
from askshell.engine.exchange import ExchangeResult, ExchangeRunner

__all__ = [
    "ClaudeAgentEngine",
    "EngineError",
    "EngineEvent",
    "ExchangeResult",
    "ExchangeRunner",
    "PermissionMode",
    "QueryEngine",
    "QueryRequest",
    "ResultEvent",
    "SystemInitEvent",
    "TextEvent",
]
