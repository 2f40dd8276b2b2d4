"""askshell — a shell-friendly AI assistant with persistent sessions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import askshell
>>> askshell.__version__
'0.1.0'
"""
from __future__ import annotations

# Configuration
from askshell.config import (
    ConfigError,
    ConfigManager,
    PricingRates,
    SessionSettings,
    StoragePaths,
    UserConfig,
)

# Session core
from askshell.session.failures import FailureCache, NoPriorFailureError
from askshell.session.lifecycle import SessionLifecycle
from askshell.session.manager import SessionContext, SessionManager
from askshell.session.resolver import SessionResolver
from askshell.session.state import (
    GlobalScope,
    NamedScope,
    ResolutionRequest,
    SessionKind,
    SessionRecord,
    ShellScope,
    TokenUsage,
)
from askshell.session.store import SessionNotFoundError, SessionStore

# Storage backends
from askshell.storage.async_base import AsyncStorageBackend, StorageError
from askshell.storage.async_memory import AsyncInMemoryBackend
from askshell.storage.filesystem import AsyncFilesystemBackend

# Engine
from askshell.engine.base import EngineError, QueryEngine
from askshell.engine.exchange import ExchangeResult, ExchangeRunner

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Configuration
    "ConfigError",
    "ConfigManager",
    "PricingRates",
    "SessionSettings",
    "StoragePaths",
    "UserConfig",
    # Session core
    "FailureCache",
    "GlobalScope",
    "NamedScope",
    "NoPriorFailureError",
    "ResolutionRequest",
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
    # Storage
    "AsyncFilesystemBackend",
    "AsyncInMemoryBackend",
    "AsyncStorageBackend",
    "StorageError",
    # Engine
    "EngineError",
    "ExchangeResult",
    "ExchangeRunner",
    "QueryEngine",
]
