"""Abstract AI query engine.

Classes
-------
- QueryEngine  — abstract streaming engine
- EngineError  — an exchange failed or reported an error result
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from askshell.engine.events import EngineEvent, QueryRequest


class EngineError(RuntimeError):
    """Raised when an exchange raises or ends with an error result."""


class QueryEngine(ABC):
    """Streams the events of one exchange.

    Implementations translate a ``QueryRequest`` into a call on a concrete
    SDK and map whatever it yields onto askshell's event types.
    """

    @abstractmethod
    def stream(self, request: QueryRequest) -> AsyncIterator[EngineEvent]:
        """Submit ``request`` and yield its events in order."""
