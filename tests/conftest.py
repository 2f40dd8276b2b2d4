"""Shared fixtures: an isolated askshell home and a scripted engine."""
from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Sequence

import pytest

from askshell.config import StoragePaths
from askshell.engine.base import QueryEngine
from askshell.engine.events import EngineEvent, QueryRequest, ResultEvent, SystemInitEvent, TextEvent
from askshell.session.state import TokenUsage


class ScriptedEngine(QueryEngine):
    """Replays a fixed list of events per call and records every request.

    Each entry of ``scripts`` is consumed by one call to ``stream``; an
    entry that is an exception instance is raised instead.  The last entry
    is reused once the list runs out.
    """

    def __init__(self, scripts: Sequence[Sequence[EngineEvent] | BaseException]) -> None:
        self._scripts = list(scripts)
        self.requests: list[QueryRequest] = []

    async def stream(self, request: QueryRequest) -> AsyncIterator[EngineEvent]:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self._scripts) - 1)
        script = self._scripts[index]
        if isinstance(script, BaseException):
            raise script
        for event in script:
            yield event


def successful_exchange(
    token: str = "tok-1",
    text: str = "hello",
    turns: int = 1,
    input_tokens: int = 30,
    output_tokens: int = 20,
) -> list[EngineEvent]:
    return [
        SystemInitEvent(resume_token=token),
        TextEvent(text=text),
        ResultEvent(
            num_turns=turns,
            usage=TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens),
        ),
    ]


def failed_exchange(message: str = "overloaded") -> list[EngineEvent]:
    return [
        SystemInitEvent(resume_token="tok-err"),
        ResultEvent(num_turns=1, usage=TokenUsage(input_tokens=5), is_error=True, error_message=message),
    ]


@pytest.fixture()
def paths(tmp_path: Path) -> StoragePaths:
    return StoragePaths.from_home(tmp_path / "home")
