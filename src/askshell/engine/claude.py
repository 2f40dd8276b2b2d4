"""Claude Agent SDK engine — requires claude-agent-sdk (imported on first use).

Classes
-------
- ClaudeAgentEngine  — ``QueryEngine`` over ``claude_agent_sdk.query``
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from askshell.engine.base import QueryEngine
from askshell.engine.events import (
    EngineEvent,
    QueryRequest,
    ResultEvent,
    SystemInitEvent,
    TextEvent,
)
from askshell.session.state import TokenUsage

logger = logging.getLogger(__name__)

_SDK_IMPORT_ERROR = (
    "ClaudeAgentEngine requires the 'claude-agent-sdk' package. "
    "Install it with: pip install claude-agent-sdk"
)


def _usage_from(raw: dict[str, Any] | None) -> TokenUsage:
    if not raw:
        return TokenUsage()
    return TokenUsage(
        input_tokens=int(raw.get("input_tokens") or 0),
        output_tokens=int(raw.get("output_tokens") or 0),
    )


class ClaudeAgentEngine(QueryEngine):
    """Run exchanges through the Claude Agent SDK."""

    def __init__(self) -> None:
        try:
            import claude_agent_sdk as _sdk  # noqa: F401
        except ImportError as exc:
            raise ImportError(_SDK_IMPORT_ERROR) from exc

    def _options(self, request: QueryRequest) -> Any:
        from claude_agent_sdk import ClaudeAgentOptions

        options: dict[str, Any] = {
            "system_prompt": request.system_prompt,
            "allowed_tools": list(request.allowed_tools),
            "permission_mode": request.permission_mode.value,
            "cwd": str(request.cwd),
            "max_turns": request.max_turns,
        }
        if request.resume:
            options["resume"] = request.resume
        if request.model:
            options["model"] = request.model
        return ClaudeAgentOptions(**options)

    async def stream(self, request: QueryRequest) -> AsyncIterator[EngineEvent]:
        from claude_agent_sdk import (
            AssistantMessage,
            ResultMessage,
            SystemMessage,
            TextBlock,
            query,
        )

        async for message in query(prompt=request.prompt, options=self._options(request)):
            if isinstance(message, SystemMessage) and message.subtype == "init":
                token = message.data.get("session_id")
                if token:
                    yield SystemInitEvent(resume_token=token)
            elif isinstance(message, AssistantMessage):
                for block in message.content:
                    if isinstance(block, TextBlock):
                        yield TextEvent(text=block.text)
            elif isinstance(message, ResultMessage):
                yield ResultEvent(
                    num_turns=message.num_turns,
                    usage=_usage_from(message.usage),
                    is_error=message.is_error,
                    error_message=message.result if message.is_error else None,
                )
            else:
                logger.debug("Ignoring SDK message %s", type(message).__name__)
