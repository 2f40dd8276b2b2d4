"""Drive one question through the engine against a resolved session.

Classes
-------
- ExchangeResult  — what one exchange produced
- ExchangeRunner  — build the request, consume events, record the outcome
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from askshell.config import UserConfig
from askshell.engine.base import EngineError, QueryEngine
from askshell.engine.events import (
    PermissionMode,
    QueryRequest,
    ResultEvent,
    SystemInitEvent,
    TextEvent,
)
from askshell.session.manager import SessionManager
from askshell.session.state import SessionRecord, TokenUsage

logger = logging.getLogger(__name__)

TextCallback = Callable[[str], None]


@dataclass
class ExchangeResult:
    """Outcome of one exchange.

    Attributes:
        record: The session record after the outcome was applied.
        text: Concatenated response text.
        turns: Turns reported by the terminal event.
        usage: Token usage reported by the terminal event.
        errored: True when the terminal event carried the error flag.
        error_message: Engine-supplied error detail, if any.
    """

    record: SessionRecord
    text: str = ""
    turns: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)
    errored: bool = False
    error_message: str | None = None


class ExchangeRunner:
    """Run questions through a ``QueryEngine`` and account for them.

    Args:
        manager: Session facade used to record outcomes and failures.
        engine: The engine exchanges are sent to.
        config: Supplies prompts, tools, turn limits, model, and retries.
    """

    def __init__(self, manager: SessionManager, engine: QueryEngine, config: UserConfig) -> None:
        self._manager = manager
        self._engine = engine
        self._config = config

    def build_request(
        self,
        record: SessionRecord,
        question: str,
        *,
        ephemeral: bool = False,
        system_prompt: str | None = None,
        permission_mode: PermissionMode | None = None,
        cwd: Path | None = None,
    ) -> QueryRequest:
        """Assemble the engine request for ``question``.

        The system prompt is the explicit override, else the session's own,
        else the configured preset.  Ephemeral exchanges never resume.
        """
        prompt = system_prompt or record.override_prompt or self._config.active_prompt()
        tools = record.override_tools if record.override_tools is not None else self._config.allowed_tools
        return QueryRequest(
            prompt=question,
            system_prompt=prompt,
            allowed_tools=list(tools),
            permission_mode=permission_mode or PermissionMode.BYPASS_PERMISSIONS,
            cwd=cwd or Path.cwd(),
            max_turns=self._config.max_history_turns,
            resume=None if ephemeral else record.resume_token,
            model=self._config.model,
        )

    async def run(
        self,
        record: SessionRecord,
        question: str,
        *,
        ephemeral: bool = False,
        system_prompt: str | None = None,
        permission_mode: PermissionMode | None = None,
        cwd: Path | None = None,
        on_text: TextCallback | None = None,
    ) -> ExchangeResult:
        """Send ``question`` and fold the outcome into ``record``.

        A question whose exchange raises or reports an error is remembered
        in the failure cache before the failure is surfaced.

        Raises:
            EngineError: If the engine raised while streaming.
        """
        request = self.build_request(
            record,
            question,
            ephemeral=ephemeral,
            system_prompt=system_prompt,
            permission_mode=permission_mode,
            cwd=cwd,
        )
        logger.debug(
            "Exchange on %r (resume=%s, tools=%s)",
            record.name,
            request.resume is not None,
            ",".join(request.allowed_tools),
        )

        fragments: list[str] = []
        result = ResultEvent()
        try:
            async for event in self._engine.stream(request):
                if isinstance(event, SystemInitEvent):
                    if not ephemeral:
                        record.attach_resume_token(event.resume_token)
                    logger.debug("Engine issued resume token %s", event.resume_token)
                elif isinstance(event, TextEvent):
                    fragments.append(event.text)
                    if on_text is not None:
                        on_text(event.text)
                elif isinstance(event, ResultEvent):
                    result = event
        except Exception as exc:
            self._manager.record_failure(question)
            raise EngineError(str(exc) or type(exc).__name__) from exc

        record = await self._manager.record_exchange_outcome(
            record,
            ephemeral=ephemeral,
            turns=result.num_turns,
            usage=result.usage,
            errored=result.is_error,
        )
        if result.is_error:
            self._manager.record_failure(question)

        return ExchangeResult(
            record=record,
            text="".join(fragments),
            turns=result.num_turns,
            usage=result.usage,
            errored=result.is_error,
            error_message=result.error_message,
        )

    async def ask(
        self,
        record: SessionRecord,
        question: str,
        **kwargs: object,
    ) -> ExchangeResult:
        """Like ``run``, retrying a failed exchange up to ``retry_attempts`` times.

        Each retry resubmits the text held by the failure cache.

        Raises:
            EngineError: If the last attempt raised.
        """
        attempts_left = self._config.retry_attempts
        while True:
            try:
                result = await self.run(record, question, **kwargs)  # type: ignore[arg-type]
            except EngineError:
                if attempts_left <= 0:
                    raise
            else:
                if not result.errored or attempts_left <= 0:
                    return result
                record = result.record
            attempts_left -= 1
            question = self._manager.require_last_failure()
            logger.info("Retrying failed question (%d attempt(s) left)", attempts_left)
