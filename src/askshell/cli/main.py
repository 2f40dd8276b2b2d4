"""CLI entry point for askshell.

Invoked as::

    askshell [OPTIONS] [QUESTION]...

or, during development::

    python -m askshell.cli.main

A bare question is asked in the session selected by ``--session``,
``--new-session``, the shell's process id, or the global session, in
that order.  Flags such as ``--list`` or ``--config`` run a management
command instead.
"""
from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from askshell import __version__
from askshell.config import ConfigError, ConfigManager, StoragePaths, UserConfig
from askshell.engine.base import EngineError, QueryEngine
from askshell.engine.events import PermissionMode
from askshell.engine.exchange import ExchangeRunner
from askshell.session.failures import NoPriorFailureError
from askshell.session.lifecycle import ExportFormat, format_session_info, format_session_list
from askshell.session.manager import SessionContext, SessionManager
from askshell.session.state import ResolutionRequest, shell_session_name
from askshell.session.store import SessionNotFoundError
from askshell.storage.async_base import StorageError
from askshell.storage.filesystem import AsyncFilesystemBackend

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], QueryEngine]

_EXPECTED_ERRORS = (
    SessionNotFoundError,
    NoPriorFailureError,
    ConfigError,
    EngineError,
    StorageError,
    OSError,
    ValueError,
    ImportError,
)


@dataclass
class CLIOptions:
    """Flags of one invocation, after click parsing."""

    question: str | None = None
    session_name: str | None = None
    new_session: str | None = None
    shell_pid: int | None = None
    system_prompt: str | None = None
    no_history: bool = False
    list_sessions: bool = False
    session_info: bool = False
    clear: bool = False
    clear_all: bool = False
    export_path: str | None = None
    export_format: ExportFormat = "text"
    retry: bool = False
    config_show: bool = False
    config_reset: bool = False
    use_prompt: str | None = None
    set_default_prompt: str | None = None
    allow_tools: str | None = None
    set_model: str | None = None
    permission_mode: PermissionMode | None = None
    verbose: bool = False

    @property
    def wants_config_command(self) -> bool:
        return bool(
            self.config_show
            or self.config_reset
            or self.use_prompt
            or self.set_default_prompt
            or self.allow_tools
            or self.set_model
        )

    @property
    def wants_session_command(self) -> bool:
        return bool(self.list_sessions or self.session_info or self.clear or self.clear_all or self.export_path)

    @property
    def has_work(self) -> bool:
        return bool(
            self.question
            or self.new_session
            or self.retry
            or self.wants_config_command
            or self.wants_session_command
        )

    def resolution_request(self) -> ResolutionRequest:
        return ResolutionRequest(
            explicit_name=self.new_session or self.session_name,
            caller_process_id=self.shell_pid,
            wants_new_named=self.new_session is not None,
            shell_scoped=self.shell_pid is not None,
        )

    def target_name(self, config: UserConfig) -> str:
        """Session a management command applies to when none is resolved."""
        if self.session_name:
            return self.session_name
        if self.shell_pid is not None:
            return shell_session_name(self.shell_pid)
        return config.default_session


def _default_engine() -> QueryEngine:
    from askshell.engine.claude import ClaudeAgentEngine

    return ClaudeAgentEngine()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _describe(exc: BaseException) -> str:
    """One-line diagnostic for ``exc``."""
    if isinstance(exc, ValidationError) and exc.errors():
        return exc.errors()[0]["msg"]
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


def _ok(message: str) -> None:
    console.print(f"[green]✓[/green] {escape(message)}", highlight=False)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_config_command(options: CLIOptions, configs: ConfigManager) -> int:
    if options.config_show:
        console.print(await configs.describe(), markup=False, highlight=False)
    elif options.config_reset:
        await configs.reset()
        _ok("Configuration reset to defaults")
    elif options.use_prompt:
        await configs.use_preset(options.use_prompt)
        _ok(f"Switched to '{options.use_prompt}' system prompt")
    elif options.set_default_prompt:
        await configs.set_custom_prompt(options.set_default_prompt)
        _ok("Custom system prompt set and activated")
    elif options.allow_tools:
        tools = [tool.strip() for tool in options.allow_tools.split(",") if tool.strip()]
        await configs.set_allowed_tools(tools)
        _ok(f"Allowed tools updated: {', '.join(tools)}")
    elif options.set_model:
        await configs.set_model(options.set_model)
        _ok(f"Model set to {options.set_model}")
    return 0


async def _handle_session_command(
    options: CLIOptions,
    manager: SessionManager,
    context: SessionContext,
) -> int:
    config = manager.config
    if options.list_sessions:
        records = await manager.list_sessions()
        console.print(format_session_list(records, options.session_name), markup=False, highlight=False)
        return 0

    if options.session_info:
        record = await manager.get_session_info(options.target_name(config), context)
        console.print(format_session_info(record), markup=False, highlight=False)
        return 0

    if options.clear:
        name = options.target_name(config)
        if not await manager.delete_session(name, context):
            err_console.print(f"Error: No session named '{name}' to clear", markup=False, highlight=False)
            return 1
        _ok(f"Session '{name}' cleared")
        return 0

    if options.clear_all:
        cleared = await manager.delete_all(context)
        _ok(f"Cleared {cleared} session(s)")
        return 0

    if options.export_path:
        name = options.target_name(config)
        path = await manager.export_session(name, options.export_path, options.export_format)
        _ok(f"Session '{name}' exported to {path}")
        return 0

    return 0


async def _handle_question(
    options: CLIOptions,
    manager: SessionManager,
    context: SessionContext,
    engine_factory: EngineFactory,
) -> int:
    config = manager.config
    record = await manager.resolve_session(options.resolution_request(), context)
    logger.debug("Using session %s (%s)", record.name, record.kind.value)

    if options.question is None:
        _ok(f"Session '{record.name}' ready")
        return 0

    runner = ExchangeRunner(manager, engine_factory(), config)
    streamed = False

    def _stream(fragment: str) -> None:
        nonlocal streamed
        streamed = True
        console.print(fragment, end="", markup=False, highlight=False, soft_wrap=True)

    result = await runner.ask(
        record,
        options.question,
        ephemeral=options.no_history,
        system_prompt=options.system_prompt,
        permission_mode=options.permission_mode,
        on_text=_stream if config.stream_output else None,
    )

    if streamed:
        console.print()
    elif result.text:
        console.print(result.text, markup=False, highlight=False, soft_wrap=True)

    if options.verbose:
        err_console.print(
            f"Tokens: {result.record.total_tokens:,} | Cost: ${result.record.total_cost:.4f}",
            markup=False,
            highlight=False,
        )

    if result.errored:
        detail = result.error_message or "the engine reported an error"
        err_console.print(f"Error: {detail}", markup=False, highlight=False)
        return 1
    return 0


async def run_cli(options: CLIOptions, paths: StoragePaths, engine_factory: EngineFactory) -> int:
    """Dispatch one invocation; return its exit code."""
    configs = ConfigManager(paths)
    try:
        config = await configs.load()
        manager = SessionManager(AsyncFilesystemBackend(paths.sessions_dir), config)
        context = SessionContext()

        await manager.sweep_expired()

        if options.wants_config_command:
            return await _handle_config_command(options, configs)

        if options.wants_session_command:
            return await _handle_session_command(options, manager, context)

        if options.retry:
            options.question = manager.require_last_failure()
            console.print(f"Retrying: {options.question}\n", markup=False, highlight=False)

        return await _handle_question(options, manager, context, engine_factory)
    except _EXPECTED_ERRORS as exc:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"Error: {_describe(exc)}", markup=False, highlight=False)
        return 1


# ---------------------------------------------------------------------------
# Click command
# ---------------------------------------------------------------------------


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("question", nargs=-1)
@click.option("--session", "-s", "session_name", default=None, help="Ask in (or manage) this named session.")
@click.option("--new-session", default=None, help="Start the named session afresh.")
@click.option(
    "--shell-pid",
    type=int,
    default=None,
    envvar="ASKSHELL_SHELL_PID",
    help="Process id of the calling shell; selects a per-shell session.",
)
@click.option("--system-prompt", "--prompt", "system_prompt", default=None, help="Override the system prompt for this question.")
@click.option("--no-history", is_flag=True, help="One-off question: no resume, no session update.")
@click.option("--list-sessions", "--list", "list_sessions", is_flag=True, help="List all sessions.")
@click.option("--session-info", "--info", "session_info", is_flag=True, help="Show session details.")
@click.option("--clear", is_flag=True, help="Delete the selected session.")
@click.option("--clear-all", is_flag=True, help="Delete every session.")
@click.option("--export", "export_path", default=None, type=click.Path(dir_okay=False), help="Export session metadata to a file.")
@click.option(
    "--format",
    "export_format",
    default="text",
    show_default=True,
    type=click.Choice(["text", "json", "yaml"], case_sensitive=False),
    help="Export format.",
)
@click.option("--retry", is_flag=True, help="Resubmit the last failed question.")
@click.option("--config-show", "--config", "config_show", is_flag=True, help="Show the configuration.")
@click.option("--config-reset", is_flag=True, help="Reset the configuration to defaults.")
@click.option("--use-prompt", default=None, help="Activate a system prompt preset.")
@click.option("--set-default-prompt", default=None, help="Set and activate the custom system prompt.")
@click.option("--allow-tools", default=None, help="Comma-separated default tool allowlist.")
@click.option("--set-model", default=None, help="Set the engine model.")
@click.option(
    "--permission-mode",
    default=None,
    type=click.Choice([mode.value for mode in PermissionMode]),
    help="Engine permission mode for this question.",
)
@click.option("--verbose", is_flag=True, help="Show debug logging and usage totals.")
@click.option(
    "--home",
    default=None,
    type=click.Path(file_okay=False),
    envvar="ASKSHELL_HOME",
    help="Directory holding config and sessions (default ~/.askshell).",
)
@click.version_option(version=__version__, prog_name="askshell")
@click.pass_context
def cli(
    ctx: click.Context,
    question: tuple[str, ...],
    session_name: str | None,
    new_session: str | None,
    shell_pid: int | None,
    system_prompt: str | None,
    no_history: bool,
    list_sessions: bool,
    session_info: bool,
    clear: bool,
    clear_all: bool,
    export_path: str | None,
    export_format: str,
    retry: bool,
    config_show: bool,
    config_reset: bool,
    use_prompt: str | None,
    set_default_prompt: str | None,
    allow_tools: str | None,
    set_model: str | None,
    permission_mode: str | None,
    verbose: bool,
    home: str | None,
) -> None:
    """Ask an AI assistant a question, keeping conversations per session."""
    _configure_logging(verbose)

    options = CLIOptions(
        question=" ".join(question) if question else None,
        session_name=session_name,
        new_session=new_session,
        shell_pid=shell_pid,
        system_prompt=system_prompt,
        no_history=no_history,
        list_sessions=list_sessions,
        session_info=session_info,
        clear=clear,
        clear_all=clear_all,
        export_path=export_path,
        export_format=export_format.lower(),  # type: ignore[arg-type]
        retry=retry,
        config_show=config_show,
        config_reset=config_reset,
        use_prompt=use_prompt,
        set_default_prompt=set_default_prompt,
        allow_tools=allow_tools,
        set_model=set_model,
        permission_mode=PermissionMode(permission_mode) if permission_mode else None,
        verbose=verbose,
    )
    engine_factory: EngineFactory = (ctx.obj or {}).get("engine_factory", _default_engine)
    paths = StoragePaths.from_home(Path(home) if home else None)

    if not options.has_work:
        click.echo(ctx.get_help())
        ctx.exit(1)

    ctx.exit(asyncio.run(run_cli(options, paths, engine_factory)))


if __name__ == "__main__":
    cli(sys.argv[1:])
