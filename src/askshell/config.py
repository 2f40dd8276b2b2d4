"""User configuration for askshell.

The configuration lives in ``<home>/config.json`` next to the ``sessions``
and ``transcripts`` directories.  The session core only reads it; the
``ConfigManager`` mutators back the CLI's configuration commands.

Classes
-------
- StoragePaths    — resolved locations of the config file and directories
- PricingRates    — USD per million input/output tokens
- SessionSettings — expiry-sweep settings
- UserConfig      — the full configuration document
- ConfigManager   — load, cache, mutate, and persist ``UserConfig``
- ConfigError     — unreadable or invalid configuration
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "ASKSHELL_HOME"
_DEFAULT_HOME: Path = Path.home() / ".askshell"
_DAY_COUNT = re.compile(r"^\s*(\d+)\s*d?\s*$", re.IGNORECASE)

_CONCISE = "Keep responses concise - maximum 2-3 sentences unless more detail is specifically requested."

DEFAULT_PRESETS: dict[str, str] = {
    "default": f"You are a helpful assistant. {_CONCISE}",
    "shell": (
        "You are a shell and command-line expert. Provide concise, accurate answers about "
        f"commands, scripts, and best practices. {_CONCISE}"
    ),
    "git": (
        "You are a Git version control expert. Provide clear explanations and examples for "
        f"Git commands and workflows. {_CONCISE}"
    ),
    "python": (
        "You are a Python expert. Help with Python development, packaging, and best "
        f"practices. {_CONCISE}"
    ),
    "custom": "",
}


class ConfigError(ValueError):
    """Raised when the configuration file cannot be parsed or validated."""


@dataclass(frozen=True)
class StoragePaths:
    """Locations of everything askshell keeps on disk."""

    base_dir: Path
    config_file: Path
    sessions_dir: Path
    transcripts_dir: Path

    @classmethod
    def from_home(cls, home: str | Path | None = None) -> "StoragePaths":
        """Resolve paths from ``home``, ``$ASKSHELL_HOME``, or ``~/.askshell``."""
        if home is None:
            env_home = os.environ.get(HOME_ENV_VAR)
            home = Path(env_home) if env_home else _DEFAULT_HOME
        base = Path(home).expanduser()
        return cls(
            base_dir=base,
            config_file=base / "config.json",
            sessions_dir=base / "sessions",
            transcripts_dir=base / "transcripts",
        )

    def ensure(self) -> None:
        """Create every directory; safe when another process races us."""
        for directory in (self.base_dir, self.sessions_dir, self.transcripts_dir):
            directory.mkdir(parents=True, exist_ok=True)


class PricingRates(BaseModel):
    """Per-token pricing used to estimate ``total_cost``.

    Attributes:
        input_per_million: USD per one million input tokens.
        output_per_million: USD per one million output tokens.
    """

    model_config = ConfigDict(validate_assignment=True)

    input_per_million: float = Field(default=3.0, ge=0.0)
    output_per_million: float = Field(default=15.0, ge=0.0)

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens / 1_000_000 * self.input_per_million
            + output_tokens / 1_000_000 * self.output_per_million
        )


class SessionSettings(BaseModel):
    """Expiry-sweep settings.

    Attributes:
        auto_cleanup: Run the expiry sweep before every command.
        shell_session_expiry_days: Idle days before a shell session expires.
        named_session_expiry_days: Idle days before a named session expires.
    """

    model_config = ConfigDict(validate_assignment=True)

    auto_cleanup: bool = True
    shell_session_expiry_days: int = Field(default=7, ge=0)
    named_session_expiry_days: int = Field(default=30, ge=0)

    @field_validator("shell_session_expiry_days", "named_session_expiry_days", mode="before")
    @classmethod
    def parse_day_count(cls, v: Any) -> Any:
        """Accept ``"7d"`` style strings written by older releases."""
        if isinstance(v, str):
            match = _DAY_COUNT.match(v)
            if match is None:
                raise ValueError(f"Expected a day count such as 7 or '7d', got {v!r}")
            return int(match.group(1))
        return v


class UserConfig(BaseModel):
    """The complete configuration document.

    Attributes:
        version: Config format version.
        default_system_prompt: Fallback when the active preset is empty.
        custom_system_prompts: Preset name to prompt text.
        current_system_prompt: Name of the active preset.
        allowed_tools: Tools the engine may use by default.
        default_session: Session targeted by session commands with no name.
        auto_compaction: Let the engine compact long conversations.
        max_history_turns: Maximum engine turns per exchange.
        retry_attempts: Automatic retries after a failed exchange.
        stream_output: Print response text as it arrives.
        model: Engine model identifier; engine default when unset.
        pricing: Rates used for cost estimation.
        sessions: Expiry-sweep settings.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    version: str = "1.0.0"
    default_system_prompt: str = (
        "You are a helpful assistant for developers working in the shell and "
        f"command-line environments. {_CONCISE}"
    )
    custom_system_prompts: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PRESETS))
    current_system_prompt: str = "default"
    allowed_tools: list[str] = Field(default_factory=lambda: ["Read", "Grep", "WebSearch"])
    default_session: str = "global"
    auto_compaction: bool = True
    max_history_turns: int = Field(default=50, ge=1)
    retry_attempts: int = Field(default=1, ge=0)
    stream_output: bool = True
    model: str | None = None
    pricing: PricingRates = Field(default_factory=PricingRates)
    sessions: SessionSettings = Field(default_factory=SessionSettings)

    @field_validator("allowed_tools")
    @classmethod
    def strip_tools(cls, v: list[str]) -> list[str]:
        return [tool.strip() for tool in v if tool.strip()]

    def active_prompt(self) -> str:
        """Return the active preset's text, or the default prompt when empty."""
        return self.custom_system_prompts.get(self.current_system_prompt) or self.default_system_prompt


class ConfigManager:
    """Load, cache, mutate, and persist the user configuration.

    Args:
        paths: Storage locations; defaults to ``StoragePaths.from_home()``.
    """

    def __init__(self, paths: StoragePaths | None = None) -> None:
        self._paths = paths or StoragePaths.from_home()
        self._config: UserConfig | None = None

    @property
    def paths(self) -> StoragePaths:
        return self._paths

    async def load(self) -> UserConfig:
        """Return the configuration, reading it on first use.

        A missing file is replaced by the defaults.  Keys absent from the
        file take their default values.

        Raises:
            ConfigError: If the file exists but is not valid configuration,
                or the config location cannot be read or created.
        """
        if self._config is not None:
            return self._config
        try:
            await asyncio.to_thread(self._paths.ensure)
            raw = await asyncio.to_thread(self._paths.config_file.read_text, encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No config at %s; writing defaults", self._paths.config_file)
            return await self.save(UserConfig())
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read configuration {self._paths.config_file}: {e}") from e

        try:
            self._config = UserConfig.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid configuration in {self._paths.config_file}: {e}") from e
        return self._config

    async def save(self, config: UserConfig) -> UserConfig:
        """Persist ``config`` and make it the cached configuration.

        Raises:
            ConfigError: If the config location cannot be written.
        """
        payload = json.dumps(config.model_dump(mode="json"), indent=2)
        try:
            await asyncio.to_thread(self._paths.ensure)
            await asyncio.to_thread(self._paths.config_file.write_text, payload, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot write configuration {self._paths.config_file}: {e}") from e
        self._config = config
        return config

    async def reset(self) -> UserConfig:
        return await self.save(UserConfig())

    async def current_system_prompt(self) -> str:
        return (await self.load()).active_prompt()

    async def use_preset(self, preset: str) -> UserConfig:
        """Activate ``preset``.

        Raises:
            ConfigError: If no preset of that name exists.
        """
        config = await self.load()
        if preset not in config.custom_system_prompts:
            known = ", ".join(sorted(config.custom_system_prompts))
            raise ConfigError(f"Unknown prompt preset {preset!r} (choose from: {known})")
        config.current_system_prompt = preset
        return await self.save(config)

    async def set_custom_prompt(self, prompt: str) -> UserConfig:
        """Store ``prompt`` as the ``custom`` preset and activate it."""
        config = await self.load()
        config.custom_system_prompts = {**config.custom_system_prompts, "custom": prompt}
        config.current_system_prompt = "custom"
        return await self.save(config)

    async def set_default_prompt(self, prompt: str) -> UserConfig:
        config = await self.load()
        config.default_system_prompt = prompt
        return await self.save(config)

    async def set_allowed_tools(self, tools: list[str]) -> UserConfig:
        config = await self.load()
        config.allowed_tools = tools
        return await self.save(config)

    async def set_model(self, model: str) -> UserConfig:
        config = await self.load()
        config.model = model
        return await self.save(config)

    async def describe(self) -> str:
        """Render the configuration as a plain-text report."""
        config = await self.load()
        on_off = {True: "enabled", False: "disabled"}
        lines = [
            f"Version: {config.version}",
            f"Active System Prompt: {config.current_system_prompt}",
            f"Model: {config.model or 'engine default'}",
            f"Allowed Tools: {', '.join(config.allowed_tools)}",
            f"Default Session: {config.default_session}",
            f"Max History Turns: {config.max_history_turns}",
            f"Streaming: {on_off[config.stream_output]}",
            f"Auto Compaction: {on_off[config.auto_compaction]}",
            f"Retry Attempts: {config.retry_attempts}",
            f"Pricing: ${config.pricing.input_per_million:.2f} in / "
            f"${config.pricing.output_per_million:.2f} out per 1M tokens",
            "",
            "System Prompt Presets:",
        ]
        for name, prompt in config.custom_system_prompts.items():
            marker = " *" if name == config.current_system_prompt else ""
            lines.append(f"  - {name}{marker}: {prompt or '(empty)'}")
        lines += [
            "",
            "Session Settings:",
            f"  - Auto Cleanup: {on_off[config.sessions.auto_cleanup]}",
            f"  - Shell Session Expiry: {config.sessions.shell_session_expiry_days} days",
            f"  - Named Session Expiry: {config.sessions.named_session_expiry_days} days",
            "",
            f"Config Location: {self._paths.config_file}",
            f"Sessions Directory: {self._paths.sessions_dir}",
        ]
        return "\n".join(lines)
