"""Unit tests for askshell.config."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from askshell.config import (
    ConfigError,
    ConfigManager,
    PricingRates,
    SessionSettings,
    StoragePaths,
    UserConfig,
)


@pytest.fixture()
def configs(paths: StoragePaths) -> ConfigManager:
    return ConfigManager(paths)


# ---------------------------------------------------------------------------
# StoragePaths
# ---------------------------------------------------------------------------


class TestStoragePaths:
    def test_layout(self, tmp_path: Path) -> None:
        paths = StoragePaths.from_home(tmp_path)
        assert paths.config_file == tmp_path / "config.json"
        assert paths.sessions_dir == tmp_path / "sessions"
        assert paths.transcripts_dir == tmp_path / "transcripts"

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ASKSHELL_HOME", str(tmp_path / "env-home"))
        assert StoragePaths.from_home().base_dir == tmp_path / "env-home"

    def test_ensure_is_idempotent(self, paths: StoragePaths) -> None:
        paths.ensure()
        paths.ensure()
        assert paths.sessions_dir.is_dir()
        assert paths.transcripts_dir.is_dir()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestModels:
    def test_pricing_cost(self) -> None:
        rates = PricingRates(input_per_million=3.0, output_per_million=15.0)
        assert rates.cost(1000, 1000) == pytest.approx(0.018)

    @pytest.mark.parametrize(("raw", "days"), [("7d", 7), ("30", 30), (" 14D ", 14), (3, 3)])
    def test_legacy_expiry_strings(self, raw: object, days: int) -> None:
        assert SessionSettings(shell_session_expiry_days=raw).shell_session_expiry_days == days  # type: ignore[arg-type]

    def test_rejects_hour_expiry(self) -> None:
        with pytest.raises(ValidationError):
            SessionSettings(shell_session_expiry_days="24h")  # type: ignore[arg-type]

    def test_active_prompt_falls_back_to_default(self) -> None:
        config = UserConfig(current_system_prompt="custom")
        assert config.active_prompt() == config.default_system_prompt

    def test_active_prompt_uses_preset(self) -> None:
        config = UserConfig(current_system_prompt="git")
        assert "Git" in config.active_prompt()

    def test_unknown_keys_ignored(self) -> None:
        config = UserConfig.model_validate({"version": "1.0.0", "autoDetect": True})
        assert config.version == "1.0.0"


# ---------------------------------------------------------------------------
# ConfigManager
# ---------------------------------------------------------------------------


class TestConfigManager:
    @pytest.mark.asyncio
    async def test_missing_file_writes_defaults(self, configs: ConfigManager, paths: StoragePaths) -> None:
        config = await configs.load()
        assert config == UserConfig()
        assert json.loads(paths.config_file.read_text(encoding="utf-8"))["default_session"] == "global"

    @pytest.mark.asyncio
    async def test_partial_file_filled_with_defaults(self, paths: StoragePaths) -> None:
        paths.ensure()
        paths.config_file.write_text(json.dumps({"retry_attempts": 3}), encoding="utf-8")
        config = await ConfigManager(paths).load()
        assert config.retry_attempts == 3
        assert config.allowed_tools == ["Read", "Grep", "WebSearch"]

    @pytest.mark.asyncio
    async def test_invalid_file_raises_config_error(self, paths: StoragePaths) -> None:
        paths.ensure()
        paths.config_file.write_text("{oops", encoding="utf-8")
        with pytest.raises(ConfigError):
            await ConfigManager(paths).load()

    @pytest.mark.asyncio
    async def test_unreadable_file_raises_config_error(self, paths: StoragePaths) -> None:
        paths.ensure()
        paths.config_file.mkdir()
        with pytest.raises(ConfigError, match="Cannot read"):
            await ConfigManager(paths).load()

    @pytest.mark.asyncio
    async def test_non_utf8_file_raises_config_error(self, paths: StoragePaths) -> None:
        paths.ensure()
        paths.config_file.write_bytes(b"\xff\xfe")
        with pytest.raises(ConfigError):
            await ConfigManager(paths).load()

    @pytest.mark.asyncio
    async def test_uncreatable_home_raises_config_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        with pytest.raises(ConfigError):
            await ConfigManager(StoragePaths.from_home(blocker / "home")).load()

    @pytest.mark.asyncio
    async def test_load_is_cached(self, configs: ConfigManager, paths: StoragePaths) -> None:
        first = await configs.load()
        paths.config_file.write_text("{oops", encoding="utf-8")
        assert await configs.load() is first

    @pytest.mark.asyncio
    async def test_use_preset_persists(self, configs: ConfigManager, paths: StoragePaths) -> None:
        await configs.use_preset("git")
        reloaded = await ConfigManager(paths).load()
        assert reloaded.current_system_prompt == "git"

    @pytest.mark.asyncio
    async def test_unknown_preset(self, configs: ConfigManager) -> None:
        with pytest.raises(ConfigError, match="nodejs"):
            await configs.use_preset("nodejs")

    @pytest.mark.asyncio
    async def test_custom_prompt_is_activated(self, configs: ConfigManager) -> None:
        await configs.set_custom_prompt("Be terse.")
        assert await configs.current_system_prompt() == "Be terse."

    @pytest.mark.asyncio
    async def test_setters(self, configs: ConfigManager, paths: StoragePaths) -> None:
        await configs.set_allowed_tools(["Read", " Bash "])
        await configs.set_model("sonnet")
        await configs.set_default_prompt("Base prompt")
        reloaded = await ConfigManager(paths).load()
        assert reloaded.allowed_tools == ["Read", "Bash"]
        assert reloaded.model == "sonnet"
        assert reloaded.default_system_prompt == "Base prompt"

    @pytest.mark.asyncio
    async def test_reset(self, configs: ConfigManager) -> None:
        await configs.set_model("sonnet")
        assert (await configs.reset()).model is None

    @pytest.mark.asyncio
    async def test_describe(self, configs: ConfigManager) -> None:
        text = await configs.describe()
        assert "Active System Prompt: default" in text
        assert "Shell Session Expiry: 7 days" in text
