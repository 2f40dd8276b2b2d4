"""Unit tests for askshell.cli.main.

Uses Click's test runner (CliRunner) with a scripted engine injected via
``obj`` and an isolated ``--home`` directory, so no engine or real home
directory is touched.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from conftest import ScriptedEngine, failed_exchange, successful_exchange

from askshell import __version__
from askshell.cli.main import CLIOptions, cli
from askshell.config import UserConfig


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def home(tmp_path: Path) -> Path:
    return tmp_path / "home"


@pytest.fixture()
def engine() -> ScriptedEngine:
    return ScriptedEngine([successful_exchange(token="tok-cli", text="answer text")])


@pytest.fixture()
def invoke(runner: CliRunner, home: Path, engine: ScriptedEngine):
    def _invoke(*args: str):
        return runner.invoke(
            cli,
            ["--home", str(home), *args],
            obj={"engine_factory": lambda: engine},
        )

    return _invoke


def _stored(home: Path, name: str) -> dict:
    return json.loads((home / "sessions" / f"{name}.json").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# CLIOptions
# ---------------------------------------------------------------------------


class TestCLIOptions:
    def test_empty_options_have_no_work(self) -> None:
        assert CLIOptions().has_work is False

    def test_new_session_counts_as_work(self) -> None:
        assert CLIOptions(new_session="proj").has_work is True

    def test_new_session_wins_resolution(self) -> None:
        request = CLIOptions(session_name="a", new_session="b").resolution_request()
        assert request.explicit_name == "b"
        assert request.wants_new_named is True

    def test_shell_pid_marks_shell_scope(self) -> None:
        request = CLIOptions(shell_pid=77).resolution_request()
        assert request.shell_scoped is True
        assert request.caller_process_id == 77

    def test_target_name_order(self) -> None:
        config = UserConfig()
        assert CLIOptions(session_name="x", shell_pid=5).target_name(config) == "x"
        assert CLIOptions(shell_pid=5).target_name(config) == "shell-5"
        assert CLIOptions().target_name(config) == "global"


# ---------------------------------------------------------------------------
# Top-level behaviour
# ---------------------------------------------------------------------------


class TestTopLevel:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_arguments_prints_help_and_fails(self, invoke) -> None:
        result = invoke()
        assert result.exit_code == 1
        assert "Usage" in result.output

    def test_config_file_created_on_first_run(self, invoke, home: Path) -> None:
        invoke("--list")
        assert (home / "config.json").is_file()


# ---------------------------------------------------------------------------
# Asking questions
# ---------------------------------------------------------------------------


class TestAsk:
    def test_answer_is_printed_and_session_persisted(self, invoke, home: Path) -> None:
        result = invoke("what", "is", "this")
        assert result.exit_code == 0
        assert "answer text" in result.output
        data = _stored(home, "global")
        assert data["resume_token"] == "tok-cli"
        assert data["message_count"] == 1

    def test_question_words_are_joined(self, invoke, engine: ScriptedEngine) -> None:
        invoke("list", "big", "files")
        assert engine.requests[0].prompt == "list big files"

    def test_second_question_resumes(self, invoke, engine: ScriptedEngine) -> None:
        invoke("first")
        invoke("second")
        assert engine.requests[1].resume == "tok-cli"

    def test_named_session(self, invoke, home: Path) -> None:
        result = invoke("--session", "proj", "hello")
        assert result.exit_code == 0
        assert _stored(home, "proj")["scope"]["kind"] == "named"

    def test_shell_pid_selects_shell_session(self, invoke, home: Path) -> None:
        result = invoke("--shell-pid", "4242", "hello")
        assert result.exit_code == 0
        data = _stored(home, "shell-4242")
        assert data["scope"] == {"kind": "shell", "process_id": 4242}

    def test_no_history_leaves_no_session(self, invoke, home: Path, engine: ScriptedEngine) -> None:
        result = invoke("--no-history", "hello")
        assert result.exit_code == 0
        assert _stored(home, "global")["message_count"] == 0
        assert engine.requests[0].resume is None

    def test_system_prompt_flag_is_sent(self, invoke, engine: ScriptedEngine) -> None:
        invoke("--prompt", "be terse", "hello")
        assert engine.requests[0].system_prompt == "be terse"

    def test_permission_mode_flag_is_sent(self, invoke, engine: ScriptedEngine) -> None:
        invoke("--permission-mode", "plan", "hello")
        assert engine.requests[0].permission_mode.value == "plan"

    def test_new_session_without_question(self, invoke, home: Path) -> None:
        result = invoke("--new-session", "fresh")
        assert result.exit_code == 0
        assert "Session 'fresh' ready" in result.output
        assert _stored(home, "fresh")["message_count"] == 0

    def test_errored_exchange_exits_one(self, runner: CliRunner, home: Path) -> None:
        engine = ScriptedEngine([failed_exchange("overloaded")])
        result = runner.invoke(
            cli,
            ["--home", str(home), "hello"],
            obj={"engine_factory": lambda: engine},
        )
        assert result.exit_code == 1
        assert "Error: overloaded" in result.output

    def test_engine_exception_exits_one(self, runner: CliRunner, home: Path) -> None:
        engine = ScriptedEngine([ConnectionError("network down")])
        result = runner.invoke(
            cli,
            ["--home", str(home), "hello"],
            obj={"engine_factory": lambda: engine},
        )
        assert result.exit_code == 1
        assert "network down" in result.output

    def test_retry_without_prior_failure(self, invoke) -> None:
        result = invoke("--retry")
        assert result.exit_code == 1
        assert "No failed question" in result.output


# ---------------------------------------------------------------------------
# Session management
# ---------------------------------------------------------------------------


class TestSessionCommands:
    def test_list_when_empty(self, invoke) -> None:
        result = invoke("--list")
        assert result.exit_code == 0
        assert "No sessions found." in result.output

    def test_list_shows_sessions(self, invoke) -> None:
        invoke("hello")
        invoke("--session", "proj", "hello")
        result = invoke("--list")
        assert result.exit_code == 0
        assert "[global]" in result.output
        assert "[named]" in result.output

    def test_info_for_default_session(self, invoke) -> None:
        invoke("hello")
        result = invoke("--info")
        assert result.exit_code == 0
        assert "Name: global" in result.output
        assert "tok-cli" in result.output

    def test_info_for_missing_session(self, invoke) -> None:
        result = invoke("--info", "--session", "ghost")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_clear_named_session(self, invoke, home: Path) -> None:
        invoke("--session", "proj", "hello")
        result = invoke("--clear", "--session", "proj")
        assert result.exit_code == 0
        assert "Session 'proj' cleared" in result.output
        assert not (home / "sessions" / "proj.json").exists()

    def test_clear_missing_session(self, invoke) -> None:
        result = invoke("--clear", "--session", "ghost")
        assert result.exit_code == 1
        assert "No session named 'ghost'" in result.output

    def test_clear_all(self, invoke, home: Path) -> None:
        invoke("hello")
        invoke("--session", "proj", "hello")
        result = invoke("--clear-all")
        assert result.exit_code == 0
        assert "Cleared 2 session(s)" in result.output
        assert list((home / "sessions").glob("*.json")) == []

    def test_export_json(self, invoke, tmp_path: Path) -> None:
        invoke("hello")
        destination = tmp_path / "out.json"
        result = invoke("--export", str(destination), "--format", "json")
        assert result.exit_code == 0
        assert json.loads(destination.read_text(encoding="utf-8"))["name"] == "global"

    def test_export_text(self, invoke, tmp_path: Path) -> None:
        invoke("--session", "proj", "hello")
        destination = tmp_path / "out.txt"
        result = invoke("--export", str(destination), "--session", "proj")
        assert result.exit_code == 0
        assert "Session Export: proj" in destination.read_text(encoding="utf-8")

    def test_export_missing_session(self, invoke, tmp_path: Path) -> None:
        result = invoke("--export", str(tmp_path / "out.txt"), "--session", "ghost")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not (tmp_path / "out.txt").exists()


# ---------------------------------------------------------------------------
# Configuration commands
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def _config(self, home: Path) -> dict:
        return json.loads((home / "config.json").read_text(encoding="utf-8"))

    def test_show(self, invoke) -> None:
        result = invoke("--config")
        assert result.exit_code == 0
        assert "Active System Prompt: default" in result.output

    def test_use_prompt(self, invoke, home: Path) -> None:
        result = invoke("--use-prompt", "git")
        assert result.exit_code == 0
        assert self._config(home)["current_system_prompt"] == "git"

    def test_use_unknown_prompt(self, invoke) -> None:
        result = invoke("--use-prompt", "bogus")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_set_default_prompt(self, invoke, home: Path) -> None:
        invoke("--set-default-prompt", "Answer in haiku.")
        config = self._config(home)
        assert config["current_system_prompt"] == "custom"
        assert config["custom_system_prompts"]["custom"] == "Answer in haiku."

    def test_allow_tools(self, invoke, home: Path) -> None:
        result = invoke("--allow-tools", "Read, Bash")
        assert result.exit_code == 0
        assert self._config(home)["allowed_tools"] == ["Read", "Bash"]

    def test_set_model(self, invoke, home: Path) -> None:
        invoke("--set-model", "opus")
        assert self._config(home)["model"] == "opus"

    def test_reset(self, invoke, home: Path) -> None:
        invoke("--use-prompt", "git")
        result = invoke("--config-reset")
        assert result.exit_code == 0
        assert self._config(home)["current_system_prompt"] == "default"

    def test_configured_tools_reach_engine(self, invoke, engine: ScriptedEngine) -> None:
        invoke("--allow-tools", "Bash")
        invoke("hello")
        assert engine.requests[0].allowed_tools == ["Bash"]


# ---------------------------------------------------------------------------
# Damaged storage and odd names
# ---------------------------------------------------------------------------


class TestDamagedStorage:
    def test_undecodable_session_file_does_not_block_listing(self, invoke, home: Path) -> None:
        invoke("--session", "proj", "hello")
        (home / "sessions" / "bad.json").write_bytes(b"\xff\xfe")
        result = invoke("--list")
        assert result.exit_code == 0
        assert "proj" in result.output

    def test_clear_all_removes_undecodable_file(self, invoke, home: Path) -> None:
        invoke("hello")
        (home / "sessions" / "bad.json").write_bytes(b"\xff\xfe")
        result = invoke("--clear-all")
        assert result.exit_code == 0
        assert "Cleared 2 session(s)" in result.output
        assert list((home / "sessions").glob("*.json")) == []

    def test_unreadable_config_gives_one_line_error(self, invoke, home: Path) -> None:
        (home / "config.json").mkdir(parents=True)
        result = invoke("--list")
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert not isinstance(result.exception, OSError)

    def test_clear_with_path_name_leaves_global_alone(self, invoke, home: Path) -> None:
        invoke("hello")
        result = invoke("--clear", "--session", "../global")
        assert result.exit_code == 1
        assert "No session named '../global'" in result.output
        assert (home / "sessions" / "global.json").is_file()

    def test_info_with_path_name_is_not_found(self, invoke) -> None:
        invoke("hello")
        result = invoke("--info", "--session", "x/global")
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_shell_named_session_keeps_shell_kind(self, invoke, home: Path) -> None:
        result = invoke("--session", "shell-123", "hello")
        assert result.exit_code == 0
        assert _stored(home, "shell-123")["scope"] == {"kind": "shell", "process_id": 123}
