"""Tests for the CLI host."""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from conftest import NOW_SECONDS, TODAY
from pomodoro_timer.cli import PACKAGE_LOGGER, JSONFormatter, _setup_logging, main, run_loop
from pomodoro_timer.config import Config
from pomodoro_timer.engine import CycleEngine
from pomodoro_timer.models import Mode
from pomodoro_timer.storage import MemoryStorage
from pomodoro_timer.store import STATE_KEY, StateStore


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"state_dir": str(tmp_path / "state"), "log_dir": str(tmp_path / "logs")}),
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("pomodoro_timer.cli._setup_logging") as mocked:
        yield mocked


def _saved(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "state" / f"{STATE_KEY}.json").read_text(encoding="utf-8"))


def _cli(config_path: Path, *args: str) -> int:
    return main(["--config", str(config_path), *args])


class TestCommands:
    """Tests for one-shot subcommands."""

    def test_status_default(self, config_path, capsys):
        """Test status renders without mutating state."""
        assert _cli(config_path) == 0

        out = capsys.readouterr().out
        assert "25:00" in out

    def test_start_then_pause(self, config_path, tmp_path):
        """Test start and pause persist the running flag."""
        assert _cli(config_path, "start") == 0
        assert _saved(tmp_path)["timer"]["running"] is True

        assert _cli(config_path, "pause") == 0
        assert _saved(tmp_path)["timer"]["running"] is False

    def test_skip_counts_pomodoro(self, config_path, tmp_path):
        """Test skip finishes the work interval."""
        assert _cli(config_path, "skip") == 0

        saved = _saved(tmp_path)
        assert saved["doneToday"] == 1
        assert saved["timer"]["mode"] == "shortBreak"

    def test_mode(self, config_path, tmp_path):
        """Test mode switches the timer."""
        assert _cli(config_path, "mode", "longBreak") == 0

        assert _saved(tmp_path)["timer"]["remainingSec"] == 15 * 60

    def test_settings(self, config_path, tmp_path):
        """Test settings flags are applied."""
        code = _cli(
            config_path, "settings", "--pomodoro", "40", "--long-every", "3", "--auto-start"
        )

        assert code == 0

        saved = _saved(tmp_path)
        assert saved["settings"]["pomodoroMin"] == 40
        assert saved["settings"]["longEvery"] == 3
        assert saved["settings"]["autoStartNext"] is True
        assert saved["settings"]["shortMin"] == 5
        assert saved["timer"]["remainingSec"] == 40 * 60

    def test_add_select_delete(self, config_path, tmp_path):
        """Test task commands with id prefixes."""
        assert _cli(config_path, "add", "Write docs", "--estimate", "2") == 0
        assert _cli(config_path, "add", "Fix bug") == 0
        saved = _saved(tmp_path)
        newest, oldest = saved["tasks"]
        assert newest["name"] == "Fix bug"
        assert saved["currentTaskId"] == oldest["id"]

        assert _cli(config_path, "select", newest["id"][:8]) == 0
        assert _saved(tmp_path)["currentTaskId"] == newest["id"]

        assert _cli(config_path, "delete", newest["id"]) == 0
        saved = _saved(tmp_path)
        assert [t["id"] for t in saved["tasks"]] == [oldest["id"]]
        assert saved["currentTaskId"] is None

    def test_add_invalid(self, config_path, capsys):
        """Test invalid task input reports an error."""
        assert _cli(config_path, "add", "   ") == 1

        assert "Task needs a name" in capsys.readouterr().out

    def test_select_unknown(self, config_path):
        """Test unknown ids are rejected by the host."""
        assert _cli(config_path, "select", "nope") == 1

    def test_reset_requires_confirmation(self, config_path, tmp_path):
        """Test declining the prompt keeps state."""
        _cli(config_path, "add", "Keep me")

        with patch("pomodoro_timer.cli.Confirm.ask", return_value=False):
            assert _cli(config_path, "reset") == 0

        assert len(_saved(tmp_path)["tasks"]) == 1

    def test_reset_yes(self, config_path, tmp_path):
        """Test --yes bypasses the prompt."""
        _cli(config_path, "add", "Gone")

        assert _cli(config_path, "reset", "--yes") == 0

        assert _saved(tmp_path)["tasks"] == []

    def test_bad_config(self, tmp_path, capsys):
        """Test missing config file exits with 1."""
        assert main(["--config", str(tmp_path / "absent.json"), "status"]) == 1

        assert "Error loading config" in capsys.readouterr().out

    def test_mistyped_state_dir(self, tmp_path, capsys):
        """Test a non-string state_dir is reported instead of crashing."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"state_dir": 5}), encoding="utf-8")

        assert main(["--config", str(path), "status"]) == 1

        assert "state_dir" in capsys.readouterr().out


class TestRunLoop:
    """Tests for run_loop."""

    def _engine(self) -> CycleEngine:
        store = StateStore(MemoryStorage())
        store.load(TODAY)
        return CycleEngine(store, clock=lambda: NOW_SECONDS, today=lambda: TODAY)

    def _console(self) -> Console:
        return Console(file=io.StringIO(), width=100)

    def test_until_complete(self):
        """Test loop ticks until the interval finishes."""
        engine = self._engine()
        engine.state.timer.remaining_seconds = 3
        sleeps = []

        ticks = run_loop(engine, self._console(), 1.0, until_complete=True, sleep=sleeps.append)

        assert ticks == 3
        assert sleeps == [1.0, 1.0, 1.0]
        assert engine.state.timer.mode == Mode.SHORT_BREAK
        assert engine.state.timer.running is False
        assert engine.state.done_today == 1

    def test_stops_when_interval_ends_without_auto_start(self):
        """Test loop exits after a completion that leaves the timer idle."""
        engine = self._engine()
        engine.state.timer.remaining_seconds = 2

        ticks = run_loop(engine, self._console(), 1.0, sleep=lambda _: None)

        assert ticks == 2
        assert engine.state.timer.mode == Mode.SHORT_BREAK

    def test_auto_start_keeps_running(self):
        """Test auto-start continues into the next interval."""
        engine = self._engine()
        engine.apply_settings({"auto_start_next": True, "short_break_minutes": 1})
        engine.state.timer.remaining_seconds = 1

        ticks = run_loop(engine, self._console(), 1.0, sleep=lambda _: None, max_ticks=5)

        assert ticks == 5
        assert engine.state.timer.mode == Mode.SHORT_BREAK
        assert engine.state.timer.running is True
        assert engine.state.timer.remaining_seconds == 56

    def test_interrupt_pauses(self):
        """Test Ctrl+C pauses the timer."""
        engine = self._engine()

        def interrupt(_):
            raise KeyboardInterrupt

        ticks = run_loop(engine, self._console(), 1.0, sleep=interrupt)

        assert ticks == 0
        assert engine.state.timer.running is False
        assert engine.state.timer.remaining_seconds == 1500


class TestLogging:
    """Tests for structured logging helpers."""

    def test_json_formatter(self):
        """Test records are formatted as JSON with extra context."""
        record = logging.LogRecord("x", logging.INFO, __file__, 10, "hello", None, None)
        record.extra_context = {"key": "value"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["event"] == "hello"
        assert data["context"]["key"] == "value"
        assert data["context"]["source"] == "x:10"

    def test_json_formatter_static_context(self):
        """Test static context is merged and record context wins on conflict."""
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "tick", None, None)
        record.extra_context = {"command": "override"}

        data = json.loads(JSONFormatter({"command": "run", "state_key": "k"}).format(record))

        assert data["context"]["state_key"] == "k"
        assert data["context"]["command"] == "override"

    def test_setup_logging_configures_package_logger(self, tmp_path, no_logging_setup):
        """Test setup writes JSON lines and leaves the root logger alone."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        saved = (package_logger.handlers[:], package_logger.level, package_logger.propagate)
        root_handlers = logging.getLogger().handlers[:]
        config = Config.from_dict({"state_dir": str(tmp_path), "log_dir": str(tmp_path / "logs")})
        try:
            _setup_logging(config, debug=True, command="skip")
            for handler in package_logger.handlers:
                handler.flush()

            first = json.loads(config.log_file.read_text(encoding="utf-8").splitlines()[0])
            assert first["event"] == "Logging initialized"
            assert first["context"]["command"] == "skip"
            assert first["context"]["state_key"] == STATE_KEY
            assert package_logger.propagate is False
            assert logging.getLogger().handlers == root_handlers
        finally:
            for handler in package_logger.handlers[:]:
                package_logger.removeHandler(handler)
                handler.close()
            handlers, level, propagate = saved
            for handler in handlers:
                package_logger.addHandler(handler)
            package_logger.setLevel(level)
            package_logger.propagate = propagate
