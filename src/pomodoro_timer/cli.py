"""CLI entry point for the Pomodoro timer.

This module handles command-line argument parsing, logging setup, and the
terminal host that drives the core: one-shot commands that mutate the
persisted state, and a ``run`` loop that delivers the one-second tick.
"""

from __future__ import annotations

import argparse
import json
import logging
import logging.handlers
import sys
import time
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.prompt import Confirm

from .config import Config, load_config
from .engine import CycleEngine
from .exceptions import ConfigError
from .models import Mode
from .queries import build_snapshot
from .storage import JsonFileStorage
from .store import StateStore
from .views import render_dashboard

logger = logging.getLogger(__name__)


PACKAGE_LOGGER = "pomodoro_timer"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 3


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    ``static_context`` is merged into every record, so each line of a run
    carries the invoked command and the state slot it touched.
    """

    def __init__(self, static_context: dict | None = None):
        super().__init__()
        self.static_context = dict(static_context or {})

    def format(self, record: logging.LogRecord) -> str:
        context = dict(self.static_context)
        context["source"] = f"{record.name}:{record.lineno}"
        context.update(getattr(record, "extra_context", {}))

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
            "context": context,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _setup_logging(config: Config, debug: bool, command: str | None = None) -> None:
    """Route the package's log records to a rotating JSON file.

    Only the ``pomodoro_timer`` logger is configured; records do not
    propagate to the root logger, so an embedding application keeps its
    own handlers untouched.

    Args:
        config: Host configuration supplying ``log_file`` and ``state_key``
        debug: Enable debug level logging
        command: Subcommand recorded with every line
    """
    level = logging.DEBUG if debug else logging.INFO
    config.log_file.parent.mkdir(parents=True, exist_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
        handler.close()

    file_handler = logging.handlers.RotatingFileHandler(
        config.log_file,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        JSONFormatter({"command": command or "status", "state_key": config.state_key})
    )
    package_logger.addHandler(file_handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    logger.info(
        "Logging initialized",
        extra={"extra_context": {"log_file": str(config.log_file)}},
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pomodoro",
        description="Pomodoro timer with per-task progress and a daily counter",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.json (default: built-in defaults)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("status", help="Show the timer and task list")
    sub.add_parser("start", help="Start or resume the timer")
    sub.add_parser("pause", help="Pause the timer")
    sub.add_parser("skip", help="Finish the current interval now")

    mode = sub.add_parser("mode", help="Restart the timer in another mode")
    mode.add_argument("mode", choices=[m.value for m in Mode])

    settings = sub.add_parser("settings", help="Change interval settings")
    settings.add_argument("--pomodoro", metavar="MIN", help="Work interval minutes")
    settings.add_argument("--short", metavar="MIN", help="Short break minutes")
    settings.add_argument("--long", metavar="MIN", help="Long break minutes")
    settings.add_argument("--long-every", metavar="N", help="Work intervals per long break")
    settings.add_argument(
        "--auto-start",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Start the next interval automatically",
    )

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("name")
    add.add_argument("--estimate", default="1", help="Estimated pomodoros (default: 1)")

    select = sub.add_parser("select", help="Make a task current")
    select.add_argument("task_id", help="Task id or unique id prefix")

    delete = sub.add_parser("delete", help="Delete a task")
    delete.add_argument("task_id", help="Task id or unique id prefix")

    reset = sub.add_parser("reset", help="Reset tasks, settings and counters")
    reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    run = sub.add_parser("run", help="Start the timer and tick until interrupted")
    run.add_argument(
        "--until-complete",
        action="store_true",
        help="Stop once the current interval finishes",
    )

    return parser


def _resolve_task_id(engine: CycleEngine, prefix: str) -> str | None:
    """Expand a unique id prefix to a full task id."""
    matches = [t.id for t in engine.state.tasks if t.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    return None


def _settings_from_args(args: argparse.Namespace) -> dict:
    raw: dict = {}
    if args.pomodoro is not None:
        raw["pomodoro_minutes"] = args.pomodoro
    if args.short is not None:
        raw["short_break_minutes"] = args.short
    if args.long is not None:
        raw["long_break_minutes"] = args.long
    if args.long_every is not None:
        raw["long_break_every"] = args.long_every
    if args.auto_start is not None:
        raw["auto_start_next"] = args.auto_start
    return raw


def run_loop(
    engine: CycleEngine,
    console: Console,
    tick_seconds: float,
    until_complete: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    max_ticks: int | None = None,
) -> int:
    """Drive the engine with one tick per ``tick_seconds`` and render live.

    Args:
        engine: Engine to drive
        console: Rich Console for output
        tick_seconds: Delay between ticks
        until_complete: Return once the current interval completes
        sleep: Sleep function (injectable for tests)
        max_ticks: Stop after this many ticks (None = unbounded)

    Returns:
        Number of ticks delivered
    """
    engine.start()
    ticks = 0

    def frame():
        warning = engine.store.last_save_error
        return render_dashboard(build_snapshot(engine.state), str(warning) if warning else None)

    try:
        with Live(frame(), console=console, refresh_per_second=4) as live:
            while max_ticks is None or ticks < max_ticks:
                sleep(tick_seconds)
                round_before = engine.state.timer.round
                mode_before = engine.state.timer.mode
                engine.advance_one_second()
                ticks += 1
                live.update(frame())

                completed = (
                    engine.state.timer.mode != mode_before
                    or engine.state.timer.round != round_before
                )
                if until_complete and completed:
                    engine.pause()
                    break
                # Interval finished without auto-start.
                if not engine.state.timer.running:
                    break
    except KeyboardInterrupt:
        logger.info("Run loop interrupted, pausing timer")
        engine.pause()

    return ticks


def _dispatch(
    args: argparse.Namespace, engine: CycleEngine, config: Config, console: Console
) -> int:
    command = args.command or "status"

    if command == "start":
        engine.start()
    elif command == "pause":
        engine.pause()
    elif command == "skip":
        engine.finish_cycle()
    elif command == "mode":
        engine.switch_mode(args.mode)
    elif command == "settings":
        engine.apply_settings(_settings_from_args(args))
    elif command == "add":
        task = engine.add_task(args.name, args.estimate)
        if task is None:
            console.print("[red]Task needs a name and an estimate of at least 1[/red]")
            return 1
    elif command in ("select", "delete"):
        task_id = _resolve_task_id(engine, args.task_id)
        if task_id is None:
            console.print(f"[red]No unique task matches '{args.task_id}'[/red]")
            return 1
        if command == "select":
            engine.select_task(task_id)
        else:
            engine.delete_task(task_id)
    elif command == "reset":
        if not args.yes and not Confirm.ask(
            "Reset everything (tasks, settings and counters)?", console=console
        ):
            console.print("[yellow]Reset cancelled[/yellow]")
            return 0
        engine.reset_all()
    elif command == "run":
        run_loop(engine, console, config.tick_seconds, until_complete=args.until_complete)

    warning = engine.store.last_save_error
    if warning:
        console.print(f"[yellow]Warning: {warning}[/yellow]")
    console.print(render_dashboard(build_snapshot(engine.state)))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0=success, 1=error)
    """
    args = _build_parser().parse_args(argv)
    console = Console()

    try:
        config = load_config(args.config)
    except ConfigError as err:
        console.print(f"[red]Error loading config: {err}[/red]")
        return 1

    _setup_logging(config, args.debug, args.command)
    logger.info(
        "Command invoked",
        extra={"extra_context": {"command": args.command, "state_dir": str(config.state_dir)}},
    )

    store = StateStore(JsonFileStorage(config.state_dir), config.state_key)
    store.load()
    engine = CycleEngine(store)

    return _dispatch(args, engine, config, console)


if __name__ == "__main__":
    sys.exit(main())
