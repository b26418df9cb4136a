"""State data models for the Pomodoro core.

The wire keys used by ``to_dict``/``from_dict`` follow the original browser
record (``pomodoroMin``, ``remainingSec``, ``est`` ...) so that records written
before the ``version`` field existed still load.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import DeserializationError

SCHEMA_VERSION = 1

MIN_INTERVAL_MINUTES = 1
MIN_LONG_BREAK_EVERY = 2


class Mode(str, Enum):
    """Timer mode. Values are the persisted identifiers."""

    POMODORO = "pomodoro"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


def _read_int(payload: dict, key: str, default: int, minimum: int | None = None) -> int:
    """Read an integer field, falling back to ``default`` when missing.

    Finite fractional numbers are floored; older records accepted any
    finite estimate such as 2.5.

    Raises:
        DeserializationError: If the value is present but not a finite number
    """
    if key not in payload or payload[key] is None:
        return default
    value = payload[key]
    if isinstance(value, bool):
        raise DeserializationError(f"{key} must be a number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise DeserializationError(f"{key} must be a finite number, got {value!r}")
        value = math.floor(value)
    if not isinstance(value, int):
        raise DeserializationError(f"{key} must be an integer, got {value!r}")
    if minimum is not None:
        value = max(minimum, value)
    return value


def _read_bool(payload: dict, key: str, default: bool) -> bool:
    value = payload.get(key, default)
    if not isinstance(value, bool):
        raise DeserializationError(f"{key} must be a boolean, got {value!r}")
    return value


def _read_object(payload: dict, key: str) -> dict:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DeserializationError(f"{key} must be an object, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class Settings:
    """User-editable interval settings.

    Frozen: an edit always replaces the whole object.
    """

    pomodoro_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    long_break_every: int = 4
    auto_start_next: bool = False

    def minutes_for(self, mode: Mode) -> int:
        """Return the configured duration of ``mode`` in minutes."""
        if mode == Mode.POMODORO:
            return self.pomodoro_minutes
        if mode == Mode.SHORT_BREAK:
            return self.short_break_minutes
        return self.long_break_minutes

    def seconds_for(self, mode: Mode) -> int:
        return self.minutes_for(mode) * 60

    def to_dict(self) -> dict:
        return {
            "pomodoroMin": self.pomodoro_minutes,
            "shortMin": self.short_break_minutes,
            "longMin": self.long_break_minutes,
            "longEvery": self.long_break_every,
            "autoStartNext": self.auto_start_next,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Settings:
        defaults = cls()
        return cls(
            pomodoro_minutes=_read_int(
                data, "pomodoroMin", defaults.pomodoro_minutes, MIN_INTERVAL_MINUTES
            ),
            short_break_minutes=_read_int(
                data, "shortMin", defaults.short_break_minutes, MIN_INTERVAL_MINUTES
            ),
            long_break_minutes=_read_int(
                data, "longMin", defaults.long_break_minutes, MIN_INTERVAL_MINUTES
            ),
            long_break_every=_read_int(
                data, "longEvery", defaults.long_break_every, MIN_LONG_BREAK_EVERY
            ),
            auto_start_next=_read_bool(data, "autoStartNext", defaults.auto_start_next),
        )


@dataclass
class TimerState:
    """Countdown state of the active interval plus the day's cycle counters."""

    mode: Mode = Mode.POMODORO
    remaining_seconds: int = 25 * 60
    running: bool = False
    started_at: int | None = None  # epoch ms, informational only
    pomodoros_completed: int = 0
    round: int = 1

    @classmethod
    def for_settings(cls, settings: Settings) -> TimerState:
        """Return an idle timer at the start of a work interval."""
        return cls(remaining_seconds=settings.seconds_for(Mode.POMODORO))

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "remainingSec": self.remaining_seconds,
            "running": self.running,
            "startedAt": self.started_at,
            "pomodorosDone": self.pomodoros_completed,
            "round": self.round,
        }

    @classmethod
    def from_dict(cls, data: dict, settings: Settings) -> TimerState:
        try:
            mode = Mode(data.get("mode", Mode.POMODORO.value))
        except ValueError as err:
            raise DeserializationError(f"Unknown timer mode: {data.get('mode')!r}") from err

        started_at = data.get("startedAt")
        if started_at is not None:
            started_at = _read_int(data, "startedAt", 0)

        return cls(
            mode=mode,
            remaining_seconds=_read_int(data, "remainingSec", settings.seconds_for(mode), 0),
            running=_read_bool(data, "running", False),
            started_at=started_at,
            pomodoros_completed=_read_int(data, "pomodorosDone", 0, 0),
            round=_read_int(data, "round", 1, 1),
        )


@dataclass
class Task:
    """A unit of work credited with completed pomodoros.

    Fields:
        id: Unique identifier generated at creation (uuid4 string)
        name: Non-empty trimmed display name
        estimate: Target number of pomodoros (>= 1)
        done: Completed pomodoros, never above ``estimate``
        created_at: Creation time in epoch milliseconds
    """

    id: str
    name: str
    estimate: int
    done: int = 0
    created_at: int = 0

    @property
    def is_finished(self) -> bool:
        return self.done >= self.estimate

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "est": self.estimate,
            "done": self.done,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        if not isinstance(data, dict):
            raise DeserializationError(f"Task entry must be an object, got {type(data).__name__}")
        task_id = data.get("id")
        name = data.get("name")
        if not isinstance(task_id, str) or not task_id:
            raise DeserializationError(f"Task id must be a non-empty string, got {task_id!r}")
        if not isinstance(name, str):
            raise DeserializationError(f"Task name must be a string, got {name!r}")
        estimate = _read_int(data, "est", 1, 1)
        done = min(estimate, _read_int(data, "done", 0, 0))
        return cls(
            id=task_id,
            name=name,
            estimate=estimate,
            done=done,
            created_at=_read_int(data, "createdAt", 0),
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"Task(id={self.id}, name={self.name}, done={self.done}/{self.estimate})"


@dataclass
class AppState:
    """Root of the persisted state. One instance lives in a StateStore."""

    today: str
    settings: Settings = field(default_factory=Settings)
    timer: TimerState = field(default_factory=TimerState)
    tasks: list[Task] = field(default_factory=list)
    current_task_id: str | None = None
    done_today: int = 0

    @classmethod
    def default(cls, today: str) -> AppState:
        """Return a fresh state for ``today`` (ISO date string)."""
        settings = Settings()
        return cls(today=today, settings=settings, timer=TimerState.for_settings(settings))

    def find_task(self, task_id: str | None) -> Task | None:
        if task_id is None:
            return None
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict:
        return {
            "version": SCHEMA_VERSION,
            "settings": self.settings.to_dict(),
            "timer": self.timer.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "currentTaskId": self.current_task_id,
            "today": self.today,
            "doneToday": self.done_today,
        }

    @classmethod
    def from_dict(cls, payload: Any, today: str) -> AppState:
        """Decode a persisted record, migrating missing fields from defaults.

        Args:
            payload: Decoded JSON document
            today: Date used when the record carries no ``today`` field

        Raises:
            DeserializationError: If the record is not an object or a
                present field has the wrong type
        """
        if not isinstance(payload, dict):
            raise DeserializationError(
                f"State record must be an object, got {type(payload).__name__}"
            )

        settings = Settings.from_dict(_read_object(payload, "settings"))
        timer = TimerState.from_dict(_read_object(payload, "timer"), settings)

        raw_tasks = payload.get("tasks") or []
        if not isinstance(raw_tasks, list):
            raise DeserializationError("tasks must be an array")
        tasks = [Task.from_dict(raw) for raw in raw_tasks]

        current_task_id = payload.get("currentTaskId")
        if current_task_id is not None and not isinstance(current_task_id, str):
            raise DeserializationError(
                f"currentTaskId must be a string or null, got {current_task_id!r}"
            )

        stored_today = payload.get("today", today)
        if not isinstance(stored_today, str):
            raise DeserializationError(f"today must be a date string, got {stored_today!r}")

        return cls(
            today=stored_today,
            settings=settings,
            timer=timer,
            tasks=tasks,
            current_task_id=current_task_id,
            done_today=_read_int(payload, "doneToday", 0, 0),
        )
