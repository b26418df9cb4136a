"""Pomodoro timer core.

The core is two collaborating objects: a StateStore owning the persisted
AppState, and a CycleEngine applying commands to it. Views read a Snapshot
built by ``build_snapshot``.
"""

from __future__ import annotations

from datetime import date

from .engine import CycleEngine
from .exceptions import (
    ConfigError,
    DeserializationError,
    PersistenceError,
    PomodoroError,
    ValidationError,
)
from .models import AppState, Mode, Settings, Task, TimerState
from .queries import (
    DAILY_GOAL,
    MODE_LABELS,
    Snapshot,
    build_snapshot,
    current_task,
    daily_goal_percent,
    format_time,
    task_progress,
)
from .storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from .store import STATE_KEY, StateStore

__all__ = [
    "open_timer",
    "AppState",
    "CycleEngine",
    "Mode",
    "Settings",
    "Snapshot",
    "StateStore",
    "Task",
    "TimerState",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "STATE_KEY",
    "DAILY_GOAL",
    "MODE_LABELS",
    "build_snapshot",
    "current_task",
    "daily_goal_percent",
    "format_time",
    "task_progress",
    "PomodoroError",
    "ValidationError",
    "PersistenceError",
    "DeserializationError",
    "ConfigError",
]


def open_timer(storage: KeyValueStorage, today: date | None = None) -> CycleEngine:
    """Factory function to load state and return a ready CycleEngine.

    Args:
        storage: Backend holding the persisted record
        today: Current date (defaults to the local date)

    Returns:
        CycleEngine bound to a loaded StateStore

    Example:
        >>> from pomodoro_timer import MemoryStorage, open_timer
        >>> engine = open_timer(MemoryStorage())
        >>> engine.start()
        >>> engine.advance_one_second()
    """
    store = StateStore(storage)
    store.load(today)
    return CycleEngine(store)
