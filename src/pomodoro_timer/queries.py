"""Read-only values derived from AppState for rendering."""

from __future__ import annotations

from dataclasses import dataclass

from .models import AppState, Mode, Task

DAILY_GOAL = 12

MODE_LABELS: dict[Mode, str] = {
    Mode.POMODORO: "Focus",
    Mode.SHORT_BREAK: "Short Break",
    Mode.LONG_BREAK: "Long Break",
}


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS (minutes grow past two digits if needed)."""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


def mode_label(mode: Mode) -> str:
    return MODE_LABELS[mode]


def current_task(state: AppState) -> Task | None:
    """Resolve ``current_task_id``; dangling ids resolve to None."""
    return state.find_task(state.current_task_id)


def task_progress(task: Task) -> float:
    """Return ``done / estimate`` in the range [0, 1]."""
    if task.estimate <= 0:
        return 0.0
    return min(1.0, task.done / task.estimate)


def daily_goal_percent(done_today: int) -> float:
    return min(100.0, done_today / DAILY_GOAL * 100)


@dataclass(frozen=True)
class Snapshot:
    """Everything a view needs to draw one frame."""

    mode: Mode
    mode_label: str
    time_text: str
    running: bool
    round: int
    done_today: int
    daily_goal_percent: float
    current_task: Task | None
    tasks: tuple[Task, ...]
    auto_start_next: bool

    @property
    def window_title(self) -> str:
        return f"{self.time_text} • {self.mode_label}"


def build_snapshot(state: AppState) -> Snapshot:
    """Build an immutable read model of ``state``."""
    return Snapshot(
        mode=state.timer.mode,
        mode_label=mode_label(state.timer.mode),
        time_text=format_time(state.timer.remaining_seconds),
        running=state.timer.running,
        round=state.timer.round,
        done_today=state.done_today,
        daily_goal_percent=daily_goal_percent(state.done_today),
        current_task=current_task(state),
        tasks=tuple(state.tasks),
        auto_start_next=state.settings.auto_start_next,
    )
