"""CycleEngine: transition rules of the Pomodoro cycle.

All commands are synchronous and run to completion against the store's
single AppState. Each mutating command ends with exactly one ``save()``,
except ``finish_cycle`` with auto-start enabled, which saves the completed
transition first and then lets the nested ``start()`` save again.
"""

from __future__ import annotations

import logging
import math
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import asdict
from datetime import date
from typing import Any

from .exceptions import ValidationError
from .models import (
    MIN_INTERVAL_MINUTES,
    MIN_LONG_BREAK_EVERY,
    AppState,
    Mode,
    Settings,
    Task,
)
from .store import StateStore

logger = logging.getLogger(__name__)


def _to_number(value: Any) -> float | None:
    """Interpret ``value`` as a finite number, or return None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def coerce_setting(value: Any, previous: int, minimum: int) -> int:
    """Coerce one numeric settings field.

    Non-numeric or non-finite input keeps ``previous``; anything else is
    floored to an integer no smaller than ``minimum``.
    """
    number = _to_number(value)
    if number is None:
        if value is not None:
            logger.info(f"Ignoring invalid settings value {value!r}, keeping {previous}")
        return previous
    return max(minimum, math.floor(number))


_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


def coerce_flag(value: Any, previous: bool) -> bool:
    """Coerce the auto-start flag. Unrecognized input keeps ``previous``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    if value is not None:
        logger.info(f"Ignoring invalid auto-start value {value!r}, keeping {previous}")
    return previous


def validate_task_input(name: Any, estimate: Any) -> tuple[str, int]:
    """Validate add-task input.

    Returns:
        The trimmed name and integer estimate

    Raises:
        ValidationError: If the name is blank or the estimate is not an
            integer >= 1
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Task name must not be empty")
    number = _to_number(estimate)
    if number is None or not number.is_integer() or number < 1:
        raise ValidationError(f"Task estimate must be an integer >= 1, got {estimate!r}")
    return name.strip(), int(number)


def parse_mode(value: Mode | str) -> Mode:
    """Return the Mode for an enum member or its persisted value."""
    try:
        return Mode(value)
    except ValueError as err:
        valid = ", ".join(m.value for m in Mode)
        raise ValidationError(f"Unknown mode {value!r} (expected one of: {valid})") from err


class CycleEngine:
    """Commands that advance the timer, the cycle and task progress."""

    def __init__(
        self,
        store: StateStore,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
    ):
        """Initialize cycle engine.

        Args:
            store: StateStore whose state the commands mutate
            clock: Wall clock in epoch seconds, used for ``started_at``
            today: Current local date, used by ``reset_all``
        """
        self.store = store
        self.clock = clock
        self.today = today

    @property
    def state(self) -> AppState:
        return self.store.state

    # -------------------- timer --------------------
    def start(self) -> None:
        timer = self.state.timer
        if timer.running:
            return
        timer.running = True
        timer.started_at = int(self.clock() * 1000)
        logger.debug(f"Timer started in {timer.mode.value} with {timer.remaining_seconds}s left")
        self.store.save()

    def pause(self) -> None:
        timer = self.state.timer
        if not timer.running:
            return
        timer.running = False
        timer.started_at = None
        logger.debug(f"Timer paused with {timer.remaining_seconds}s left")
        self.store.save()

    def _stop(self) -> None:
        # pause() without its save; the caller saves once at the end.
        self.state.timer.running = False
        self.state.timer.started_at = None

    def advance_one_second(self) -> None:
        """Apply one external tick. Completes the interval when time runs out."""
        timer = self.state.timer
        if not timer.running:
            return
        timer.remaining_seconds -= 1
        if timer.remaining_seconds > 0:
            self.store.save()
            return
        timer.remaining_seconds = 0
        self.finish_cycle()

    def finish_cycle(self) -> None:
        """Complete the current interval and move to the next mode.

        Also serves as the manual "skip" command regardless of the time left.
        """
        state = self.state
        timer = state.timer
        settings = state.settings
        finished = timer.mode

        self._stop()

        if finished == Mode.POMODORO:
            state.done_today += 1
            timer.pomodoros_completed += 1
            timer.round += 1

            task = state.find_task(state.current_task_id)
            if task is not None:
                task.done = min(task.estimate, task.done + 1)
                if task.done >= task.estimate:
                    logger.info(f"Task {task.name!r} reached its estimate of {task.estimate}")
                    state.current_task_id = None

            if timer.pomodoros_completed % settings.long_break_every == 0:
                next_mode = Mode.LONG_BREAK
            else:
                next_mode = Mode.SHORT_BREAK
        else:
            next_mode = Mode.POMODORO

        timer.mode = next_mode
        timer.remaining_seconds = settings.seconds_for(next_mode)

        logger.info(
            "Cycle finished",
            extra={
                "extra_context": {
                    "finished": finished.value,
                    "next": next_mode.value,
                    "done_today": state.done_today,
                    "round": timer.round,
                }
            },
        )
        self.store.save()

        if settings.auto_start_next:
            self.start()

    def switch_mode(self, mode: Mode | str) -> None:
        """Restart the timer in ``mode`` without counting a completion."""
        try:
            target = parse_mode(mode)
        except ValidationError as err:
            logger.info(f"switch_mode ignored: {err}")
            return
        self._stop()
        self.state.timer.mode = target
        self.state.timer.remaining_seconds = self.state.settings.seconds_for(target)
        self.store.save()

    # -------------------- settings --------------------
    def apply_settings(self, new_settings: Settings | Mapping[str, Any]) -> Settings:
        """Replace settings and restart the current interval at its new length.

        Args:
            new_settings: A Settings instance or a mapping of Settings field
                names to raw (possibly string) values. Missing fields keep
                their previous values.

        Returns:
            The settings now in effect
        """
        previous = self.state.settings
        raw = asdict(new_settings) if isinstance(new_settings, Settings) else dict(new_settings)

        settings = Settings(
            pomodoro_minutes=coerce_setting(
                raw.get("pomodoro_minutes"), previous.pomodoro_minutes, MIN_INTERVAL_MINUTES
            ),
            short_break_minutes=coerce_setting(
                raw.get("short_break_minutes"), previous.short_break_minutes, MIN_INTERVAL_MINUTES
            ),
            long_break_minutes=coerce_setting(
                raw.get("long_break_minutes"), previous.long_break_minutes, MIN_INTERVAL_MINUTES
            ),
            long_break_every=coerce_setting(
                raw.get("long_break_every"), previous.long_break_every, MIN_LONG_BREAK_EVERY
            ),
            auto_start_next=coerce_flag(raw.get("auto_start_next"), previous.auto_start_next),
        )

        self.state.settings = settings
        self.state.timer.remaining_seconds = settings.seconds_for(self.state.timer.mode)
        logger.info(
            "Settings applied",
            extra={"extra_context": {"settings": asdict(settings)}},
        )
        self.store.save()
        return settings

    # -------------------- tasks --------------------
    def add_task(self, name: Any, estimate: Any) -> Task | None:
        """Create a task at the head of the list.

        Returns:
            The new task, or None if the input was invalid (nothing changes)
        """
        try:
            clean_name, clean_estimate = validate_task_input(name, estimate)
        except ValidationError as err:
            logger.info(f"add_task ignored: {err}")
            return None

        task = Task(
            id=str(uuid.uuid4()),
            name=clean_name,
            estimate=clean_estimate,
            done=0,
            created_at=int(self.clock() * 1000),
        )
        self.state.tasks.insert(0, task)
        if not self.state.current_task_id:
            self.state.current_task_id = task.id
        self.store.save()
        return task

    def select_task(self, task_id: str | None) -> None:
        # Weak reference: existence is checked when the id is read.
        self.state.current_task_id = task_id
        self.store.save()

    def delete_task(self, task_id: str) -> None:
        self.state.tasks = [t for t in self.state.tasks if t.id != task_id]
        if self.state.current_task_id == task_id:
            self.state.current_task_id = None
        self.store.save()

    def reset_all(self) -> None:
        """Replace all state with defaults. Callers must confirm first."""
        self.store.reset(self.today())
        logger.info("All state reset to defaults")
        self.store.save()
