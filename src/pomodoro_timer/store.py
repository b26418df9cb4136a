"""StateStore: owns the canonical AppState and its persistence.

The store is constructed once at process start, ``load()`` is called to obtain
the state (normalized for day rollover), and every mutating command ends with
``save()``, which rewrites the whole record.
"""

from __future__ import annotations

import json
import logging
from datetime import date

from .exceptions import DeserializationError, PersistenceError
from .models import AppState
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

STATE_KEY = "pomo_clone_state_v1"


def _iso(day: date | None) -> str:
    return (day or date.today()).isoformat()


class StateStore:
    """Holds the single AppState instance and writes it through to storage."""

    def __init__(self, storage: KeyValueStorage, key: str = STATE_KEY):
        """Initialize state store.

        Args:
            storage: Backend holding the serialized record
            key: Name of the durable slot
        """
        self.storage = storage
        self.key = key
        self.state = AppState.default(_iso(None))
        self.last_save_error: PersistenceError | None = None
        self.save_count = 0

    def _read_record(self, today: str) -> AppState | None:
        """Read and decode the persisted record.

        Returns:
            Decoded state, or None if absent, unreadable or malformed
        """
        try:
            raw = self.storage.get(self.key)
        except PersistenceError as err:
            logger.warning(f"State storage unreadable, starting fresh: {err}")
            return None

        if raw is None:
            return None

        try:
            try:
                payload = json.loads(raw)
            except (ValueError, RecursionError) as err:
                raise DeserializationError(f"Invalid JSON: {err}") from err
            return AppState.from_dict(payload, today)
        except DeserializationError as err:
            logger.warning(
                "Corrupted state record, using defaults",
                extra={"extra_context": {"key": self.key, "error": str(err)}},
            )
            return None

    def load(self, today: date | None = None) -> AppState:
        """Load state from storage, applying day rollover.

        Args:
            today: Current calendar date (defaults to the local date)

        Returns:
            The loaded (or fresh default) state, also kept as ``self.state``
        """
        today_str = _iso(today)
        state = self._read_record(today_str)

        if state is None:
            state = AppState.default(today_str)
        elif state.today != today_str:
            logger.info(
                "Day rollover",
                extra={"extra_context": {"previous": state.today, "today": today_str}},
            )
            state.today = today_str
            state.done_today = 0
            state.timer.pomodoros_completed = 0
            state.timer.round = 1

        self.state = state
        return state

    def save(self) -> bool:
        """Persist the whole state synchronously.

        Returns:
            True if the record was written. On failure the error is logged,
            kept in ``last_save_error`` and the in-memory state is unchanged.
        """
        self.save_count += 1
        try:
            blob = json.dumps(self.state.to_dict())
            self.storage.set(self.key, blob)
        except PersistenceError as err:
            self.last_save_error = err
        except (TypeError, ValueError) as err:
            self.last_save_error = PersistenceError(f"State not serializable: {err}")
        else:
            self.last_save_error = None
            return True

        logger.warning(f"Failed to save state: {self.last_save_error}")
        return False

    def reset(self, today: date | None = None) -> AppState:
        """Replace the state with fresh defaults. Does not save."""
        self.state = AppState.default(_iso(today))
        return self.state
