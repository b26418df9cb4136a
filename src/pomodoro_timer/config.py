"""Host configuration loaded from config.json."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ConfigError
from .store import STATE_KEY

DEFAULT_STATE_DIR = "~/.local/share/pomodoro-timer"
DEFAULT_LOG_DIR = "~/.cache/pomodoro-timer"


def _read_dir(payload: dict, key: str, default: str) -> Path:
    value = payload.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty path string, got {value!r}")
    return Path(os.path.expanduser(value)).resolve()


@dataclass(frozen=True)
class Config:
    """Runtime configuration for the terminal host."""

    state_dir: Path
    log_dir: Path
    state_key: str = STATE_KEY
    tick_seconds: float = 1.0

    @property
    def log_file(self) -> Path:
        return self.log_dir / "pomodoro.log"

    @classmethod
    def from_dict(cls, payload: dict) -> Config:
        """Create a Config object from a raw dictionary.

        Raises:
            ConfigError: If a value has the wrong type or is out of range
        """
        if not isinstance(payload, dict):
            raise ConfigError("Config must be a JSON object")

        state_dir = _read_dir(payload, "state_dir", DEFAULT_STATE_DIR)
        log_dir = _read_dir(payload, "log_dir", DEFAULT_LOG_DIR)

        state_key = payload.get("state_key", STATE_KEY)
        if not isinstance(state_key, str) or not state_key.strip():
            raise ConfigError(f"state_key must be a non-empty string, got {state_key!r}")

        try:
            tick_seconds = float(payload.get("tick_seconds", 1.0))
        except (TypeError, ValueError) as err:
            raise ConfigError(f"tick_seconds must be a number: {err}") from err
        if tick_seconds <= 0:
            raise ConfigError(f"tick_seconds must be positive, got {tick_seconds}")

        return cls(
            state_dir=state_dir,
            log_dir=log_dir,
            state_key=state_key,
            tick_seconds=tick_seconds,
        )

    @classmethod
    def default(cls) -> Config:
        return cls.from_dict({})


def load_config(path: Path | None) -> Config:
    """Load configuration from the provided path; None means defaults."""
    if path is None:
        return Config.default()
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as err:
        raise ConfigError(f"Config file not found: {path}") from err
    except (OSError, ValueError, RecursionError) as err:
        raise ConfigError(f"Failed to read config {path}: {err}") from err
    return Config.from_dict(data)
