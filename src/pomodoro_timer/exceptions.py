"""Custom exceptions for the Pomodoro core.

This module defines a hierarchy of exceptions for the core's error scenarios.
None of them is fatal: commands turn validation failures into no-ops, and
persistence failures never abort an in-memory mutation.
"""


class PomodoroError(Exception):
    """Base exception for all Pomodoro core errors."""


class ValidationError(PomodoroError):
    """Raised when command input (task name, estimate, mode) is invalid."""


class PersistenceError(PomodoroError):
    """Raised when the durable state slot cannot be written or read."""


class DeserializationError(PomodoroError):
    """Raised when a persisted state record is corrupt or malformed."""


class ConfigError(PomodoroError):
    """Raised when host configuration is invalid or cannot be loaded."""
