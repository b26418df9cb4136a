"""Shared fixtures for Pomodoro core tests."""

from __future__ import annotations

from datetime import date

import pytest

from pomodoro_timer.engine import CycleEngine
from pomodoro_timer.storage import MemoryStorage
from pomodoro_timer.store import StateStore

TODAY = date(2024, 3, 15)
NOW_SECONDS = 1_710_500_000.0


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> StateStore:
    state_store = StateStore(storage)
    state_store.load(TODAY)
    return state_store


@pytest.fixture
def engine(store: StateStore) -> CycleEngine:
    return CycleEngine(store, clock=lambda: NOW_SECONDS, today=lambda: TODAY)
