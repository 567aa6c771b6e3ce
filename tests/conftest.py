"""Test configuration and fixtures for the backend test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from farpost_backend.game_logic import (
    DeadlineQueueTimerBackend,
    GameConfiguration,
    GameSession,
    get_default_game_configuration,
)
from farpost_backend.settings import get_settings
from farpost_backend.shared import ManualClock

if TYPE_CHECKING:
    from collections.abc import Iterator

    from farpost_backend.game_logic import EconomyEngine, PlayerLedger
    from farpost_backend.shared import GameEventBase

START_MS = 1_700_000_000_000


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure settings are loaded with predictable values during tests."""
    monkeypatch.setenv("TIMER_BACKEND", "deadline")
    monkeypatch.delenv("FARPOST_GAME_DEBUG_SPEED", raising=False)
    monkeypatch.delenv("FARPOST_GAME_STARTING_POINTS", raising=False)
    get_settings.cache_clear()
    get_default_game_configuration.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_game_configuration.cache_clear()


@pytest.fixture
def configuration() -> GameConfiguration:
    return get_default_game_configuration()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_MS)


@pytest.fixture
def backend(clock: ManualClock) -> DeadlineQueueTimerBackend:
    return DeadlineQueueTimerBackend(clock)


@pytest.fixture
def session(
    configuration: GameConfiguration,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
) -> Iterator[GameSession]:
    game = GameSession(
        configuration, clock=clock, timer_backend=backend, session_id="player-1"
    )
    yield game
    game.close()


@pytest.fixture
def engine(session: GameSession) -> EconomyEngine:
    return session.engine


@pytest.fixture
def ledger(session: GameSession) -> PlayerLedger:
    return session.ledger


@pytest.fixture
def events(session: GameSession) -> list[GameEventBase]:
    """Every event published by the session, in order."""
    recorded: list[GameEventBase] = []
    session.notifier.subscribe_all(recorded.append)
    return recorded
