"""Game session service exposed to the API layer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from farpost_backend.game_logic import (
    AsyncioTimerBackend,
    DeadlineQueueTimerBackend,
    GameSession,
    InMemoryLedgerStore,
    SessionNotInitializedError,
    build_session_configuration,
)
from farpost_backend.shared import GameEventKind, SystemClock

if TYPE_CHECKING:
    from farpost_backend.game_logic import (
        ActionResponse,
        ExtractionProgress,
        GameAction,
        GameConfiguration,
        LedgerStore,
        LoadSource,
        TimerBackend,
    )
    from farpost_backend.settings import BackendSettings
    from farpost_backend.shared import Clock, GameEventBase

logger = logging.getLogger(__name__)

TimerBackendFactory = Callable[["Clock"], "TimerBackend"]


def timer_backend_factory(kind: str) -> TimerBackendFactory:
    """Return a factory building the timer backend named by *kind*."""
    if kind == "deadline":
        return DeadlineQueueTimerBackend
    if kind == "asyncio":
        return lambda _clock: AsyncioTimerBackend()
    msg = f"Unknown timer backend '{kind}'."
    raise ValueError(msg)


class GameSessionService:
    """Keep one :class:`GameSession` per player and persist every change."""

    def __init__(
        self,
        *,
        store: LedgerStore,
        configuration: GameConfiguration | None = None,
        clock: Clock | None = None,
        backend_factory: TimerBackendFactory | None = None,
    ) -> None:
        self._store = store
        self._configuration = (
            configuration
            if configuration is not None
            else build_session_configuration()
        )
        self._clock = clock or SystemClock()
        self._backend_factory = backend_factory or timer_backend_factory("asyncio")
        self._sessions: dict[str, GameSession] = {}

    @classmethod
    def create_default(
        cls, settings: BackendSettings | None = None
    ) -> GameSessionService:
        """Return a service backed by the in-memory store."""
        backend = settings.timer_backend if settings is not None else "asyncio"
        return cls(
            store=InMemoryLedgerStore(),
            backend_factory=timer_backend_factory(backend),
        )

    @property
    def configuration(self) -> GameConfiguration:
        return self._configuration

    @property
    def store(self) -> LedgerStore:
        return self._store

    def ensure_session(self, player_id: str) -> GameSession:
        """Return the session for *player_id*, opening it from the store if needed."""
        session = self._sessions.get(player_id)
        if session is not None:
            return session

        session = GameSession(
            self._configuration,
            clock=self._clock,
            timer_backend=self._backend_factory(self._clock),
            session_id=player_id,
        )
        session.subscribe(
            GameEventKind.STATE_CHANGED, self._autosave_handler(player_id, session)
        )
        stored = self._store.load_snapshot(player_id)
        if stored is None:
            self._store.save_snapshot(player_id, session.snapshot())
            logger.info("Created new game session for %s", player_id)
        else:
            source = session.load(stored, store=self._store)
            logger.info("Opened game session for %s from %s state", player_id, source)
        self._sessions[player_id] = session
        return session

    def require_session(self, player_id: str) -> GameSession:
        """Return the open session for *player_id* without creating one."""
        session = self._sessions.get(player_id)
        if session is None:
            msg = f"Session '{player_id}' has not been initialized."
            raise SessionNotInitializedError(msg)
        return session

    def dispatch(self, player_id: str, request: GameAction) -> ActionResponse:
        """Apply *request* to the player's session."""
        return self.ensure_session(player_id).dispatch(request)

    def get_state(self, player_id: str) -> dict[str, Any]:
        session = self.ensure_session(player_id)
        session.resolve_due()
        return session.snapshot()

    def replace_state(
        self, player_id: str, data: Any
    ) -> tuple[dict[str, Any], LoadSource]:
        """Load *data* as the player's state, falling back to backups when invalid."""
        session = self.ensure_session(player_id)
        source = session.load(data, store=self._store)
        return session.snapshot(), source

    def reset(self, player_id: str) -> dict[str, Any]:
        session = self.ensure_session(player_id)
        session.reset()
        return session.snapshot()

    def extractions(self, player_id: str) -> list[ExtractionProgress]:
        """Return progress for every running extraction of *player_id*."""
        session = self.ensure_session(player_id)
        session.resolve_due()
        return session.engine.active_extractions()

    def end_session(self, player_id: str) -> None:
        """Close the player's session; the stored snapshot is kept."""
        session = self.require_session(player_id)
        session.close()
        del self._sessions[player_id]

    def close(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()

    def _autosave_handler(
        self, player_id: str, session: GameSession
    ) -> Callable[[GameEventBase], None]:
        def _save(_event: GameEventBase) -> None:
            self._store.save_snapshot(player_id, session.snapshot())

        return _save


__all__ = ["GameSessionService", "TimerBackendFactory", "timer_backend_factory"]
