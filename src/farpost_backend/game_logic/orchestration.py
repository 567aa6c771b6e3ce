"""High-level orchestration connecting the engine to external callers.

A :class:`GameSession` is the explicit context owning one player's ledger
together with the engine, scheduler, notifier and clock that act on it. The
API layer keeps one session per player; tests build sessions around a
:class:`~farpost_backend.shared.clock.ManualClock` and a
:class:`~farpost_backend.game_logic.scheduler.DeadlineQueueTimerBackend` to
drive time deterministically.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from farpost_backend.game_logic.configuration import get_default_game_configuration
from farpost_backend.game_logic.dispatch import ActionDispatcher, ActionResponse
from farpost_backend.game_logic.engine import EconomyEngine
from farpost_backend.game_logic.notifier import StateChangeNotifier
from farpost_backend.game_logic.persistence import (
    LoadSource,
    dump_ledger,
    restore_ledger,
)
from farpost_backend.game_logic.scheduler import (
    AsyncioTimerBackend,
    ExtractionScheduler,
)
from farpost_backend.game_logic.state import PlayerLedger
from farpost_backend.shared.clock import SystemClock
from farpost_backend.shared.enums import GameEventKind
from farpost_backend.shared.events import (
    StateChangedEvent,
    StateLoadedEvent,
    StateResetEvent,
)

if TYPE_CHECKING:
    from farpost_backend.game_logic.configuration import GameConfiguration
    from farpost_backend.game_logic.dispatch import GameAction
    from farpost_backend.game_logic.notifier import EventHandler, Unsubscribe
    from farpost_backend.game_logic.persistence import LedgerStore
    from farpost_backend.game_logic.scheduler import TimerBackend
    from farpost_backend.shared.clock import Clock

logger = logging.getLogger(__name__)


class SessionNotInitializedError(RuntimeError):
    """Raised when a session is used after it was closed or was never opened."""


class GameSession:
    """Own one player's ledger and every collaborator acting on it.

    The ledger object may be replaced by :meth:`load` or :meth:`reset`; the
    engine and scheduler are rebound in place so subscribers and the dispatcher
    keep working across replacements.
    """

    def __init__(
        self,
        configuration: GameConfiguration | None = None,
        *,
        clock: Clock | None = None,
        timer_backend: TimerBackend | None = None,
        notifier: StateChangeNotifier | None = None,
        ledger: PlayerLedger | None = None,
        session_id: str | None = None,
    ) -> None:
        self._config = (
            configuration
            if configuration is not None
            else get_default_game_configuration()
        )
        self._clock = clock or SystemClock()
        self._notifier = notifier or StateChangeNotifier()
        self._session_id = session_id
        if ledger is None:
            ledger = PlayerLedger.fresh(self._config)
        self._scheduler = ExtractionScheduler(
            ledger,
            clock=self._clock,
            backend=timer_backend or AsyncioTimerBackend(),
            notifier=self._notifier,
        )
        self._engine = EconomyEngine(
            ledger,
            self._config,
            clock=self._clock,
            scheduler=self._scheduler,
            notifier=self._notifier,
        )
        self._dispatcher = ActionDispatcher(self._engine)
        self._closed = False

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def configuration(self) -> GameConfiguration:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def notifier(self) -> StateChangeNotifier:
        return self._notifier

    @property
    def scheduler(self) -> ExtractionScheduler:
        return self._scheduler

    @property
    def engine(self) -> EconomyEngine:
        return self._engine

    @property
    def ledger(self) -> PlayerLedger:
        return self._engine.ledger

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, kind: GameEventKind, handler: EventHandler) -> Unsubscribe:
        """Register *handler* for events of *kind* published by this session."""
        return self._notifier.subscribe(kind, handler)

    def dispatch(self, request: GameAction) -> ActionResponse:
        """Settle overdue extractions, then run *request* through the dispatcher."""
        self._require_open()
        self.resolve_due()
        return self._dispatcher.dispatch(request)

    def dispatch_raw(self, data: Any) -> ActionResponse:
        self._require_open()
        self.resolve_due()
        return self._dispatcher.dispatch_raw(data)

    def resolve_due(self) -> list[int]:
        """Mark cells whose end time has passed as ready and return their indices."""
        self._require_open()
        return self._scheduler.resolve_due()

    def snapshot(self) -> dict[str, Any]:
        """Return the persisted shape of the current ledger."""
        return dump_ledger(self.ledger)

    def load(
        self,
        data: Any,
        *,
        store: LedgerStore | None = None,
    ) -> LoadSource:
        """Replace the ledger with *data*, falling back to backups or a fresh one.

        Timers are rebuilt from the stored end times; extractions that finished
        while the player was away complete immediately after the load event.
        """
        self._require_open()
        ledger, source = restore_ledger(
            data, self._config, store=store, player_id=self._session_id
        )
        self._replace_ledger(ledger)
        self._notifier.publish_many(
            [
                StateLoadedEvent(source=source.value),
                StateChangedEvent(cause=GameEventKind.STATE_LOADED),
            ]
        )
        completed = self._scheduler.restore()
        if completed:
            logger.info(
                "Completed %s extraction(s) while %s was away",
                len(completed),
                self._session_id or "player",
            )
        return source

    def reset(self) -> PlayerLedger:
        """Discard all progress and start over with a fresh ledger."""
        self._require_open()
        ledger = PlayerLedger.fresh(self._config)
        self._replace_ledger(ledger)
        self._notifier.publish_many(
            [StateResetEvent(), StateChangedEvent(cause=GameEventKind.STATE_RESET)]
        )
        return ledger

    def close(self) -> None:
        """Cancel pending timers and drop subscribers."""
        if self._closed:
            return
        self._scheduler.cancel_all()
        self._notifier.clear()
        self._closed = True

    def _replace_ledger(self, ledger: PlayerLedger) -> None:
        self._scheduler.bind(ledger)
        self._engine.bind(ledger)

    def _require_open(self) -> None:
        if self._closed:
            msg = f"Session '{self._session_id or 'anonymous'}' has been closed."
            raise SessionNotInitializedError(msg)


__all__ = ["GameSession", "SessionNotInitializedError"]
