"""Publish/subscribe hub decoupling the engine from its observers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeAlias

from farpost_backend.shared.enums import GameEventKind
from farpost_backend.shared.events import GameEventBase  # noqa: TC001

logger = logging.getLogger(__name__)

EventHandler: TypeAlias = Callable[[GameEventBase], None]
Unsubscribe: TypeAlias = Callable[[], None]


class StateChangeNotifier:
    """Deliver game events to handlers registered per :class:`GameEventKind`.

    Handlers run synchronously in registration order. A handler raising an
    exception is logged and skipped so the remaining observers still receive
    the event; the originating ledger mutation is never rolled back.
    """

    def __init__(self) -> None:
        self._handlers: dict[GameEventKind, list[EventHandler]] = {}
        self._catch_all: list[EventHandler] = []

    def subscribe(self, kind: GameEventKind, handler: EventHandler) -> Unsubscribe:
        """Register *handler* for events of *kind* and return a detach callable."""
        bucket = self._handlers.setdefault(GameEventKind(kind), [])
        bucket.append(handler)
        return lambda: self._detach(bucket, handler)

    def subscribe_all(self, handler: EventHandler) -> Unsubscribe:
        """Register *handler* for every event kind."""
        self._catch_all.append(handler)
        return lambda: self._detach(self._catch_all, handler)

    def publish(self, event: GameEventBase) -> None:
        """Deliver *event* to the handlers of its kind, then to catch-all handlers."""
        kind: GameEventKind = event.kind  # type: ignore[attr-defined]
        handlers = [*self._handlers.get(kind, ()), *self._catch_all]
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed while processing %s", handler, kind)

    def publish_many(self, events: Iterable[GameEventBase]) -> None:
        for event in events:
            self.publish(event)

    def clear(self) -> None:
        self._handlers.clear()
        self._catch_all.clear()

    @staticmethod
    def _detach(bucket: list[EventHandler], handler: EventHandler) -> None:
        try:
            bucket.remove(handler)
        except ValueError:
            logger.debug("Handler %r was already unsubscribed", handler)


__all__ = ["EventHandler", "StateChangeNotifier", "Unsubscribe"]
