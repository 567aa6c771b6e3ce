"""Per-cell extraction timers.

The scheduler never stores timer identities in the ledger: every pending timer
is derived from a cell's ``extraction_end_time`` and can be rebuilt with
:meth:`ExtractionScheduler.restore` after a reload. Timer callbacks re-read the
cell when they fire, so a callback that outlives a collection, reset or reload
leaves the ledger untouched.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable, Hashable
from functools import partial
from typing import TYPE_CHECKING, Protocol

from farpost_backend.shared.enums import GameEventKind
from farpost_backend.shared.events import ExtractionCompleteEvent, StateChangedEvent

if TYPE_CHECKING:
    from farpost_backend.game_logic.notifier import StateChangeNotifier
    from farpost_backend.game_logic.state import PlayerLedger
    from farpost_backend.shared.clock import Clock

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


class TimerBackend(Protocol):
    """Cancelable one-shot timers keyed by a caller-chosen token."""

    def schedule(self, token: Hashable, delay_ms: int, callback: TimerCallback) -> None:
        """Run *callback* after *delay_ms*, replacing any timer held by *token*."""

    def cancel(self, token: Hashable) -> bool:
        """Drop the timer held by *token*; return whether one was pending."""

    def cancel_all(self) -> None:
        """Drop every pending timer."""

    def pending(self) -> frozenset[Hashable]:
        """Return the tokens that currently hold a timer."""

    def ensure_ready(self) -> None:
        """Raise when timers cannot be armed right now."""


class AsyncioTimerBackend:
    """Timer backend delegating to an asyncio event loop's ``call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[Hashable, asyncio.TimerHandle] = {}

    def schedule(self, token: Hashable, delay_ms: int, callback: TimerCallback) -> None:
        self.cancel(token)
        loop = self._resolve_loop()
        handle = loop.call_later(max(delay_ms, 0) / 1000, self._fire, token, callback)
        self._handles[token] = handle

    def cancel(self, token: Hashable) -> bool:
        handle = self._handles.pop(token, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def pending(self) -> frozenset[Hashable]:
        return frozenset(self._handles)

    def ensure_ready(self) -> None:
        self._resolve_loop()

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        # Raises RuntimeError outside a running loop when none was given.
        return self._loop or asyncio.get_running_loop()

    def _fire(self, token: Hashable, callback: TimerCallback) -> None:
        self._handles.pop(token, None)
        callback()


class DeadlineQueueTimerBackend:
    """Priority queue of absolute deadlines, fired explicitly via :meth:`run_due`.

    Cancelled entries stay in the heap and are skipped lazily when popped.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._heap: list[tuple[int, int, Hashable]] = []
        self._live: dict[Hashable, tuple[int, TimerCallback]] = {}
        self._sequence = itertools.count()

    def schedule(self, token: Hashable, delay_ms: int, callback: TimerCallback) -> None:
        deadline = self._clock.now_ms() + max(delay_ms, 0)
        seq = next(self._sequence)
        self._live[token] = (seq, callback)
        heapq.heappush(self._heap, (deadline, seq, token))

    def cancel(self, token: Hashable) -> bool:
        return self._live.pop(token, None) is not None

    def cancel_all(self) -> None:
        self._live.clear()
        self._heap.clear()

    def pending(self) -> frozenset[Hashable]:
        return frozenset(self._live)

    def ensure_ready(self) -> None:
        return None

    def next_deadline(self) -> int | None:
        """Return the earliest live deadline, if any."""
        while self._heap:
            _, seq, token = self._heap[0]
            live = self._live.get(token)
            if live is not None and live[0] == seq:
                return self._heap[0][0]
            heapq.heappop(self._heap)
        return None

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed and return how many ran."""
        now = self._clock.now_ms()
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, seq, token = heapq.heappop(self._heap)
            live = self._live.get(token)
            if live is None or live[0] != seq:
                continue
            del self._live[token]
            fired += 1
            try:
                live[1]()
            except Exception:
                logger.exception("Timer callback for %r failed", token)
        return fired


class ExtractionScheduler:
    """Turn extracting cells into ready cells when their end time elapses."""

    def __init__(
        self,
        ledger: PlayerLedger,
        *,
        clock: Clock,
        backend: TimerBackend,
        notifier: StateChangeNotifier,
    ) -> None:
        self._ledger = ledger
        self._clock = clock
        self._backend = backend
        self._notifier = notifier

    @property
    def ledger(self) -> PlayerLedger:
        return self._ledger

    def bind(self, ledger: PlayerLedger) -> None:
        """Point the scheduler at a replacement ledger, dropping old timers."""
        self.cancel_all()
        self._ledger = ledger

    def program(self, cell_index: int) -> None:
        """(Re)arm the timer for *cell_index* from its current end time."""
        self._backend.cancel(cell_index)
        cell = self._ledger.cell(cell_index)
        if not cell.is_extracting or cell.extraction_end_time is None:
            return
        delay = cell.extraction_end_time - self._clock.now_ms()
        self._backend.schedule(
            cell_index, delay, partial(self._on_timer, cell_index)
        )

    def cancel(self, cell_index: int) -> None:
        self._backend.cancel(cell_index)

    def cancel_all(self) -> None:
        self._backend.cancel_all()

    def ensure_ready(self) -> None:
        """Raise before any mutation when the backend cannot arm a timer."""
        self._backend.ensure_ready()

    def pending_cells(self) -> frozenset[int]:
        return frozenset(
            token for token in self._backend.pending() if isinstance(token, int)
        )

    def restore(self) -> list[int]:
        """Rebuild timers from stored timestamps.

        Cells already past their end time become ready immediately; the indices
        of those cells are returned.
        """
        self.cancel_all()
        completed = self.resolve_due()
        for cell in self._ledger.cells:
            if cell.is_extracting:
                self.program(cell.index)
        return completed

    def resolve_due(self) -> list[int]:
        """Mark every overdue extracting cell ready without waiting for its timer."""
        return [cell.index for cell in self._ledger.cells if self.settle(cell.index)]

    def settle(self, cell_index: int) -> bool:
        """Complete *cell_index* now if its end time has already passed."""
        cell = self._ledger.cell(cell_index)
        end = cell.extraction_end_time
        if not cell.is_extracting or end is None or end > self._clock.now_ms():
            return False
        self._backend.cancel(cell_index)
        self._complete(cell_index)
        return True

    def _on_timer(self, cell_index: int) -> None:
        cell = self._ledger.cell(cell_index)
        if not cell.is_extracting or cell.extraction_end_time is None:
            return
        if cell.extraction_end_time > self._clock.now_ms():
            # End time moved since scheduling; wait for the new deadline.
            self.program(cell_index)
            return
        self._complete(cell_index)

    def _complete(self, cell_index: int) -> None:
        cell = self._ledger.cell(cell_index)
        cell.is_ready = True
        self._ledger.boosted_cells.pop(cell_index, None)
        logger.debug("Extraction on cell %s completed", cell_index)
        self._notifier.publish(
            ExtractionCompleteEvent(
                cell_index=cell_index, resource_type=cell.resource_type
            )
        )
        self._notifier.publish(
            StateChangedEvent(cause=GameEventKind.EXTRACTION_COMPLETE)
        )


__all__ = [
    "AsyncioTimerBackend",
    "DeadlineQueueTimerBackend",
    "ExtractionScheduler",
    "TimerBackend",
    "TimerCallback",
]
