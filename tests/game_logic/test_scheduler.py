"""Tests for extraction timers and the timer backends."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from farpost_backend.game_logic import (
    AsyncioTimerBackend,
    DeadlineQueueTimerBackend,
    GameSession,
)
from farpost_backend.shared import (
    ExtractionCompleteEvent,
    GameEventKind,
    ManualClock,
    StateChangedEvent,
)

if TYPE_CHECKING:
    from farpost_backend.game_logic import (
        EconomyEngine,
        GameConfiguration,
        PlayerLedger,
    )
    from farpost_backend.shared import GameEventBase


def _deploy(engine: EconomyEngine, cell_index: int, resource_type: str) -> None:
    engine.ledger.expeditions[resource_type] += 1
    engine.deploy_expedition(cell_index, resource_type)


def test_timer_marks_cell_ready_at_end_time(
    engine: EconomyEngine,
    ledger: PlayerLedger,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
    events: list[GameEventBase],
) -> None:
    _deploy(engine, 7, "Lunar Regolith")
    events.clear()

    clock.advance(29_999)
    assert backend.run_due() == 0
    assert ledger.cell(7).is_extracting

    clock.advance(1)
    assert backend.run_due() == 1
    assert ledger.cell(7).is_ready
    assert [type(event) for event in events] == [
        ExtractionCompleteEvent,
        StateChangedEvent,
    ]
    assert events[0].cell_index == 7
    assert events[1].cause is GameEventKind.EXTRACTION_COMPLETE


def test_booster_reprograms_timer(
    engine: EconomyEngine,
    ledger: PlayerLedger,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
) -> None:
    _deploy(engine, 7, "Iron Ore")
    ledger.boosters["Basic Booster"] = 1
    engine.apply_booster(7, "Basic Booster")
    assert backend.next_deadline() == clock.now_ms() + 30_000

    clock.advance(30_000)

    assert backend.run_due() == 1
    assert ledger.cell(7).is_ready
    assert backend.next_deadline() is None


def test_timer_waits_for_moved_end_time(
    session: GameSession,
    engine: EconomyEngine,
    ledger: PlayerLedger,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
) -> None:
    _deploy(engine, 7, "Lunar Regolith")
    cell = ledger.cell(7)
    assert cell.extraction_end_time is not None
    cell.extraction_end_time += 10_000

    clock.advance(30_000)
    backend.run_due()
    assert cell.is_extracting
    assert session.scheduler.pending_cells() == {7}

    clock.advance(10_000)
    backend.run_due()
    assert cell.is_ready


def test_collect_cancels_timer(
    session: GameSession,
    engine: EconomyEngine,
    ledger: PlayerLedger,
    backend: DeadlineQueueTimerBackend,
) -> None:
    _deploy(engine, 7, "Iron Ore")
    ledger.boosters["Instant Extract"] = 1
    engine.apply_booster(7, "Instant Extract")
    engine.collect_resource(7)

    assert session.scheduler.pending_cells() == frozenset()
    assert backend.next_deadline() is None


def test_stale_timers_do_not_touch_replaced_ledger(
    session: GameSession,
    engine: EconomyEngine,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
) -> None:
    _deploy(engine, 7, "Lunar Regolith")
    session.reset()

    clock.advance(60_000)

    assert backend.run_due() == 0
    assert not session.ledger.cell(7).has_extraction


def test_restore_completes_overdue_and_rearms_running(
    session: GameSession,
    engine: EconomyEngine,
    clock: ManualClock,
    backend: DeadlineQueueTimerBackend,
) -> None:
    _deploy(engine, 7, "Lunar Regolith")
    _deploy(engine, 8, "Water Ice")
    saved = session.snapshot()
    saved_end = saved["cells"][8]["extractionEndTime"]
    session.reset()

    clock.advance(60_000)
    session.load(saved)

    assert session.ledger.cell(7).is_ready
    assert session.ledger.cell(8).is_extracting
    assert session.scheduler.pending_cells() == {8}
    assert session.ledger.cell(8).extraction_end_time == saved_end
    assert backend.next_deadline() == saved_end


def test_resolve_due_without_timer_callbacks(
    session: GameSession, engine: EconomyEngine, clock: ManualClock
) -> None:
    _deploy(engine, 7, "Lunar Regolith")
    clock.advance(45_000)

    assert session.resolve_due() == [7]
    assert session.resolve_due() == []
    assert session.scheduler.pending_cells() == frozenset()


def test_deadline_backend_replaces_and_cancels_tokens() -> None:
    clock = ManualClock()
    backend = DeadlineQueueTimerBackend(clock)
    fired: list[str] = []

    backend.schedule("a", 100, lambda: fired.append("first"))
    backend.schedule("a", 200, lambda: fired.append("second"))
    backend.schedule("b", 50, lambda: fired.append("b"))
    assert backend.cancel("b")
    assert not backend.cancel("b")

    clock.advance(150)
    assert backend.run_due() == 0
    clock.advance(50)
    assert backend.run_due() == 1
    assert fired == ["second"]
    assert backend.pending() == frozenset()


def test_deadline_backend_survives_failing_callback() -> None:
    clock = ManualClock()
    backend = DeadlineQueueTimerBackend(clock)
    fired: list[str] = []

    def explode() -> None:
        raise RuntimeError

    backend.schedule(1, 10, explode)
    backend.schedule(2, 10, lambda: fired.append("ok"))
    clock.advance(10)

    assert backend.run_due() == 2
    assert fired == ["ok"]


def test_asyncio_backend_fires_and_cancels() -> None:
    async def scenario() -> list[str]:
        backend = AsyncioTimerBackend()
        fired: list[str] = []
        backend.schedule("keep", 0, lambda: fired.append("keep"))
        backend.schedule("drop", 0, lambda: fired.append("drop"))
        assert backend.pending() == {"keep", "drop"}
        backend.cancel("drop")
        await asyncio.sleep(0.01)
        assert backend.pending() == frozenset()
        return fired

    assert asyncio.run(scenario()) == ["keep"]


def test_unarmable_timer_leaves_deploy_untouched(
    configuration: GameConfiguration, clock: ManualClock
) -> None:
    game = GameSession(configuration, clock=clock, timer_backend=AsyncioTimerBackend())
    published: list[GameEventBase] = []
    game.notifier.subscribe_all(published.append)
    game.ledger.expeditions["Iron Ore"] = 1
    before = game.snapshot()

    with pytest.raises(RuntimeError):
        game.engine.deploy_expedition(7, "Iron Ore")

    assert game.snapshot() == before
    assert published == []
    game.close()


def test_unarmable_timer_leaves_booster_untouched(
    configuration: GameConfiguration, clock: ManualClock
) -> None:
    game = GameSession(configuration, clock=clock, timer_backend=AsyncioTimerBackend())
    now = clock.now_ms()
    game.ledger.cell(7).start_extraction("Iron Ore", now, now + 60_000)
    game.ledger.boosters["Basic Booster"] = 1
    before = game.snapshot()

    with pytest.raises(RuntimeError):
        game.engine.apply_booster(7, "Basic Booster")

    assert game.snapshot() == before
    assert game.ledger.boosters["Basic Booster"] == 1
    game.close()
