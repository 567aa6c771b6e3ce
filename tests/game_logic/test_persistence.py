"""Tests for the persisted-state shape and untrusted loads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from farpost_backend.game_logic import (
    InMemoryLedgerStore,
    InvalidSavedStateError,
    LoadSource,
    PlayerLedger,
    dump_ledger,
    parse_saved_state,
    restore_ledger,
)
from farpost_backend.shared import GameEventKind, StateLoadedEvent

if TYPE_CHECKING:
    from farpost_backend.game_logic import (
        EconomyEngine,
        GameConfiguration,
        GameSession,
    )
    from farpost_backend.shared import GameEventBase, ManualClock


def _fresh_dump(configuration: GameConfiguration) -> dict[str, Any]:
    return dump_ledger(PlayerLedger.fresh(configuration))


def test_dump_uses_camel_case_keys(configuration: GameConfiguration) -> None:
    data = _fresh_dump(configuration)

    assert {"level", "xp", "points", "ownedCells", "maxCells", "cells"} <= set(data)
    assert data["cells"][7] == {
        "id": 7,
        "owned": True,
        "resourceType": None,
        "extractionStartTime": None,
        "extractionEndTime": None,
        "isReady": False,
    }
    assert data["mode"] == "select"
    assert "pointsSpent" in data["stats"]


def test_round_trip_preserves_running_game(
    session: GameSession,
    engine: EconomyEngine,
    configuration: GameConfiguration,
    clock: ManualClock,
) -> None:
    engine.purchase_expedition("Iron Ore")
    engine.purchase_booster("Basic Booster")
    engine.deploy_expedition(7, "Iron Ore")
    clock.advance(1_000)
    engine.apply_booster(7, "Basic Booster")

    restored = parse_saved_state(session.snapshot(), configuration)

    assert restored == session.ledger
    assert restored.boosted_cells[7].booster_type == "Basic Booster"


@pytest.mark.parametrize(
    "mutate",
    [
        lambda data: data.pop("points"),
        lambda data: data["cells"].pop(),
        lambda data: data.update(level=0),
        lambda data: data.update(xp=-1),
        lambda data: data["cells"][0].update(owned="yes"),
        lambda data: data.update(resources=["Iron Ore"]),
        lambda data: [cell.update(owned=True) for cell in data["cells"][:8]],
        lambda data: data["cells"][7].update(
            resourceType="Bogus",
            extractionStartTime=1_000,
            extractionEndTime=2_000,
            isReady=True,
        ),
        lambda data: data["cells"][7].update(resourceType="Iron Ore", isReady=True),
        lambda data: data["cells"][7].update(
            extractionStartTime=1_000, extractionEndTime=2_000
        ),
        lambda data: data["cells"][0].update(
            resourceType="Iron Ore", extractionStartTime=1_000, extractionEndTime=2_000
        ),
    ],
)
def test_invalid_payloads_are_rejected(
    configuration: GameConfiguration, mutate: Any
) -> None:
    data = _fresh_dump(configuration)
    mutate(data)

    with pytest.raises(InvalidSavedStateError):
        parse_saved_state(data, configuration)


def test_non_mapping_payload_is_rejected(configuration: GameConfiguration) -> None:
    with pytest.raises(InvalidSavedStateError):
        parse_saved_state(["not", "a", "state"], configuration)


def test_inventories_are_aligned_with_configuration(
    configuration: GameConfiguration,
) -> None:
    data = _fresh_dump(configuration)
    data["resources"] = {"Iron Ore": 4, "Kryptonite": 2}
    data["ownedCells"] = 9

    ledger = parse_saved_state(data, configuration)

    assert ledger.resources["Iron Ore"] == 4
    assert "Kryptonite" not in ledger.resources
    assert set(ledger.resources) == set(configuration.resources)
    assert ledger.owned_cells == 3


def test_store_keeps_bounded_backups() -> None:
    store = InMemoryLedgerStore(max_backups=2)

    for points in (1, 2, 3, 4):
        store.save_snapshot("p", {"points": points})

    assert store.load_snapshot("p") == {"points": 4}
    assert store.backups("p") == ({"points": 3}, {"points": 2})
    assert store.load_snapshot("other") is None


def test_restore_falls_back_to_latest_valid_backup(
    configuration: GameConfiguration,
) -> None:
    store = InMemoryLedgerStore()
    good = _fresh_dump(configuration)
    good["points"] = 4_321
    store.save_snapshot("p", good)
    store.save_snapshot("p", {"broken": True})

    ledger, source = restore_ledger(
        {"level": "nope"}, configuration, store=store, player_id="p"
    )

    assert source is LoadSource.BACKUP
    assert ledger.points == 4_321


def test_unknown_cell_resource_falls_back_to_backup(
    configuration: GameConfiguration,
) -> None:
    store = InMemoryLedgerStore()
    store.save_snapshot("p", _fresh_dump(configuration))
    bricked = _fresh_dump(configuration)
    bricked["cells"][7].update(
        resourceType="Bogus",
        extractionStartTime=1_000,
        extractionEndTime=2_000,
        isReady=True,
    )

    ledger, source = restore_ledger(
        bricked, configuration, store=store, player_id="p"
    )

    assert source is LoadSource.BACKUP
    assert not ledger.cell(7).has_extraction


def test_restore_starts_fresh_without_valid_backup(
    configuration: GameConfiguration,
) -> None:
    ledger, source = restore_ledger(None, configuration)

    assert source is LoadSource.FRESH
    assert ledger == PlayerLedger.fresh(configuration)


def test_session_load_reports_source(
    session: GameSession,
    configuration: GameConfiguration,
    events: list[GameEventBase],
) -> None:
    data = _fresh_dump(configuration)
    data["points"] = 77

    assert session.load(data) is LoadSource.PROVIDED
    assert session.ledger.points == 77
    assert isinstance(events[0], StateLoadedEvent)
    assert events[0].source == "provided"
    assert events[1].cause is GameEventKind.STATE_LOADED

    assert session.load({"garbage": 1}) is LoadSource.FRESH
    assert session.ledger.points == 1_000
