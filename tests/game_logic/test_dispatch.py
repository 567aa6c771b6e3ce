"""Tests for the action envelope dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pydantic import ValidationError

from farpost_backend.game_logic import GAME_ACTION_ADAPTER
from farpost_backend.game_logic.dispatch import PurchaseCellAction, SellResourcesAction

if TYPE_CHECKING:
    from farpost_backend.game_logic import GameSession
    from farpost_backend.shared import ManualClock


def test_envelope_payload_uses_camel_case() -> None:
    request = GAME_ACTION_ADAPTER.validate_python(
        {
            "action": "deploy_expedition",
            "payload": {"cellIndex": 7, "resourceType": "Iron Ore"},
        }
    )

    assert request.action == "deploy_expedition"
    assert request.payload.cell_index == 7
    assert request.payload.resource_type == "Iron Ore"


def test_optional_payloads_default() -> None:
    assert isinstance(
        GAME_ACTION_ADAPTER.validate_python({"action": "purchase_cell"}),
        PurchaseCellAction,
    )
    sell = GAME_ACTION_ADAPTER.validate_python({"action": "sell_resources"})
    assert isinstance(sell, SellResourcesAction)
    assert sell.payload.resource_type is None


@pytest.mark.parametrize(
    "envelope",
    [
        {"action": "teleport", "payload": {}},
        {"action": "collect_resource", "payload": {"cellIndex": -1}},
        {"action": "sell_resources", "payload": {"amount": 0}},
        {"action": "sell_resources", "payload": {"amount": 2}},
        {"action": "purchase_booster", "payload": {}},
    ],
)
def test_malformed_envelopes_fail_validation(envelope: dict) -> None:
    with pytest.raises(ValidationError):
        GAME_ACTION_ADAPTER.validate_python(envelope)


def test_successful_dispatch_returns_result_and_state(session: GameSession) -> None:
    response = session.dispatch_raw(
        {"action": "purchase_expedition", "payload": {"resourceType": "Lunar Regolith"}}
    )
    payload = response.to_payload()

    assert payload["success"] is True
    assert payload["action"] == "purchase_expedition"
    assert payload["result"] == {
        "itemType": "Lunar Regolith",
        "cost": 20,
        "newAmount": 1,
        "pointsRemaining": 980,
    }
    assert payload["state"]["points"] == 980
    assert "error" not in payload


def test_rejected_action_reports_kind_and_detail(session: GameSession) -> None:
    response = session.dispatch_raw(
        {"action": "collect_resource", "payload": {"cellIndex": 7}}
    )
    payload = response.to_payload()

    assert payload["success"] is False
    assert payload["error"]["kind"] == "not_ready"
    assert payload["error"]["detail"]["cell_index"] == 7
    assert "state" not in payload


def test_malformed_raw_envelope_becomes_failure(session: GameSession) -> None:
    response = session.dispatch_raw({"action": "apply_booster", "payload": {}})

    assert not response.success
    assert response.action == "apply_booster"
    assert response.error is not None
    assert response.error.kind == "invalid_action"
    assert response.error.detail["errors"]


def test_dispatch_settles_finished_extractions_first(
    session: GameSession, clock: ManualClock
) -> None:
    session.ledger.expeditions["Lunar Regolith"] = 1
    session.dispatch_raw(
        {
            "action": "deploy_expedition",
            "payload": {"cellIndex": 8, "resourceType": "Lunar Regolith"},
        }
    )
    clock.advance(30_000)

    response = session.dispatch_raw(
        {"action": "collect_resource", "payload": {"cellIndex": 8}}
    )

    assert response.success
    assert response.result == {
        "cellIndex": 8,
        "resourceType": "Lunar Regolith",
        "xpGained": 10,
        "totalAmount": 1,
    }
