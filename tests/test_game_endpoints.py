"""End-to-end tests for the game HTTP endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from farpost_backend.api import create_api
from farpost_backend.api.dependencies import get_game_service
from farpost_backend.api.services import GameSessionService, timer_backend_factory
from farpost_backend.game_logic import (
    AsyncioTimerBackend,
    DeadlineQueueTimerBackend,
    GameConfiguration,
    InMemoryLedgerStore,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from farpost_backend.shared import ManualClock

PLAYER = {"X-Player-Id": "player-1"}


@pytest.fixture
def service(
    configuration: GameConfiguration, clock: ManualClock
) -> Iterator[GameSessionService]:
    game_service = GameSessionService(
        store=InMemoryLedgerStore(),
        configuration=configuration,
        clock=clock,
        backend_factory=DeadlineQueueTimerBackend,
    )
    yield game_service
    game_service.close()


@pytest.fixture
def client(service: GameSessionService) -> Iterator[TestClient]:
    app = create_api()
    app.dependency_overrides[get_game_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _act(client: TestClient, action: str, **payload: Any) -> Any:
    return client.post(
        "/game/actions", json={"action": action, "payload": payload}, headers=PLAYER
    )


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_player_header_is_required(client: TestClient) -> None:
    assert client.get("/game/state").status_code == 422


def test_first_visit_creates_fresh_state(
    client: TestClient, service: GameSessionService
) -> None:
    response = client.get("/game/state", headers=PLAYER)

    assert response.status_code == 200
    state = response.json()["state"]
    assert state["points"] == 1_000
    assert state["ownedCells"] == 3
    assert service.store.load_snapshot("player-1") == state


def test_purchase_action(client: TestClient, service: GameSessionService) -> None:
    response = _act(client, "purchase_expedition", resourceType="Lunar Regolith")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["pointsRemaining"] == 980
    assert body["state"]["expeditions"]["Lunar Regolith"] == 1
    assert service.store.load_snapshot("player-1")["points"] == 980


def test_economy_failure_is_bad_request(client: TestClient) -> None:
    response = _act(client, "purchase_booster", boosterType="Elite Booster")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["kind"] == "insufficient_level"
    assert body["error"]["detail"]["required_level"] == 10


def test_unknown_config_key_is_not_found(client: TestClient) -> None:
    response = _act(client, "purchase_expedition", resourceType="Unobtainium")

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "unknown_resource"


@pytest.mark.parametrize(
    "envelope",
    [
        {"action": "teleport"},
        {"action": "deploy_expedition", "payload": {"cellIndex": 7}},
        {"payload": {}},
    ],
)
def test_malformed_envelope_is_unprocessable(
    client: TestClient, envelope: dict[str, Any]
) -> None:
    response = client.post("/game/actions", json=envelope, headers=PLAYER)

    assert response.status_code == 422


def test_lunar_regolith_over_http(client: TestClient, clock: ManualClock) -> None:
    _act(client, "purchase_expedition", resourceType="Lunar Regolith")
    deployed = _act(
        client, "deploy_expedition", cellIndex=7, resourceType="Lunar Regolith"
    ).json()
    assert deployed["result"]["endTime"] == deployed["result"]["startTime"] + 30_000

    early = _act(client, "collect_resource", cellIndex=7)
    assert early.status_code == 400
    assert early.json()["error"]["kind"] == "not_ready"

    progress = client.get("/game/extractions", headers=PLAYER).json()
    assert progress["extractions"][0]["cellIndex"] == 7
    assert progress["extractions"][0]["timeRemaining"] == 30_000

    clock.advance(30_000)
    state = client.get("/game/state", headers=PLAYER).json()["state"]
    assert state["cells"][7]["isReady"] is True

    collected = _act(client, "collect_resource", cellIndex=7).json()
    assert collected["state"]["xp"] == 10

    sold = _act(client, "sell_resources", resourceType="Lunar Regolith").json()
    assert sold["result"]["pointsGained"] == 50
    assert sold["state"]["points"] == 1_030


def test_put_state_loads_valid_payload(client: TestClient) -> None:
    state = client.get("/game/state", headers=PLAYER).json()["state"]
    state["points"] = 5_000

    response = client.put("/game/state", json=state, headers=PLAYER)

    assert response.status_code == 200
    assert response.json()["source"] == "provided"
    assert response.json()["state"]["points"] == 5_000


def test_put_invalid_state_falls_back_to_last_save(client: TestClient) -> None:
    _act(client, "purchase_expedition", resourceType="Iron Ore")

    response = client.put("/game/state", json={"level": -3}, headers=PLAYER)

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "backup"
    assert body["state"]["points"] == 970


def test_reset(client: TestClient) -> None:
    _act(client, "purchase_expedition", resourceType="Iron Ore")

    response = client.post("/game/reset", headers=PLAYER)

    assert response.status_code == 200
    assert response.json()["state"]["points"] == 1_000


def test_players_are_isolated(client: TestClient) -> None:
    _act(client, "purchase_expedition", resourceType="Iron Ore")

    other = client.get("/game/state", headers={"X-Player-Id": "player-2"})

    assert other.json()["state"]["points"] == 1_000


def test_end_session(client: TestClient, service: GameSessionService) -> None:
    assert client.delete("/game/session", headers=PLAYER).status_code == 404

    _act(client, "purchase_expedition", resourceType="Iron Ore")
    assert client.delete("/game/session", headers=PLAYER).status_code == 204

    state = client.get("/game/state", headers=PLAYER).json()["state"]
    assert state["points"] == 970


def test_configuration_endpoints(client: TestClient) -> None:
    config = client.get("/game/config").json()
    assert "Helium-3" in config["resources"]
    assert config["level_thresholds"][0] == 0

    resource = client.get("/game/config/resources/Iron Ore")
    assert resource.status_code == 200
    assert resource.json()["cost"] == 30

    assert client.get("/game/config/resources/Unobtainium").status_code == 404
    booster = client.get("/game/config/boosters/Instant Extract").json()
    assert booster["instant"] is True
    assert client.get("/game/config/boosters/Warp").status_code == 404


def test_timer_backend_factory(clock: ManualClock) -> None:
    assert isinstance(timer_backend_factory("deadline")(clock), DeadlineQueueTimerBackend)
    assert isinstance(timer_backend_factory("asyncio")(clock), AsyncioTimerBackend)
    with pytest.raises(ValueError, match="Unknown timer backend"):
        timer_backend_factory("threads")
