import pytest
from fastapi.testclient import TestClient

from server import app


@pytest.fixture
def client():
    return TestClient(app)


def _create_player(client, name, email) -> int:
    res = client.post("/api/players", json={"display_name": name, "email": email})
    assert res.status_code == 200, res.text
    return res.json()["player_id"]


def test_scenario_a_over_http(client) -> None:
    alice = _create_player(client, "Alice", "alice@example.com")
    bob = _create_player(client, "Bob", "bob@example.com")

    res = client.post("/api/leagues", json={"owner_id": alice, "name": "Chess League", "game_type": "CHESS"})
    league_id = res.json()["league_id"]
    assert client.post(f"/api/leagues/{league_id}/invites", json={"email": "bob@example.com"}).json()["invite"] == {
        "kind": "player",
        "player_id": bob,
    }
    res = client.post(f"/api/leagues/{league_id}/invites/accept", json={"player_id": bob})
    assert res.json()["players"] == [alice, bob]

    assert client.post(f"/api/leagues/{league_id}/start").json()["start_day"] == 100
    res = client.post(f"/api/leagues/{league_id}/results", json={"day": 100, "scores": [10, 20]})
    assert res.json() == {"ok": True}

    standings = client.get(f"/api/leagues/{league_id}/standings/day", params={"day": 100}).json()["standings"]
    assert standings["scores"] == [10, 20]
    assert standings["ranking"] == [2, 1]
    assert standings["points"] == [1, 2]

    league = client.get(f"/api/leagues/{league_id}").json()["league"]
    assert league["status"] == "IN_PROGRESS"
    assert league["owners"] == [alice]


def test_error_status_mapping(client) -> None:
    alice = _create_player(client, "Alice", "alice@example.com")

    res = client.get("/api/leagues/42")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "ID_NOT_FOUND"

    res = client.post("/api/players", json={"display_name": "Again", "email": "alice@example.com"})
    assert res.status_code == 409
    assert res.json()["ok"] is False

    res = client.post("/api/players", json={"display_name": " bad", "email": "x@example.com"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_NAME"

    league_id = client.post(
        "/api/leagues", json={"owner_id": alice, "name": "Chess League", "game_type": "CHESS"}
    ).json()["league_id"]
    res = client.post(f"/api/leagues/{league_id}/close")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_STATE"

    res = client.get(f"/api/leagues/{league_id}/standings/fortnight", params={"day": 100})
    assert res.status_code == 400


def test_clock_endpoints(client) -> None:
    assert client.get("/api/clock").json()["current_day"] == 100
    assert client.post("/api/clock/increment").json()["current_day"] == 101
    res = client.post("/api/clock", json={"day": 90})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "ILLEGAL_OPERATION"


def test_player_detail_and_deactivate(client) -> None:
    pid = _create_player(client, "Alice", "alice@example.com")
    assert client.get("/api/players/lookup", params={"email": "alice@example.com"}).json()["player_id"] == pid

    assert client.post(f"/api/players/{pid}/deactivate").json() == {"ok": True, "changed": True}
    player = client.get(f"/api/players/{pid}").json()["player"]
    assert player["deactivated"] is True
    assert player["display_name"] == f"deactivated{pid}"
    assert player["phone"] == ""


def test_save_and_load_endpoints(client, tmp_path) -> None:
    _create_player(client, "Alice", "alice@example.com")
    path = str(tmp_path / "portal.db")
    assert client.post("/api/state/save", json={"path": path}).json()["ok"] is True
    assert client.post("/api/state/erase").json() == {"ok": True}
    assert client.get("/api/players").json()["player_ids"] == []

    assert client.post("/api/state/load", json={"path": path}).json()["ok"] is True
    assert client.get("/api/state/summary").json()["players"] == 1

    res = client.post("/api/state/load", json={"path": str(tmp_path / "nope.db")})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "SNAPSHOT_IO"


def test_create_player_with_full_name(client) -> None:
    res = client.post(
        "/api/players",
        json={"display_name": "Bob", "email": "bob@example.com", "name": "Robert Tables", "phone": "555-0100"},
    )
    pid = res.json()["player_id"]
    player = client.get(f"/api/players/{pid}").json()["player"]
    assert player["name"] == "Robert Tables"
    assert player["phone"] == "555-0100"
