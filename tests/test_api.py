import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # no context manager: lifespan would create tables on the default engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_round(client, players=(("Alice", "user-a"), ("Bob", "user-b"))):
    session = client.post("/api/sessions", json={"name": "Club medal", "created_by": "user-a"}).json()
    player_ids = []
    for name, user_id in players:
        response = client.post(
            f"/api/sessions/{session['id']}/players",
            json={"name": name, "user_id": user_id}
        )
        assert response.status_code == 200
        player_ids.append(response.json()["id"])
    return session["id"], player_ids


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_round_to_redemption_over_http(client, sponsor, make_reward):
    reward_id = str(make_reward(required_holes=18, max_redemptions=1).id)
    session_id, (alice_id, bob_id) = _create_round(client)
    assert client.post(f"/api/sessions/{session_id}/start").json()["status"] == "active"

    for player_id in (alice_id, bob_id):
        for hole in range(1, 19):
            response = client.put(f"/api/players/{player_id}/scores/{hole}", json={"strokes": 4})
            assert response.status_code == 200
    assert client.get(f"/api/players/{alice_id}/totals").json() == {"total_strokes": 72, "holes_played": 18}

    assert client.post(f"/api/sessions/{session_id}/finish").json()["status"] == "finished"
    offered = client.get(f"/api/sessions/{session_id}/players/{bob_id}/rewards").json()
    assert [r["id"] for r in offered] == [reward_id]

    first = client.post(f"/api/rewards/{reward_id}/redeem", json={"player_id": alice_id, "session_id": session_id})
    second = client.post(f"/api/rewards/{reward_id}/redeem", json={"player_id": bob_id, "session_id": session_id})

    assert first.status_code == 200
    assert first.json()["status"] == "pending"
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "InventoryExhausted"
    history = client.get(f"/api/players/{alice_id}/redemptions").json()
    assert [item["reward"]["id"] for item in history] == [reward_id]
    summary = client.get(f"/api/sponsors/{sponsor.id}/summary").json()
    assert (summary["total_rewards"], summary["total_redemptions"]) == (1, 1)


def test_finish_twice_is_a_conflict(client):
    session_id, _ = _create_round(client)
    client.post(f"/api/sessions/{session_id}/start")
    client.post(f"/api/sessions/{session_id}/finish")

    response = client.post(f"/api/sessions/{session_id}/finish")

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "AlreadyFinished"


def test_invalid_strokes_is_unprocessable(client):
    _, (alice_id, _) = _create_round(client)

    response = client.put(f"/api/players/{alice_id}/scores/1", json={"strokes": 0})

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "ValidationError"


def test_join_finished_session_is_rejected(client):
    session_id, _ = _create_round(client)
    client.post(f"/api/sessions/{session_id}/finish")

    response = client.post(f"/api/sessions/{session_id}/players", json={"name": "Late", "guest_id": "g-1"})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "NotJoinable"


def test_join_requires_exactly_one_identity(client):
    session_id, _ = _create_round(client, players=())

    response = client.post(
        f"/api/sessions/{session_id}/players",
        json={"name": "Both", "user_id": "u-1", "guest_id": "g-1"}
    )

    assert response.status_code == 422


def test_unknown_session_is_not_found(client):
    response = client.get("/api/sessions/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFound"


def test_list_sessions_by_status(client):
    session_id, _ = _create_round(client)
    _create_round(client, players=())
    client.post(f"/api/sessions/{session_id}/start")

    active = client.get("/api/sessions", params={"status": "active"}).json()

    assert [(item["session"]["id"], item["player_count"]) for item in active] == [(session_id, 2)]
    assert len(client.get("/api/sessions", params={"status": "waiting"}).json()) == 1
    assert client.get("/api/sessions", params={"status": "paused"}).status_code == 422


def test_join_with_team(client):
    session_id, _ = _create_round(client, players=())

    response = client.post(
        f"/api/sessions/{session_id}/players",
        json={"name": "Red one", "guest_id": "g-1", "team_id": "red"}
    )

    assert response.json()["team_id"] == "red"


def test_unexpected_error_is_internal_error(client, sponsor, monkeypatch):
    def broken_summary(sponsor_id, db):
        raise RuntimeError("connection lost")

    monkeypatch.setattr("api.rewards.get_sponsor_summary", broken_summary)

    response = client.get(f"/api/sponsors/{sponsor.id}/summary")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal error"}
