import pytest

pytest.importorskip("httpx", reason="httpx requis pour les tests client FastAPI")

from fastapi.testclient import TestClient

from app.config.settings import settings
from app.main import app
from app.services.document_store import get_store
from app.services.nonblocking import WRITES

ADMIN = {"Authorization": f"Bearer {settings.ADMIN_TOKEN}"}
client = TestClient(app)


def _new_game(name="Route Test"):
    r = client.post("/admin/games", json={"name": name}, headers=ADMIN)
    assert r.status_code == 200
    return r.json()["id"]


def _join(game_id):
    code = client.post(f"/admin/games/{game_id}/codes", headers=ADMIN).json()["code"]
    r = client.post("/auth/redeem", json={"code": code.lower()})
    assert r.status_code == 200
    body = r.json()
    return code, {"X-Participant-Token": body["token"]}, body["participant"]["id"]


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_admin_routes_require_auth():
    anonymous = TestClient(app)
    assert anonymous.get("/admin/games").status_code == 401
    assert anonymous.get("/admin/games", headers={"Authorization": "Bearer wrong"}).status_code == 403
    assert anonymous.get("/me").status_code == 401
    assert anonymous.get("/me", headers={"X-Participant-Token": "forged"}).status_code == 401


def test_admin_cookie_login_flow():
    bad = client.post("/auth/admin/login", json={"username": "x", "password": "y"})
    assert bad.status_code == 401

    c = TestClient(app)
    ok = c.post("/auth/admin/login", json={"username": settings.ADMIN_USER, "password": settings.ADMIN_PASSWORD})
    assert ok.status_code == 200
    assert c.get("/admin/games").status_code == 200
    c.post("/auth/admin/logout")
    assert c.get("/admin/games").status_code == 401


def test_participant_journey():
    game_id = _new_game()
    code, headers, uid = _join(game_id)

    # code à usage unique
    assert client.post("/auth/redeem", json={"code": code}).status_code == 409

    me = client.get("/me", headers=headers).json()
    assert me["needs_display_name"] is True
    assert client.post("/me/display_name", json={"display_name": "Ada"}, headers=headers).status_code == 200
    assert client.post("/me/display_name", json={"display_name": "Eve"}, headers=headers).status_code == 409

    # format invalide puis bonne réponse
    r = client.post("/rooms/archive/attempt", json={"puzzle_id": "timestamps", "answer": "12"}, headers=headers)
    assert r.json()["outcome"] == "invalid_format"
    assert r.json()["attempts"] == 0
    r = client.post("/rooms/archive/attempt", json={"puzzle_id": "timestamps", "answer": "2413"}, headers=headers)
    assert r.json()["outcome"] == "solved"

    # navigation au-delà de la frontière refusée
    r = client.post("/rooms/archive/navigate", json={"puzzle_id": "sector_lock"}, headers=headers)
    assert r.json()["accepted"] is False

    r = client.post(
        "/rooms/well/attempt",
        json={"puzzle_id": "pulse", "answer": "11010"},
        headers=headers,
    )
    assert r.json()["progress"]["rooms"]["well"]["current_puzzle_index"] == 1

    room = client.get("/rooms/well", headers=headers).json()
    assert room["key_name"] == "Pulsar-Lineage"
    assert [p["id"] for p in room["puzzles"]] == ["pulse", "sigils", "regulator"]

    assert client.get("/nexus", headers=headers).json()["unlocked"] is False
    assert client.get("/rooms/attic", headers=headers).status_code == 404

    assert WRITES.drain(timeout=5.0)
    stats = client.get(f"/admin/games/{game_id}/analytics", headers=ADMIN).json()
    row = next(p for p in stats["players"] if p["participant_id"] == uid)
    assert row["display_name"] == "Ada"
    assert row["attempts_total"] == 2
    assert row["nexus_unlocked"] is False


def test_regulator_answer_via_http():
    game_id = _new_game()
    _code, headers, _uid = _join(game_id)
    for puzzle_id, answer in (("pulse", "11010"), ("sigils", "B")):
        client.post("/rooms/well/attempt", json={"puzzle_id": puzzle_id, "answer": answer}, headers=headers)

    r = client.post("/rooms/well/attempt", json={"puzzle_id": "regulator", "answer": {"P": 2, "H": 5, "R": 3}}, headers=headers)
    assert r.json()["outcome"] == "wrong"
    assert "Heat" in r.json()["message"]
    r = client.post("/rooms/well/attempt", json={"puzzle_id": "regulator", "answer": {"P": 3, "H": 4, "R": 4}}, headers=headers)
    assert r.json()["outcome"] == "solved"
    assert r.json()["progress"]["keys"]["well"] is True


def test_joinable_blocks_codes_and_redemption():
    game_id = _new_game()
    code = client.post(f"/admin/games/{game_id}/codes", headers=ADMIN).json()["code"]
    client.post(f"/admin/games/{game_id}/joinable", json={"joinable": False}, headers=ADMIN)
    assert WRITES.drain(timeout=5.0)

    assert client.post(f"/admin/games/{game_id}/codes", headers=ADMIN).status_code == 423
    assert client.post("/auth/redeem", json={"code": code}).status_code == 423


def test_phase_and_listing():
    game_id = _new_game("Phase Test")
    r = client.post(f"/admin/games/{game_id}/phase", json={"phase": "voting"}, headers=ADMIN)
    assert r.status_code == 200
    assert client.post(f"/admin/games/{game_id}/phase", json={"phase": "nap"}, headers=ADMIN).status_code == 422
    assert WRITES.drain(timeout=5.0)
    assert client.get(f"/admin/games/{game_id}", headers=ADMIN).json()["phase"] == "voting"
    ids = [g["id"] for g in client.get("/admin/games", headers=ADMIN).json()["games"]]
    assert game_id in ids


def test_hint_reveal_reaches_team_members():
    game_id = _new_game()
    _code, headers, uid = _join(game_id)
    team = client.post(f"/admin/games/{game_id}/teams", json={"name": "Red"}, headers=ADMIN).json()
    client.post(f"/admin/games/{game_id}/players/{uid}/team", json={"team_id": team["id"]}, headers=ADMIN)
    seeded = client.post(
        f"/admin/games/{game_id}/hints",
        json={"hints": [{"puzzle_key": "archive/timestamps", "text": "Dusk came second."}]},
        headers=ADMIN,
    ).json()["hints"]
    hint_id = seeded[0]["id"]
    assert WRITES.drain(timeout=5.0)

    assert client.get("/me/hints", headers=headers).json()["hints"] == []
    first = client.post(f"/admin/games/{game_id}/hints/{hint_id}/reveal", json={"team_id": team["id"]}, headers=ADMIN)
    assert first.json()["changed"] is True
    assert WRITES.drain(timeout=5.0)
    again = client.post(f"/admin/games/{game_id}/hints/{hint_id}/reveal", json={"team_id": team["id"]}, headers=ADMIN)
    assert again.json()["changed"] is False

    hints = client.get("/me/hints", headers=headers).json()["hints"]
    assert [h["text"] for h in hints] == ["Dusk came second."]
    grouped = client.get(f"/admin/games/{game_id}/hints", headers=ADMIN).json()["hints"]
    assert grouped["archive/timestamps"][0]["revealed_for"] == [team["id"]]


def test_materials_and_finish():
    game_id = _new_game()
    _code, headers, _uid = _join(game_id)
    client.post(f"/admin/games/{game_id}/materials", json={"title": "Zeta map"}, headers=ADMIN)
    mat = client.post(f"/admin/games/{game_id}/materials", json={"title": "Alpha dossier"}, headers=ADMIN).json()
    client.post(f"/admin/games/{game_id}/materials/{mat['id']}/printed", json={"printed": True}, headers=ADMIN)
    assert WRITES.drain(timeout=5.0)
    items = client.get(f"/admin/games/{game_id}/materials", headers=ADMIN).json()["materials"]
    assert [m["title"] for m in items] == ["Alpha dossier", "Zeta map"]
    assert items[0]["printed"] is True

    assert client.post(f"/admin/games/{game_id}/finish", headers=ADMIN).status_code == 200
    assert WRITES.drain(timeout=5.0)
    assert client.get(f"/admin/games/{game_id}", headers=ADMIN).status_code == 404
    assert client.get(f"/admin/games/{game_id}/codes", headers=ADMIN).json()["codes"] == []
    assert client.get("/me", headers=headers).status_code == 401
    notices = client.get("/admin/notices", params={"game_id": game_id}, headers=ADMIN).json()["notices"]
    assert notices[-1]["title"] == "Game finished"


def test_contradiction_identical_statements():
    game_id = _new_game()
    _code, headers, _uid = _join(game_id)
    r = client.post(
        "/network/contradiction",
        json={"statement1": "The core sleeps.", "statement2": "The core sleeps."},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["is_contradictory"] is False


def test_admin_websocket_streams_store_changes():
    game_id = _new_game()
    with TestClient(app) as c:
        with c.websocket_connect(f"/ws/admin/{game_id}?token={settings.ADMIN_TOKEN}") as ws:
            assert ws.receive_json()["type"] == "subscribed"
            c.post(f"/admin/games/{game_id}/teams", json={"name": "Blue"}, headers=ADMIN)
            event = ws.receive_json()
            assert event["type"] == "doc_change"
            assert event["path"].startswith(f"games/{game_id}/teams/")


@pytest.mark.parametrize("suffix", ["", "/teams", "/roster", "/codes", "/hints", "/analytics", "/materials"])
def test_malformed_game_id_is_a_bad_request(suffix):
    r = client.get(f"/admin/games/bad.id{suffix}", headers=ADMIN)
    assert r.status_code == 400


def test_redeem_after_game_document_vanished():
    game_id = _new_game()
    code = client.post(f"/admin/games/{game_id}/codes", headers=ADMIN).json()["code"]
    # la cascade de fin de partie a déjà retiré la partie, pas encore le code
    get_store().delete(f"games/{game_id}")
    assert client.post("/auth/redeem", json={"code": code}).status_code == 404
    assert client.post("/auth/redeem", json={"code": "NO-SUCH"}).status_code == 404
