import pytest

from app.services import team_service
from app.services.nonblocking import WRITES
from app.utils.team_utils import round_robin_assign

GAME_ID = "g1"


def _add_players(store, *uids, team_id=None):
    for uid in uids:
        store.set(f"games/{GAME_ID}/players/{uid}", {"id": uid, "game_id": GAME_ID, "team_id": team_id})


def test_round_robin_is_balanced_and_reproducible():
    players = [f"p{i}" for i in range(7)]
    first = round_robin_assign(players, ["A", "B", "C"], seed=42)
    second = round_robin_assign(players, ["A", "B", "C"], seed=42)
    assert first == second
    counts = sorted(list(first.values()).count(t) for t in ("A", "B", "C"))
    assert counts == [2, 2, 3]


def test_round_robin_fills_smaller_teams_first():
    assignment = round_robin_assign(["p1"], ["A", "B"], current_sizes={"A": 3, "B": 1}, seed=1)
    assert assignment == {"p1": "B"}


def test_round_robin_edge_cases():
    assert round_robin_assign([], ["A"]) == {}
    assert round_robin_assign(["p1"], []) == {}


def test_assign_and_unassign(store):
    team = team_service.create_team(GAME_ID, "Red", "#ff0000", store=store)
    _add_players(store, "u1")

    team_service.assign_team(GAME_ID, "u1", team.id, store=store).result(timeout=5.0)
    assert team_service.get_participant(GAME_ID, "u1", store=store).team_id == team.id

    team_service.assign_team(GAME_ID, "u1", None, store=store).result(timeout=5.0)
    assert team_service.get_participant(GAME_ID, "u1", store=store).team_id is None


def test_assign_unknown_team_or_player(store):
    _add_players(store, "u1")
    with pytest.raises(team_service.TeamNotFound):
        team_service.assign_team(GAME_ID, "u1", "ghost", store=store)
    with pytest.raises(team_service.ParticipantNotFound):
        team_service.assign_team(GAME_ID, "ghost", None, store=store)


def test_roster_groups_members(store):
    red = team_service.create_team(GAME_ID, "Red", store=store)
    team_service.create_team(GAME_ID, "Blue", store=store)
    _add_players(store, "u1", team_id=red.id)
    _add_players(store, "u2", "u3")

    roster = team_service.roster(GAME_ID, store=store)
    by_name = {t["name"]: t for t in roster["teams"]}
    assert [m["id"] for m in by_name["Red"]["members"]] == ["u1"]
    assert by_name["Blue"]["members"] == []
    assert {p["id"] for p in roster["unassigned"]} == {"u2", "u3"}


def test_auto_assign_only_moves_unassigned(store):
    red = team_service.create_team(GAME_ID, "Red", store=store)
    blue = team_service.create_team(GAME_ID, "Blue", store=store)
    _add_players(store, "u1", team_id=red.id)
    _add_players(store, "u2", "u3", "u4")

    assignment = team_service.auto_assign(GAME_ID, seed=7, store=store)
    assert WRITES.drain(timeout=5.0)

    assert set(assignment) == {"u2", "u3", "u4"}
    roster = team_service.roster(GAME_ID, store=store)
    assert roster["unassigned"] == []
    sizes = {t["id"]: len(t["members"]) for t in roster["teams"]}
    assert sizes == {red.id: 2, blue.id: 2}


def test_auto_assign_requires_teams(store):
    _add_players(store, "u1")
    with pytest.raises(ValueError):
        team_service.auto_assign(GAME_ID, store=store)
