import pytest

from app.services.nonblocking import WRITES
from app.services.progress_service import ProgressService, initial_record, progress_path
from app.services.puzzle_catalog import UnknownPuzzle
from app.services.puzzles import INVALID_FORMAT, SOLVED, WRONG

GAME_ID = "g1"
UID = "u1"

ARCHIVE_ANSWERS = [("timestamps", "2413"), ("contradiction", "C"), ("sector_lock", "Echo Spire")]
WELL_ANSWERS = [("pulse", "11010"), ("sigils", "B"), ("regulator", {"P": 3, "H": 4, "R": 4})]
NETWORK_ANSWERS = [("cipher", "427"), ("routing", "B"), ("identity", "aurelion–prime")]


@pytest.fixture
def service(store):
    store.set(progress_path(GAME_ID, UID), initial_record(GAME_ID, UID).model_dump())
    return ProgressService(store=store)


def _solve_room(service, room, answers):
    for puzzle_id, answer in answers:
        result = service.submit_attempt(GAME_ID, UID, room, puzzle_id, answer)
        assert result.outcome == SOLVED, result.message


def test_invalid_format_does_not_consume_an_attempt(service):
    result = service.submit_attempt(GAME_ID, UID, "archive", "timestamps", "1123")
    assert result.accepted is True
    assert result.outcome == INVALID_FORMAT
    assert result.attempts == 0
    assert result.ticket is None


def test_wrong_answer_counts_and_escalates(service):
    first = service.submit_attempt(GAME_ID, UID, "well", "pulse", "10101")
    second = service.submit_attempt(GAME_ID, UID, "well", "pulse", "10101")
    third = service.submit_attempt(GAME_ID, UID, "well", "pulse", "10101")
    assert [r.outcome for r in (first, second, third)] == [WRONG, WRONG, WRONG]
    assert [r.attempts for r in (first, second, third)] == [1, 2, 3]
    assert "Hear it again" in first.message
    assert "Hear it again" in second.message
    assert "double-thrum" in third.message


def test_locked_puzzle_is_refused_silently(service):
    result = service.submit_attempt(GAME_ID, UID, "network", "identity", "AURELION-PRIME")
    assert result.accepted is False
    assert result.reason == "locked"
    assert service.load(GAME_ID, UID).tracker("network").is_solved("identity") is False


def test_solved_puzzle_is_not_reevaluated(service):
    service.submit_attempt(GAME_ID, UID, "archive", "timestamps", "2413")
    again = service.submit_attempt(GAME_ID, UID, "archive", "timestamps", "9999")
    assert again.accepted is False
    assert again.reason == "already_solved"


def test_room_completion_is_persisted_in_one_record(service, store):
    _solve_room(service, "archive", ARCHIVE_ANSWERS)
    assert WRITES.drain(timeout=5.0)

    saved = store.get(progress_path(GAME_ID, UID))
    assert saved["archive"]["room_complete"] is True
    assert saved["archive"]["key_collected"] is True
    assert saved["archive"]["solved"] == {"timestamps": True, "contradiction": True, "sector_lock": True}
    assert saved["well"]["room_complete"] is False


def test_nexus_after_three_keys(service, store):
    _solve_room(service, "archive", ARCHIVE_ANSWERS)
    _solve_room(service, "well", WELL_ANSWERS)
    assert service.load(GAME_ID, UID).is_nexus_unlocked is False
    _solve_room(service, "network", NETWORK_ANSWERS)
    assert service.load(GAME_ID, UID).is_nexus_unlocked is True

    # relu à froid depuis le store
    assert WRITES.drain(timeout=5.0)
    fresh = ProgressService(store=store).load(GAME_ID, UID)
    assert fresh.is_nexus_unlocked is True
    assert "nexus" not in store.get(progress_path(GAME_ID, UID))


def test_navigate_guard(service):
    service.submit_attempt(GAME_ID, UID, "well", "pulse", "11010")
    assert service.navigate(GAME_ID, UID, "well", "regulator")[0] is False
    accepted, ticket = service.navigate(GAME_ID, UID, "well", "pulse")
    assert accepted is True
    ticket.result(timeout=5.0)
    assert service.load(GAME_ID, UID).tracker("well").state.current_puzzle_index == 0


def test_reset_replaces_the_whole_record(service, store):
    _solve_room(service, "archive", ARCHIVE_ANSWERS)
    service.reset(GAME_ID, UID).result(timeout=5.0)
    assert WRITES.drain(timeout=5.0)
    saved = store.get(progress_path(GAME_ID, UID))
    assert saved["archive"]["room_complete"] is False
    assert saved["archive"]["solved"] == {}
    assert service.load(GAME_ID, UID).completion()["archive"] is False


def test_failed_write_keeps_optimistic_view(service, store, monkeypatch):
    def broken_set(*_args, **_kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(store, "set", broken_set)
    result = service.submit_attempt(GAME_ID, UID, "archive", "timestamps", "2413")
    assert WRITES.drain(timeout=5.0)
    assert isinstance(result.ticket.error, OSError)
    assert service.load(GAME_ID, UID).tracker("archive").is_solved("timestamps") is True


def test_unknown_room_or_puzzle(service):
    with pytest.raises(UnknownPuzzle):
        service.submit_attempt(GAME_ID, UID, "archive", "nope", "1")
    with pytest.raises(LookupError):
        service.submit_attempt(GAME_ID, UID, "attic", "timestamps", "1")
