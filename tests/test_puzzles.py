import pytest

from app.services import puzzle_catalog
from app.services.puzzle_catalog import attempt, get_puzzle, room_puzzle_ids
from app.services.puzzles import (
    INVALID_FORMAT,
    SOLVED,
    WRONG,
    escalate,
    evaluate_bulls_cows,
    evaluate_choice,
    evaluate_constraints,
    evaluate_permutation,
    evaluate_phrase,
    normalize_phrase,
    parse_integers,
    score_bulls_cows,
)


@pytest.mark.parametrize("raw", ["", "123", "12345", "1123", "1235", "abcd", "0123", "1 2 3 4"])
def test_permutation_malformed_is_invalid_not_wrong(raw):
    assert evaluate_permutation("2413", raw).outcome == INVALID_FORMAT


def test_permutation_wrong_and_solved():
    assert evaluate_permutation("2413", "1234").outcome == WRONG
    assert evaluate_permutation("2413", " 2413 ").outcome == SOLVED


def test_bulls_cows_reference_values():
    assert score_bulls_cows("427", "724") == (1, 2)
    assert score_bulls_cows("427", "427") == (3, 0)
    assert evaluate_bulls_cows("427", "427").outcome == SOLVED


def test_bulls_cows_repeated_digits():
    assert score_bulls_cows("1122", "1212") == (2, 2)
    assert score_bulls_cows("427", "444") == (1, 0)
    assert score_bulls_cows("1234", "1111") == (1, 0)


def test_bulls_cows_rejects_length_mismatch():
    with pytest.raises(ValueError):
        score_bulls_cows("427", "42")


@pytest.mark.parametrize("raw", ["42", "4271", "4a7", ""])
def test_bulls_cows_invalid_input(raw):
    assert evaluate_bulls_cows("427", raw).outcome == INVALID_FORMAT


def test_bulls_cows_feedback_on_wrong_guess():
    verdict = evaluate_bulls_cows("427", "724")
    assert verdict.outcome == WRONG
    assert verdict.feedback == {"bulls": 1, "cows": 2}


@pytest.mark.parametrize("raw", ["echospire", " ECHO SPIRE ", "Echo_Spire"])
def test_phrase_normalization_variants(raw):
    assert normalize_phrase(raw) == "ECHOSPIRE"
    assert evaluate_phrase("ECHOSPIRE", raw).outcome == SOLVED


def test_phrase_en_dash_and_empty():
    assert evaluate_phrase("AURELION-PRIME", "aurelion–prime").outcome == SOLVED
    assert evaluate_phrase("AURELION-PRIME", "   ").outcome == INVALID_FORMAT
    assert evaluate_phrase("AURELION-PRIME", "aurelion").outcome == WRONG


def test_choice_requires_known_option():
    assert evaluate_choice("B", "", ("A", "B", "C")).outcome == INVALID_FORMAT
    assert evaluate_choice("B", "Z", ("A", "B", "C")).outcome == INVALID_FORMAT
    assert evaluate_choice("B", "b", ("A", "B", "C")).outcome == SOLVED


def test_parse_integers_accepts_several_shapes():
    assert parse_integers({"P": 3, "H": "4", "R": 4}, ("P", "H", "R")) == (3, 4, 4)
    assert parse_integers("3, 4, 4", ("P", "H", "R")) == (3, 4, 4)
    assert parse_integers([3, 4], ("P", "H", "R")) is None
    assert parse_integers({"P": 3, "H": "x", "R": 4}, ("P", "H", "R")) is None
    assert parse_integers([True, 4, 4], ("P", "H", "R")) is None


class TestRegulator:
    puzzle = get_puzzle("well", "regulator")

    def test_designated_solution(self):
        outcome = attempt(self.puzzle, {"P": 3, "H": 4, "R": 4})
        assert outcome.solved
        assert "PULSAR-LINEAGE" in outcome.message

    def test_first_failing_predicate_is_reported(self):
        # H=5 viole heat_limit ; la somme (10) échoue aussi mais n'est pas rapportée
        outcome = attempt(self.puzzle, {"P": 2, "H": 5, "R": 3})
        assert outcome.verdict.outcome == WRONG
        assert outcome.verdict.detail == "heat_limit"
        assert "Heat cannot exceed four" in outcome.message

    def test_other_triples_satisfying_every_predicate_are_refused(self):
        values = (5, 0, 6)
        assert all(check(*values) for _name, check in puzzle_catalog.REGULATOR_PREDICATES)
        outcome = attempt(self.puzzle, list(values))
        assert outcome.verdict.outcome == WRONG
        assert outcome.verdict.detail == "undesignated"

    def test_predicate_order(self):
        assert attempt(self.puzzle, "3 4 5").verdict.detail == "rotation_offset"
        assert attempt(self.puzzle, "1 4 2").verdict.detail == "total"
        assert attempt(self.puzzle, "4 4 6").verdict.detail == "rotation_offset"
        assert attempt(self.puzzle, "4 2 5").verdict.detail == "parity"
        assert attempt(self.puzzle, "2 2 3").verdict.detail == "total"

    def test_non_numeric_input_is_invalid(self):
        outcome = attempt(self.puzzle, {"P": "three", "H": 4, "R": 4})
        assert outcome.verdict.outcome == INVALID_FORMAT
        assert not outcome.counts_attempt


def test_evaluate_constraints_without_catalog():
    predicates = [("small", lambda a, b: a < 5), ("sum", lambda a, b: a + b == 6)]
    assert evaluate_constraints((9, 0), predicates, (2, 4)).detail == "small"
    assert evaluate_constraints((1, 5), predicates, (2, 4)).detail == "undesignated"
    assert evaluate_constraints((2, 4), predicates, (2, 4)).outcome == SOLVED
    assert evaluate_constraints(None, predicates, (2, 4)).outcome == INVALID_FORMAT


def test_escalation_switches_at_threshold():
    assert escalate(0, "generic", "specific", 2) == "generic"
    assert escalate(1, "generic", "specific", 2) == "generic"
    assert escalate(2, "generic", "specific", 2) == "specific"


def test_pulse_messages_escalate_with_attempts():
    pulse = get_puzzle("well", "pulse")
    assert attempt(pulse, "10101", attempts_before=0).message == pulse.retry_message
    assert attempt(pulse, "10101", attempts_before=2).message == pulse.nudge_message
    assert attempt(pulse, "1101", attempts_before=5).message == pulse.invalid_message


def test_cipher_message_carries_feedback():
    cipher = get_puzzle("network", "cipher")
    outcome = attempt(cipher, "724", attempts_before=0)
    assert "1 bull, 2 cows" in outcome.message
    late = attempt(cipher, "999", attempts_before=3)
    assert "0 bulls, 0 cows" in late.message
    assert "leading digit is even" in late.message


def test_catalog_sequences():
    assert room_puzzle_ids("archive") == ["timestamps", "contradiction", "sector_lock"]
    assert room_puzzle_ids("well") == ["pulse", "sigils", "regulator"]
    assert room_puzzle_ids("network") == ["cipher", "routing", "identity"]
    with pytest.raises(puzzle_catalog.UnknownRoom):
        room_puzzle_ids("attic")
