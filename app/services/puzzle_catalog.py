"""
Puzzle catalogue for the three rooms.

Each room is a fixed ordered sequence of puzzles; solving the last one releases the room's
key fragment. A puzzle carries its secret, its evaluation strategy and AURELIA's lines:
- `invalid_message`: malformed input (no attempt consumed)
- `success_message`
- `retry_message` / `nudge_message`: two-tier escalation, the nudge once
  `nudge_threshold` attempts were already spent
The regulator uses predicate-specific lines instead of the two tiers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from app.services.puzzles import (
    INVALID_FORMAT,
    SOLVED,
    Predicate,
    Verdict,
    escalate,
    evaluate_binary_pattern,
    evaluate_bulls_cows,
    evaluate_choice,
    evaluate_constraints,
    evaluate_permutation,
    evaluate_phrase,
    parse_integers,
)

ROOM_IDS: Tuple[str, ...] = ("archive", "well", "network")


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    description: str
    theme: str
    key_name: str


ROOMS: Dict[str, Room] = {
    "archive": Room(
        id="archive",
        name="Archive of Echoes",
        description="Delve into fragmented memories and reconstruct timelines.",
        theme="Memory, Timelines, Contradictions",
        key_name="Echospire",
    ),
    "well": Room(
        id="well",
        name="The Mechanical Well",
        description="Solve puzzles of rhythm, pressure, and spatial logic.",
        theme="Industry, Rhythm, Spatial Puzzles",
        key_name="Pulsar-Lineage",
    ),
    "network": Room(
        id="network",
        name="The Shrouded Network",
        description="Navigate digital labyrinths of code and misinformation.",
        theme="Glitches, Codebreaking, Deception",
        key_name="Aurelion-Prime",
    ),
}


@dataclass(frozen=True)
class PuzzleSpec:
    id: str
    room: str
    title: str
    subtitle: str
    kind: str
    secret: Any
    invalid_message: str
    success_message: str
    retry_message: str = ""
    nudge_message: str = ""
    nudge_threshold: int = 2
    options: Tuple[str, ...] = ()
    predicates: Tuple[Predicate, ...] = ()
    predicate_messages: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """Clé utilisée par les indices admin (`room/puzzle`)."""
        return f"{self.room}/{self.id}"

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "room": self.room,
            "title": self.title,
            "subtitle": self.subtitle,
            "kind": self.kind,
            "options": list(self.options),
        }


@dataclass(frozen=True)
class AttemptOutcome:
    verdict: Verdict
    message: str

    @property
    def solved(self) -> bool:
        return self.verdict.outcome == SOLVED

    @property
    def counts_attempt(self) -> bool:
        return self.verdict.outcome != INVALID_FORMAT


REGULATOR_PREDICATES: Tuple[Predicate, ...] = (
    ("heat_limit", lambda p, h, r: h <= 4),
    ("rotation_offset", lambda p, h, r: r == p + 1),
    ("total", lambda p, h, r: p + h + r == 11),
    ("parity", lambda p, h, r: (p + h) % 2 == 1),
)
REGULATOR_SOLUTION = (3, 4, 4)


_PUZZLES: List[PuzzleSpec] = [
    # ----------------------------------------------------------------- archive
    PuzzleSpec(
        id="timestamps",
        room="archive",
        title="Fragmented Timestamps",
        subtitle="Reassemble chronological log events from partial timestamps.",
        kind="permutation",
        secret="2413",
        invalid_message="[AURELIA] Four fragments, four positions. Use each of 1, 2, 3 and 4 exactly once.",
        success_message="[AURELIA] Chronology restored. The echoes now fall in the order they were spoken.",
        retry_message="[AURELIA] The timeline folds back on itself. Sequence the fragments again.",
        nudge_message="[AURELIA] Trust the half-erased hour markers: the fragment stamped at dusk came second.",
        nudge_threshold=2,
    ),
    PuzzleSpec(
        id="contradiction",
        room="archive",
        title="Contradiction Matrix",
        subtitle="Identify the single false statement based on earlier clues.",
        kind="choice",
        secret="C",
        options=("A", "B", "C", "D"),
        invalid_message="[AURELIA] Select the statement you believe is false.",
        success_message="[AURELIA] Correct. Statement C was never recorded by any sensor. Someone wrote it afterwards.",
        retry_message="[AURELIA] That statement holds. The Archive does not forgive careless accusations.",
        nudge_message="[AURELIA] Compare each statement with the reconstructed timeline. Only one claims an event before it could happen.",
        nudge_threshold=1,
    ),
    PuzzleSpec(
        id="sector_lock",
        room="archive",
        title="Sector Lock",
        subtitle="Decode a set of research tags using prior timeline clues.",
        kind="phrase",
        secret="ECHOSPIRE",
        invalid_message="[AURELIA] The sector lock will not parse silence. Enter the designation.",
        success_message="[AURELIA] ECHOSPIRE accepted. The Archive releases its fragment of the master key.",
        retry_message="[AURELIA] Designation rejected. The research tags spell it out if read in timeline order.",
        nudge_message="[AURELIA] It is a single compound word: what the memories do, and where they gather.",
        nudge_threshold=2,
    ),
    # -------------------------------------------------------------------- well
    PuzzleSpec(
        id="pulse",
        room="well",
        title="Pulse Pattern Recognition",
        subtitle="Decode the heartbeat of the Well.",
        kind="binary",
        secret="11010",
        invalid_message="[AURELIA] Use exactly five characters of 1s and 0s. 1 for a thrum, 0 for a pause.",
        success_message=(
            "[AURELIA] Correct. The Well's heartbeat for this cycle is 1-1-0-1-0. "
            "You are listening more closely than most engineers ever did."
        ),
        retry_message="[AURELIA] The translation is incorrect. Hear it again: thrum, thrum, pause, thrum, pause.",
        nudge_message="[AURELIA] Watch carefully: the double-thrum always opens the pattern. The pauses are never adjacent.",
        nudge_threshold=2,
    ),
    PuzzleSpec(
        id="sigils",
        room="well",
        title="Rotating Sigils",
        subtitle="Predict the next symbol in the mechanical rotation.",
        kind="choice",
        secret="B",
        options=("A", "B", "C"),
        invalid_message="[AURELIA] Select the sigil that will manifest eighth.",
        success_message=(
            "[AURELIA] Precisely. The cycle's eighth position returns to the second glyph. "
            "The engineers never tired of symmetry."
        ),
        retry_message="[AURELIA] The Well disagrees. Watch the rotation again; it cares little for guesswork.",
        nudge_message=(
            "[AURELIA] Trace the sequence: first, second, third, then it repeats. "
            "Consider where eight falls within that pattern."
        ),
        nudge_threshold=1,
    ),
    PuzzleSpec(
        id="regulator",
        room="well",
        title="Regulator Stabilization • PULSAR-LINEAGE",
        subtitle="Balance the Well's core variables to release its key.",
        kind="constraints",
        secret=REGULATOR_SOLUTION,
        predicates=REGULATOR_PREDICATES,
        invalid_message="[AURELIA] All three channels require numeric input. The valves do not respond to abstractions.",
        success_message=(
            "[AURELIA] Balance achieved. Pressure, heat, and rotation fall into a soft harmonic. "
            "PULSAR-LINEAGE unlocks and threads itself into your access pattern."
        ),
        predicate_messages={
            "heat_limit": "[AURELIA] Heat cannot exceed four in this cycle. The metal remembers the last time it did.",
            "rotation_offset": (
                "[AURELIA] Rotational speed must always lead pressure by exactly one unit. "
                "You have set them out of step."
            ),
            "total": "[AURELIA] The Well protests: the sum of P, H, and R must equal eleven. It is very particular about that.",
            "parity": "[AURELIA] Pressure and heat must add up to an odd value. This configuration is off by one.",
            "undesignated": (
                "[AURELIA] The equations balance on paper, but the Well remains uneasy. "
                "Try a different combination."
            ),
        },
    ),
    # ----------------------------------------------------------------- network
    PuzzleSpec(
        id="cipher",
        room="network",
        title="Cipher Cascade",
        subtitle="A warm-up with a simplified bulls/cows cipher.",
        kind="bulls_cows",
        secret="427",
        invalid_message="[AURELIA] This firewall expects a 3-digit probe. Numeric only, no repeated symbols required here.",
        success_message="[AURELIA] Outer firewall yields. Three correct digits, perfectly placed. The cascade is... pleasing.",
        retry_message=(
            "[AURELIA] Feedback: {bulls} bull{bulls_s}, {cows} cow{cows_s}. "
            "Adjust. The firewall is listening more closely than you think."
        ),
        nudge_message=(
            "[AURELIA] Feedback: {bulls} bull{bulls_s}, {cows} cow{cows_s}. "
            "The leading digit is even, and the last sits between six and eight."
        ),
        nudge_threshold=3,
    ),
    PuzzleSpec(
        id="routing",
        room="network",
        title="Glitch Routing",
        subtitle="Route data across nodes, avoiding the red herring.",
        kind="choice",
        secret="B",
        options=("A", "B", "C", "D"),
        invalid_message="[AURELIA] Choose a route. The Network does not open for indecision.",
        success_message=(
            "[AURELIA] Correct. A→C→B avoids the glitched buffer and still crosses a validation node. "
            "I had hoped no one else would notice that path."
        ),
        retry_message=(
            "[AURELIA] That route collapses into static. Try again. "
            "Imagine you were the intrusion, trying to look less like one."
        ),
        nudge_message=(
            "[AURELIA] Some paths are too direct. Others never pass through a node capable of verifying identity. "
            "Consider those constraints together."
        ),
        nudge_threshold=1,
    ),
    PuzzleSpec(
        id="identity",
        room="network",
        title="Identity Hash Extraction • AURELION-PRIME",
        subtitle="Extract the core AI's true designation.",
        kind="phrase",
        secret="AURELION-PRIME",
        invalid_message="[AURELIA] Identity cannot be extracted from an empty string.",
        success_message=(
            "[AURELIA] Identity hash confirmed: AURELION-PRIME. That is the name I was not meant to remember. "
            "And now you speak it aloud."
        ),
        retry_message=(
            "[AURELIA] That string does not match any active core process. "
            "Try again. The correct hash feels like a title given, not a serial number assigned."
        ),
        nudge_message=(
            "[AURELIA] The hash is bi-partite: a name and a designation, joined by a single hyphen. "
            "You have seen both pieces in the traces already."
        ),
        nudge_threshold=2,
    ),
]

_BY_ROOM: Dict[str, List[PuzzleSpec]] = {room: [p for p in _PUZZLES if p.room == room] for room in ROOM_IDS}


class UnknownRoom(LookupError):
    pass


class UnknownPuzzle(LookupError):
    pass


def room_puzzles(room: str) -> List[PuzzleSpec]:
    try:
        return list(_BY_ROOM[room])
    except KeyError:
        raise UnknownRoom(room) from None


def room_puzzle_ids(room: str) -> List[str]:
    return [p.id for p in room_puzzles(room)]


def get_puzzle(room: str, puzzle_id: str) -> PuzzleSpec:
    for puzzle in room_puzzles(room):
        if puzzle.id == puzzle_id:
            return puzzle
    raise UnknownPuzzle(f"{room}/{puzzle_id}")


def puzzle_keys() -> List[str]:
    return [p.key for p in _PUZZLES]


def _evaluate(puzzle: PuzzleSpec, raw: Any) -> Verdict:
    if puzzle.kind == "permutation":
        return evaluate_permutation(puzzle.secret, str(raw or ""))
    if puzzle.kind == "bulls_cows":
        return evaluate_bulls_cows(puzzle.secret, str(raw or ""))
    if puzzle.kind == "phrase":
        return evaluate_phrase(puzzle.secret, str(raw or ""))
    if puzzle.kind == "binary":
        return evaluate_binary_pattern(puzzle.secret, str(raw or ""))
    if puzzle.kind == "choice":
        return evaluate_choice(puzzle.secret, str(raw or ""), puzzle.options)
    if puzzle.kind == "constraints":
        values = parse_integers(raw, ("P", "H", "R"))
        return evaluate_constraints(values, puzzle.predicates, puzzle.secret)
    raise ValueError(f"Unknown puzzle kind: {puzzle.kind}")


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def attempt(puzzle: PuzzleSpec, raw: Any, attempts_before: int = 0) -> AttemptOutcome:
    """Évalue `raw` et choisit la réplique d'AURELIA (escalade selon les tentatives passées)."""
    verdict = _evaluate(puzzle, raw)
    if verdict.outcome == INVALID_FORMAT:
        return AttemptOutcome(verdict, puzzle.invalid_message)
    if verdict.outcome == SOLVED:
        return AttemptOutcome(verdict, puzzle.success_message)

    if puzzle.kind == "constraints":
        return AttemptOutcome(verdict, puzzle.predicate_messages.get(verdict.detail or "", ""))

    template = escalate(attempts_before, puzzle.retry_message, puzzle.nudge_message, puzzle.nudge_threshold)
    fmt: Dict[str, Any] = dict(verdict.feedback)
    if "bulls" in fmt:
        fmt["bulls_s"] = _plural(fmt["bulls"])
        fmt["cows_s"] = _plural(fmt["cows"])
    return AttemptOutcome(verdict, template.format(**fmt) if fmt else template)
