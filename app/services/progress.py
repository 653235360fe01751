"""
Service: progress.py
Rôle :
- RoomTracker : machine d'état d'une salle pour un participant.
  États : Locked(i) (i = première énigme non résolue) puis Complete (terminal jusqu'au reset).
- PlayerProgress : agrège les trois salles ; `is_nexus_unlocked` est recalculé à chaque
  lecture à partir des fragments de clé, jamais mis en cache.

Règles :
- record_solve est idempotent ; résoudre la dernière énigme pose room_complete ET
  key_collected dans la même transition.
- navigate_to refuse toute énigme au-delà de la frontière (première non résolue).
- Les booléens ne repassent jamais à False, sauf via reset() (remise à zéro complète).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Union

from app.models.progress import ProgressRecord, RoomProgress
from app.services.puzzle_catalog import ROOM_IDS, UnknownPuzzle, room_puzzle_ids


@dataclass(frozen=True)
class Locked:
    index: int


@dataclass(frozen=True)
class Complete:
    pass


RoomStatus = Union[Locked, Complete]
COMPLETE = Complete()


class RoomTracker:
    def __init__(self, room: str, puzzle_ids: Sequence[str], state: RoomProgress) -> None:
        self.room = room
        self.puzzle_ids: List[str] = list(puzzle_ids)
        self.state = state

    def _index_of(self, puzzle_id: str) -> int:
        try:
            return self.puzzle_ids.index(puzzle_id)
        except ValueError:
            raise UnknownPuzzle(f"{self.room}/{puzzle_id}") from None

    def is_solved(self, puzzle_id: str) -> bool:
        return bool(self.state.solved.get(puzzle_id, False))

    def attempts(self, puzzle_id: str) -> int:
        return int(self.state.attempts.get(puzzle_id, 0))

    def frontier_index(self) -> int:
        """Index de la première énigme non résolue (len(puzzle_ids) si tout est résolu)."""
        for i, pid in enumerate(self.puzzle_ids):
            if not self.is_solved(pid):
                return i
        return len(self.puzzle_ids)

    def can_navigate(self, puzzle_id: str) -> bool:
        return self._index_of(puzzle_id) <= self.frontier_index()

    def status(self) -> RoomStatus:
        if self.state.room_complete:
            return COMPLETE
        return Locked(self.frontier_index())

    def record_attempt(self, puzzle_id: str) -> int:
        self._index_of(puzzle_id)
        count = self.attempts(puzzle_id) + 1
        self.state.attempts[puzzle_id] = count
        return count

    def record_solve(self, puzzle_id: str) -> bool:
        """
        Marque l'énigme résolue. Retourne False si elle l'était déjà ou si elle est
        au-delà de la frontière (Locked(i) n'accepte que l'énigme i).
        Complete est terminal : plus aucune résolution n'est acceptée avant reset().
        """
        index = self._index_of(puzzle_id)
        if self.is_solved(puzzle_id) or index > self.frontier_index():
            return False
        self.state.solved[puzzle_id] = True
        if all(self.is_solved(pid) for pid in self.puzzle_ids):
            # une seule transition : la salle et son fragment de clé
            self.state.room_complete, self.state.key_collected = True, True
            self.state.current_puzzle_index = len(self.puzzle_ids) - 1
        else:
            nxt = index + 1
            self.state.current_puzzle_index = nxt if nxt < len(self.puzzle_ids) else self.frontier_index()
        return True

    def navigate_to(self, puzzle_id: str) -> bool:
        """Change l'énigme affichée ; refusé (False) au-delà de la frontière."""
        if not self.can_navigate(puzzle_id):
            return False
        self.state.current_puzzle_index = self._index_of(puzzle_id)
        return True

    def reset(self) -> None:
        fresh = RoomProgress()
        self.state.current_puzzle_index = fresh.current_puzzle_index
        self.state.solved = fresh.solved
        self.state.attempts = fresh.attempts
        self.state.room_complete = fresh.room_complete
        self.state.key_collected = fresh.key_collected

    def snapshot(self) -> Dict[str, object]:
        status = self.status()
        return {
            "room": self.room,
            "puzzles": list(self.puzzle_ids),
            "current_puzzle_index": self.state.current_puzzle_index,
            "frontier_index": self.frontier_index(),
            "status": "complete" if isinstance(status, Complete) else "locked",
            "solved": {pid: self.is_solved(pid) for pid in self.puzzle_ids},
            "attempts": {pid: self.attempts(pid) for pid in self.puzzle_ids},
            "room_complete": self.state.room_complete,
            "key_collected": self.state.key_collected,
        }


class PlayerProgress:
    """Profil de progression d'un participant (trois salles)."""

    def __init__(self, record: ProgressRecord) -> None:
        self.record = record
        self.trackers: Dict[str, RoomTracker] = {
            room: RoomTracker(room, room_puzzle_ids(room), record.room(room)) for room in ROOM_IDS
        }

    def tracker(self, room: str) -> RoomTracker:
        try:
            return self.trackers[room]
        except KeyError:
            raise UnknownPuzzle(f"unknown room {room!r}") from None

    @property
    def is_nexus_unlocked(self) -> bool:
        return all(t.state.key_collected for t in self.trackers.values())

    def keys(self) -> Dict[str, bool]:
        return {room: t.state.key_collected for room, t in self.trackers.items()}

    def completion(self) -> Dict[str, bool]:
        return {room: t.state.room_complete for room, t in self.trackers.items()}

    def reset(self) -> None:
        for tracker in self.trackers.values():
            tracker.reset()

    def summary(self) -> Dict[str, object]:
        return {
            "participant_id": self.record.participant_id,
            "game_id": self.record.game_id,
            "keys": self.keys(),
            "completion": self.completion(),
            "nexus_unlocked": self.is_nexus_unlocked,
            "rooms": {room: t.snapshot() for room, t in self.trackers.items()},
        }
