"""
Service: progress_service.py
Rôle :
- Relier les RoomTracker au document store (`games/{gid}/progress/{uid}`).
- Vue locale optimiste par participant : chargée à froid depuis le store, mise à jour
  immédiatement à chaque action, écrite en non bloquant. Le store reste la source de vérité
  (cache oublié au reset du participant et à la fin de la partie).

Politique d'échec d'écriture :
- Pas de rollback de la vue locale ; l'échec part sur le canal de notifications (toast).

Intégrations :
- Évaluation : `puzzle_catalog.attempt`.
- Push joueur : événement WS `progress` vers le participant.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, Optional, Tuple

from app.models.progress import ProgressRecord
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.nonblocking import WriteTicket, set_document_nonblocking
from app.services.progress import PlayerProgress
from app.services.puzzle_catalog import attempt, get_puzzle
from app.services.ws_manager import ws_send_type_to_player_safe

logger = logging.getLogger(__name__)


def progress_path(game_id: str, uid: str) -> str:
    return doc_path("games", game_id, "progress", uid)


def initial_record(game_id: str, uid: str) -> ProgressRecord:
    """Progression neuve : toutes les salles à l'index 0, aucun drapeau levé."""
    return ProgressRecord(participant_id=uid, game_id=game_id)


@dataclass
class AttemptResult:
    accepted: bool
    room: str
    puzzle_id: str
    outcome: Optional[str] = None
    message: str = ""
    feedback: Dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    reason: Optional[str] = None
    progress: Dict[str, Any] = field(default_factory=dict)
    ticket: Optional[WriteTicket] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "room": self.room,
            "puzzle_id": self.puzzle_id,
            "outcome": self.outcome,
            "message": self.message,
            "feedback": self.feedback,
            "attempts": self.attempts,
            "reason": self.reason,
            "progress": self.progress,
        }


class ProgressService:
    def __init__(self, store: Optional[DocumentStore] = None) -> None:
        self._store = store
        self._lock = RLock()
        self._cache: Dict[Tuple[str, str], PlayerProgress] = {}

    @property
    def store(self) -> DocumentStore:
        return self._store or get_store()

    # -----------------------------
    # Lecture
    # -----------------------------
    def load(self, game_id: str, uid: str) -> PlayerProgress:
        key = (game_id, uid)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                return cached
            raw = self.store.get(progress_path(game_id, uid))
            record = ProgressRecord.model_validate(raw) if raw else initial_record(game_id, uid)
            progress = PlayerProgress(record)
            self._cache[key] = progress
            return progress

    def forget(self, game_id: str, uid: Optional[str] = None) -> None:
        """Oublie la vue locale d'un participant (ou de toute la partie si uid=None)."""
        with self._lock:
            for key in list(self._cache):
                if key[0] == game_id and (uid is None or key[1] == uid):
                    self._cache.pop(key, None)

    # -----------------------------
    # Écritures
    # -----------------------------
    def _persist_room(self, progress: PlayerProgress, room: str) -> WriteTicket:
        record = progress.record
        record.updated_at = time.time()
        payload = {
            "participant_id": record.participant_id,
            "game_id": record.game_id,
            room: record.room(room).model_dump(),
            "updated_at": record.updated_at,
        }
        return set_document_nonblocking(
            progress_path(record.game_id, record.participant_id),
            payload,
            merge=True,
            game_id=record.game_id,
            store=self._store,
        )

    def _push(self, progress: PlayerProgress) -> None:
        ws_send_type_to_player_safe(progress.record.participant_id, "progress", progress.summary())

    def submit_attempt(self, game_id: str, uid: str, room: str, puzzle_id: str, raw: Any) -> AttemptResult:
        puzzle = get_puzzle(room, puzzle_id)
        with self._lock:
            progress = self.load(game_id, uid)
            tracker = progress.tracker(room)
            result = AttemptResult(accepted=False, room=room, puzzle_id=puzzle_id)

            if tracker.is_solved(puzzle_id):
                result.reason = "already_solved"
            elif not tracker.can_navigate(puzzle_id):
                result.reason = "locked"
            if result.reason:
                result.attempts = tracker.attempts(puzzle_id)
                result.progress = progress.summary()
                return result

            before = tracker.attempts(puzzle_id)
            outcome = attempt(puzzle, raw, before)
            result.accepted = True
            result.outcome = outcome.verdict.outcome
            result.message = outcome.message
            result.feedback = dict(outcome.verdict.feedback)

            if outcome.counts_attempt:
                result.attempts = tracker.record_attempt(puzzle_id)
                if outcome.solved:
                    tracker.record_solve(puzzle_id)
                    logger.info(
                        "Puzzle solved",
                        extra={"game_id": game_id, "uid": uid, "puzzle": puzzle.key, "attempts": result.attempts},
                    )
                result.ticket = self._persist_room(progress, room)
            else:
                result.attempts = before

            result.progress = progress.summary()

        if result.ticket is not None:
            self._push(progress)
        return result

    def navigate(self, game_id: str, uid: str, room: str, puzzle_id: str) -> Tuple[bool, Optional[WriteTicket]]:
        """Déplace l'énigme courante. Au-delà de la frontière : refus silencieux (False, None)."""
        with self._lock:
            progress = self.load(game_id, uid)
            tracker = progress.tracker(room)
            if not tracker.navigate_to(puzzle_id):
                return False, None
            ticket = self._persist_room(progress, room)
        return True, ticket

    def reset(self, game_id: str, uid: str) -> WriteTicket:
        """Remise à zéro complète (écriture en remplacement, pas en fusion)."""
        with self._lock:
            progress = self.load(game_id, uid)
            progress.reset()
            progress.record.updated_at = time.time()
            ticket = set_document_nonblocking(
                progress_path(game_id, uid),
                progress.record.model_dump(),
                merge=False,
                game_id=game_id,
                store=self._store,
            )
        self._push(progress)
        return ticket


PROGRESS = ProgressService()
