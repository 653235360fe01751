"""
Service: game_phase.py
Rôle :
- Cycle de vie d'une partie, piloté uniquement par l'admin : phase (lobby, assigning,
  playing, voting, ended) + drapeau `joinable` indépendant.
- Aucune transition automatique ; toute phase peut mener à toute autre.
- Écritures de phase / joinable en "fire-and-forget" : l'appelant reçoit un WriteTicket,
  un échec n'est signalé que par le canal de notifications, sans nouvel essai.

Fin de partie :
- `finish_game` supprime l'arbre `games/{gid}` (équipes, joueurs, progression, indices,
  supports) ainsi que les codes globaux rattachés à la partie.
"""
from __future__ import annotations

import logging
import time
from typing import List, Optional, Union
from uuid import uuid4

from app.models.game import Game, GamePhase
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.nonblocking import WRITES, WriteTicket, update_document_nonblocking
from app.services.progress_service import PROGRESS

logger = logging.getLogger(__name__)


class GameNotFound(LookupError):
    pass


def game_path(game_id: str) -> str:
    return doc_path("games", game_id)


def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store or get_store()


def create_game(name: str, store: Optional[DocumentStore] = None) -> Game:
    name = (name or "").strip()
    if not name:
        raise ValueError("Game name is required")
    game = Game(id=uuid4().hex[:12], name=name, phase=GamePhase.LOBBY, created_at=time.time())
    _store(store).set(game_path(game.id), game.model_dump(mode="json"))
    logger.info("Game created", extra={"game_id": game.id})
    return game


def get_game(game_id: str, store: Optional[DocumentStore] = None) -> Game:
    raw = _store(store).get(game_path(game_id))
    if not raw:
        raise GameNotFound(game_id)
    raw.setdefault("id", game_id)
    return Game.model_validate(raw)


def list_games(store: Optional[DocumentStore] = None) -> List[Game]:
    """Toutes les parties, la plus récente en premier."""
    games = [Game.model_validate(raw) for raw in _store(store).list("games")]
    return sorted(games, key=lambda g: g.created_at, reverse=True)


def set_phase(
    game_id: str,
    phase: Union[GamePhase, str],
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    """N'importe quelle phase vers n'importe quelle autre (ValueError si phase inconnue)."""
    phase = GamePhase(phase)
    get_game(game_id, store)
    logger.info("Phase change dispatched", extra={"game_id": game_id, "phase": phase.value})
    return update_document_nonblocking(game_path(game_id), {"phase": phase.value}, game_id=game_id, store=store)


def set_joinable(game_id: str, joinable: bool, store: Optional[DocumentStore] = None) -> WriteTicket:
    get_game(game_id, store)
    return update_document_nonblocking(
        game_path(game_id), {"joinable": bool(joinable)}, game_id=game_id, store=store
    )


def finish_game(game_id: str, store: Optional[DocumentStore] = None) -> WriteTicket:
    """Suppression en cascade : codes globaux de la partie puis arbre de la partie."""
    st = _store(store)
    get_game(game_id, st)

    def _cascade() -> int:
        removed = 0
        for code in st.list("codes"):
            if code.get("game_id") == game_id:
                st.delete(doc_path("codes", code["id"]))
                removed += 1
        for session in st.list("participant_sessions"):
            if session.get("game_id") == game_id:
                st.delete(doc_path("participant_sessions", session["id"]))
        st.delete_tree(game_path(game_id))
        return removed

    PROGRESS.forget(game_id)
    logger.info("Game finish dispatched", extra={"game_id": game_id})
    return WRITES.dispatch(_cascade, description=f"finish game {game_id}", game_id=game_id)


def is_joinable(game_id: str, store: Optional[DocumentStore] = None) -> bool:
    return get_game(game_id, store).joinable
