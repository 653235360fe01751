"""
Service: hint_service.py
Rôle :
- Registre de divulgation des indices : chaque indice garde l'ensemble des équipes à qui
  il a été révélé (`revealed_for`), qui ne fait que croître.
- `reveal_hint` écrit par union ensembliste (array_union) : deux révélations concurrentes
  pour des équipes différentes sur le même indice aboutissent toutes les deux.
- Révéler à nouveau à une équipe déjà présente est un no-op ; il n'existe pas de "unreveal".

Intégrations :
- Push `hint_revealed` aux joueurs connectés de l'équipe (WS).
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from uuid import uuid4

from app.models.hint import Hint
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.nonblocking import WriteTicket, array_union_nonblocking
from app.services.puzzle_catalog import puzzle_keys
from app.services.ws_manager import ws_send_type_to_players_safe

logger = logging.getLogger(__name__)

# révélations expédiées mais pas encore écrites : (game_id, hint_id, team_id)
_IN_FLIGHT: Set[Tuple[str, str, str]] = set()
_IN_FLIGHT_LOCK = Lock()


class HintNotFound(LookupError):
    pass


def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store or get_store()


def hint_path(game_id: str, hint_id: str) -> str:
    return doc_path("games", game_id, "hints", hint_id)


def create_hint(
    game_id: str,
    puzzle_key: str,
    text: str,
    order: Optional[int] = None,
    store: Optional[DocumentStore] = None,
) -> Hint:
    if puzzle_key not in puzzle_keys():
        raise ValueError(f"Unknown puzzle key: {puzzle_key}")
    text = (text or "").strip()
    if not text:
        raise ValueError("Hint text is required")
    st = _store(store)
    if order is None:
        order = 1 + max((h.order for h in list_hints(game_id, st) if h.puzzle_key == puzzle_key), default=0)
    hint = Hint(id=uuid4().hex[:10], puzzle_key=puzzle_key, order=order, text=text)
    st.set(hint_path(game_id, hint.id), hint.model_dump())
    return hint


def get_hint(game_id: str, hint_id: str, store: Optional[DocumentStore] = None) -> Hint:
    raw = _store(store).get(hint_path(game_id, hint_id))
    if not raw:
        raise HintNotFound(hint_id)
    raw.setdefault("id", hint_id)
    return Hint.model_validate(raw)


def list_hints(game_id: str, store: Optional[DocumentStore] = None) -> List[Hint]:
    """Indices de la partie triés par `order` (puis par énigme)."""
    hints = [Hint.model_validate(raw) for raw in _store(store).list(doc_path("games", game_id) + "/hints")]
    return sorted(hints, key=lambda h: (h.order, h.puzzle_key))


def hints_by_puzzle(game_id: str, store: Optional[DocumentStore] = None) -> Dict[str, List[Hint]]:
    grouped: Dict[str, List[Hint]] = OrderedDict()
    for hint in list_hints(game_id, store):
        grouped.setdefault(hint.puzzle_key, []).append(hint)
    return grouped


def hints_for_team(game_id: str, team_id: Optional[str], store: Optional[DocumentStore] = None) -> List[Dict[str, Any]]:
    """Vue joueur : uniquement les indices révélés à son équipe, sans la liste des équipes."""
    if not team_id:
        return []
    return [
        {"id": h.id, "puzzle_key": h.puzzle_key, "order": h.order, "text": h.text}
        for h in list_hints(game_id, store)
        if h.is_revealed_to(team_id)
    ]


def _team_member_ids(game_id: str, team_id: str, st: DocumentStore) -> List[str]:
    players = st.list(doc_path("games", game_id) + "/players")
    return [p["id"] for p in players if p.get("team_id") == team_id]


def reveal_hint(
    game_id: str,
    hint_id: str,
    team_id: str,
    store: Optional[DocumentStore] = None,
) -> Optional[WriteTicket]:
    """
    Ajoute `team_id` à `revealed_for`.
    Retourne None si l'équipe y figurait déjà, ou si une révélation identique est encore
    en vol (double clic) : précondition non remplie, ignorée.
    """
    st = _store(store)
    key = (game_id, hint_id, team_id)
    with _IN_FLIGHT_LOCK:
        hint = get_hint(game_id, hint_id, st)
        if hint.is_revealed_to(team_id) or key in _IN_FLIGHT:
            return None
        _IN_FLIGHT.add(key)

    ticket = array_union_nonblocking(
        hint_path(game_id, hint_id), "revealed_for", team_id, game_id=game_id, store=store
    )
    payload = {"id": hint.id, "puzzle_key": hint.puzzle_key, "order": hint.order, "text": hint.text}

    def _announce(t: WriteTicket) -> None:
        with _IN_FLIGHT_LOCK:
            _IN_FLIGHT.discard(key)
        # False : l'équipe figurait déjà dans revealed_for, rien à annoncer
        if t.error is None and t.result() is True:
            ws_send_type_to_players_safe(_team_member_ids(game_id, team_id, st), "hint_revealed", payload)

    ticket.add_done_callback(_announce)
    logger.info("Hint reveal dispatched", extra={"game_id": game_id, "hint_id": hint_id, "team_id": team_id})
    return ticket


def seed_hints(
    game_id: str,
    entries: Iterable[Dict[str, Any]],
    store: Optional[DocumentStore] = None,
) -> List[Hint]:
    """Création en lot (console admin) : [{puzzle_key, text, order?}, ...]."""
    return [
        create_hint(game_id, e.get("puzzle_key", ""), e.get("text", ""), e.get("order"), store)
        for e in entries
    ]
