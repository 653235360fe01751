"""
Service: team_service.py
Rôle :
- Équipes d'une partie (`games/{gid}/teams/{tid}`) et affectation des participants.
- `team_id = None` sur un participant = non assigné.
- Répartition automatique des non assignés : `utils.team_utils.round_robin_assign`.

Les écritures d'affectation sont non bloquantes (WriteTicket) comme les autres écritures admin.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.models.game import Team
from app.models.player import Participant
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.nonblocking import WriteTicket, update_document_nonblocking
from app.utils.team_utils import round_robin_assign

logger = logging.getLogger(__name__)


class TeamNotFound(LookupError):
    pass


class ParticipantNotFound(LookupError):
    pass


def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store or get_store()


def team_path(game_id: str, team_id: str) -> str:
    return doc_path("games", game_id, "teams", team_id)


def player_path(game_id: str, uid: str) -> str:
    return doc_path("games", game_id, "players", uid)


def create_team(game_id: str, name: str, color: Optional[str] = None, store: Optional[DocumentStore] = None) -> Team:
    name = (name or "").strip()
    if not name:
        raise ValueError("Team name is required")
    team = Team(id=uuid4().hex[:8], name=name, color=color)
    _store(store).set(team_path(game_id, team.id), team.model_dump())
    return team


def list_teams(game_id: str, store: Optional[DocumentStore] = None) -> List[Team]:
    teams = [Team.model_validate(raw) for raw in _store(store).list(doc_path("games", game_id) + "/teams")]
    return sorted(teams, key=lambda t: t.name.lower())


def list_participants(game_id: str, store: Optional[DocumentStore] = None) -> List[Participant]:
    return [Participant.model_validate(raw) for raw in _store(store).list(doc_path("games", game_id) + "/players")]


def get_participant(game_id: str, uid: str, store: Optional[DocumentStore] = None) -> Participant:
    raw = _store(store).get(player_path(game_id, uid))
    if not raw:
        raise ParticipantNotFound(uid)
    raw.setdefault("id", uid)
    return Participant.model_validate(raw)


def assign_team(
    game_id: str,
    uid: str,
    team_id: Optional[str],
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    """Déplace un participant dans `team_id` (None = le retirer de toute équipe)."""
    st = _store(store)
    get_participant(game_id, uid, st)
    if team_id is not None and st.get(team_path(game_id, team_id)) is None:
        raise TeamNotFound(team_id)
    return update_document_nonblocking(player_path(game_id, uid), {"team_id": team_id}, game_id=game_id, store=store)


def roster(game_id: str, store: Optional[DocumentStore] = None) -> Dict[str, Any]:
    """Participants groupés par équipe, plus la liste des non assignés."""
    st = _store(store)
    teams = list_teams(game_id, st)
    known = {t.id for t in teams}
    members: Dict[str, List[Dict[str, Any]]] = {t.id: [] for t in teams}
    unassigned: List[Dict[str, Any]] = []
    for p in list_participants(game_id, st):
        if p.team_id in known:
            members[p.team_id].append(p.model_dump())
        else:
            unassigned.append(p.model_dump())
    return {
        "teams": [{**t.model_dump(), "members": members[t.id]} for t in teams],
        "unassigned": unassigned,
    }


def auto_assign(game_id: str, seed: Optional[int] = None, store: Optional[DocumentStore] = None) -> Dict[str, str]:
    """Répartit les non assignés entre les équipes existantes (round-robin équilibré)."""
    st = _store(store)
    teams = list_teams(game_id, st)
    if not teams:
        raise ValueError("Create at least one team before auto-assigning")
    team_ids = [t.id for t in teams]
    participants = list_participants(game_id, st)
    sizes = {tid: sum(1 for p in participants if p.team_id == tid) for tid in team_ids}
    pending = [p.id for p in participants if p.team_id not in sizes]

    assignment = round_robin_assign(pending, team_ids, sizes, seed=seed)
    for uid, tid in assignment.items():
        update_document_nonblocking(player_path(game_id, uid), {"team_id": tid}, game_id=game_id, store=store)
    logger.info("Auto-assign dispatched", extra={"game_id": game_id, "count": len(assignment)})
    return assignment
