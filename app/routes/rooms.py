"""
Module routes/rooms.py
Rôle:
- Parcours joueur dans les trois salles : état, tentative, navigation, remise à zéro,
  accès au Nexus, et aide "contradiction" de l'énigme d'identité du Network.

Intégrations:
- PROGRESS : vue optimiste locale + écriture non bloquante de la salle.
- Une précondition non remplie (énigme verrouillée, déjà résolue, navigation au-delà de
  la frontière) n'est pas une erreur : `accepted: false`.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.deps.auth import Identity, participant_required
from app.deps.errors import service_errors
from app.services import llm_engine
from app.services.progress_service import PROGRESS
from app.services.puzzle_catalog import ROOMS, ROOM_IDS, room_puzzles

router = APIRouter(tags=["rooms"])


class AttemptPayload(BaseModel):
    puzzle_id: str
    answer: Any = None  # texte, ou {"P":..,"H":..,"R":..} pour le régulateur


class NavigatePayload(BaseModel):
    puzzle_id: str


class ContradictionPayload(BaseModel):
    statement1: str
    statement2: str
    archive_clues: Optional[str] = ""
    well_clues: Optional[str] = ""
    network_clues: Optional[str] = ""


def _room_view(room: str, identity: Identity) -> dict:
    progress = PROGRESS.load(identity.game_id, identity.uid)
    info = ROOMS[room]
    return {
        "id": info.id,
        "name": info.name,
        "description": info.description,
        "theme": info.theme,
        "key_name": info.key_name,
        "puzzles": [p.public() for p in room_puzzles(room)],
        "state": progress.tracker(room).snapshot(),
    }


@router.get("/rooms")
def rooms(identity: Identity = Depends(participant_required)):
    progress = PROGRESS.load(identity.game_id, identity.uid)
    return {
        "rooms": [
            {"id": r, "name": ROOMS[r].name, "key_name": ROOMS[r].key_name,
             "room_complete": progress.completion()[r], "key_collected": progress.keys()[r]}
            for r in ROOM_IDS
        ],
        "nexus_unlocked": progress.is_nexus_unlocked,
    }


@router.get("/rooms/{room}")
def room_detail(room: str, identity: Identity = Depends(participant_required)):
    with service_errors():
        if room not in ROOMS:
            raise LookupError(room)
        return _room_view(room, identity)


@router.post("/rooms/reset")
def reset_progress(identity: Identity = Depends(participant_required)):
    PROGRESS.reset(identity.game_id, identity.uid)
    return {"ok": True, "progress": PROGRESS.load(identity.game_id, identity.uid).summary()}


@router.post("/rooms/{room}/attempt")
def attempt(room: str, p: AttemptPayload, identity: Identity = Depends(participant_required)):
    with service_errors():
        result = PROGRESS.submit_attempt(identity.game_id, identity.uid, room, p.puzzle_id, p.answer)
    return result.to_dict()


@router.post("/rooms/{room}/navigate")
def navigate(room: str, p: NavigatePayload, identity: Identity = Depends(participant_required)):
    with service_errors():
        accepted, _ticket = PROGRESS.navigate(identity.game_id, identity.uid, room, p.puzzle_id)
        state = PROGRESS.load(identity.game_id, identity.uid).tracker(room).snapshot()
    return {"accepted": accepted, "state": state}


@router.get("/nexus")
def nexus(identity: Identity = Depends(participant_required)):
    """Accès au Nexus : recalculé à chaque lecture à partir des trois fragments."""
    progress = PROGRESS.load(identity.game_id, identity.uid)
    return {"unlocked": progress.is_nexus_unlocked, "keys": progress.keys()}


@router.post("/network/contradiction")
def contradiction(p: ContradictionPayload, identity: Identity = Depends(participant_required)):
    with service_errors():
        return llm_engine.detect_contradiction(
            p.statement1, p.statement2, p.archive_clues or "", p.well_clues or "", p.network_clues or ""
        )
