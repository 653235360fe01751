"""
Module routes/players.py
Rôle:
- Profil du participant connecté : lecture, choix unique du nom d'affichage,
  indices révélés à son équipe.

Intégrations:
- `participant_required` : identité issue du jeton de session (X-Participant-Token).
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.deps.auth import Identity, participant_required
from app.deps.errors import service_errors
from app.services import code_service, game_phase, hint_service, team_service

router = APIRouter(prefix="/me", tags=["players"])


class DisplayNamePayload(BaseModel):
    display_name: str


@router.get("")
def me(identity: Identity = Depends(participant_required)):
    with service_errors():
        participant = team_service.get_participant(identity.game_id, identity.uid)
        game = game_phase.get_game(identity.game_id)
    return {
        "participant": participant.model_dump(),
        "game": {"id": game.id, "name": game.name, "phase": game.phase.value},
        "needs_display_name": not participant.display_name,
    }


@router.post("/display_name")
def set_display_name(p: DisplayNamePayload, identity: Identity = Depends(participant_required)):
    """Une seule fois : 409 si déjà choisi."""
    with service_errors():
        participant = code_service.set_display_name(identity.game_id, identity.uid, p.display_name)
    return {"ok": True, "participant": participant.model_dump()}


@router.get("/hints")
def my_hints(identity: Identity = Depends(participant_required)):
    with service_errors():
        participant = team_service.get_participant(identity.game_id, identity.uid)
    return {"team_id": participant.team_id, "hints": hint_service.hints_for_team(identity.game_id, participant.team_id)}
