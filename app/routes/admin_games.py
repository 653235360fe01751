"""
Module routes/admin_games.py
Rôle:
- Console admin : parties (création, phase, joinable, fin), équipes et affectations,
  codes participants, indices, analytics, supports imprimables, notifications.

Intégrations:
- Toutes les routes exigent `Depends(admin_required)` (par route, pas sur le router,
  pour laisser passer les préflights OPTIONS).
- Les écritures admin sont non bloquantes : la réponse part avant la confirmation du
  store (`dispatched: true`), un échec arrive en toast via /admin/notices et le WS admin.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.deps.auth import admin_required
from app.deps.errors import service_errors
from app.models.game import GamePhase
from app.services import analytics, code_service, game_phase, hint_service, materials, team_service
from app.services.notifications import NOTICES

router = APIRouter(prefix="/admin", tags=["admin"])


class CreateGamePayload(BaseModel):
    name: str


class PhasePayload(BaseModel):
    phase: GamePhase


class JoinablePayload(BaseModel):
    joinable: bool


class TeamPayload(BaseModel):
    name: str
    color: Optional[str] = None


class AssignPayload(BaseModel):
    team_id: Optional[str] = None  # None = désassigner


class AutoAssignPayload(BaseModel):
    seed: Optional[int] = None


class HintEntry(BaseModel):
    puzzle_key: str
    text: str
    order: Optional[int] = None


class SeedHintsPayload(BaseModel):
    hints: List[HintEntry] = Field(default_factory=list)


class RevealPayload(BaseModel):
    team_id: str


class MaterialPayload(BaseModel):
    title: str
    description: str = ""
    storage_path: str = ""
    phase: Optional[str] = None
    required: bool = False


class PrintedPayload(BaseModel):
    printed: bool = True


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------
@router.post("/games", dependencies=[Depends(admin_required)])
def create_game(p: CreateGamePayload):
    with service_errors():
        game = game_phase.create_game(p.name)
    return game.model_dump(mode="json")


@router.get("/games", dependencies=[Depends(admin_required)])
def list_games():
    """Parties, la plus récente en premier."""
    return {"games": [g.model_dump(mode="json") for g in game_phase.list_games()]}


@router.get("/games/{game_id}", dependencies=[Depends(admin_required)])
def get_game(game_id: str):
    with service_errors():
        return game_phase.get_game(game_id).model_dump(mode="json")


@router.post("/games/{game_id}/phase", dependencies=[Depends(admin_required)])
def set_phase(game_id: str, p: PhasePayload):
    with service_errors():
        game_phase.set_phase(game_id, p.phase)
    return {"ok": True, "dispatched": True, "phase": p.phase.value}


@router.post("/games/{game_id}/joinable", dependencies=[Depends(admin_required)])
def set_joinable(game_id: str, p: JoinablePayload):
    with service_errors():
        game_phase.set_joinable(game_id, p.joinable)
    return {"ok": True, "dispatched": True, "joinable": p.joinable}


@router.post("/games/{game_id}/finish", dependencies=[Depends(admin_required)])
def finish_game(game_id: str):
    """Fin de partie : suppression en cascade (équipes, joueurs, progression, indices, codes)."""
    with service_errors():
        game_phase.finish_game(game_id)
    NOTICES.notify("Game finished", f"Game {game_id} has been closed.", level="success", game_id=game_id)
    return {"ok": True, "dispatched": True}


# ---------------------------------------------------------------------------
# Équipes
# ---------------------------------------------------------------------------
@router.post("/games/{game_id}/teams", dependencies=[Depends(admin_required)])
def create_team(game_id: str, p: TeamPayload):
    with service_errors():
        game_phase.get_game(game_id)
        return team_service.create_team(game_id, p.name, p.color).model_dump()


@router.get("/games/{game_id}/teams", dependencies=[Depends(admin_required)])
def list_teams(game_id: str):
    with service_errors():
        return {"teams": [t.model_dump() for t in team_service.list_teams(game_id)]}


@router.get("/games/{game_id}/roster", dependencies=[Depends(admin_required)])
def roster(game_id: str):
    with service_errors():
        return team_service.roster(game_id)


@router.post("/games/{game_id}/players/{uid}/team", dependencies=[Depends(admin_required)])
def assign_player(game_id: str, uid: str, p: AssignPayload):
    with service_errors():
        team_service.assign_team(game_id, uid, p.team_id)
    return {"ok": True, "dispatched": True, "team_id": p.team_id}


@router.post("/games/{game_id}/teams/auto-assign", dependencies=[Depends(admin_required)])
def auto_assign(game_id: str, p: AutoAssignPayload):
    with service_errors():
        assignment = team_service.auto_assign(game_id, seed=p.seed)
    return {"ok": True, "assigned": assignment}


# ---------------------------------------------------------------------------
# Codes participants
# ---------------------------------------------------------------------------
@router.post("/games/{game_id}/codes", dependencies=[Depends(admin_required)])
def mint_code(game_id: str):
    """Refusé (423) tant que la partie n'accepte pas de nouveaux joueurs."""
    with service_errors():
        return code_service.mint_code(game_id).model_dump()


@router.get("/games/{game_id}/codes", dependencies=[Depends(admin_required)])
def list_codes(game_id: str):
    with service_errors():
        return {"codes": [c.model_dump() for c in code_service.list_codes(game_id)]}


# ---------------------------------------------------------------------------
# Indices
# ---------------------------------------------------------------------------
@router.post("/games/{game_id}/hints", dependencies=[Depends(admin_required)])
def seed_hints(game_id: str, p: SeedHintsPayload):
    with service_errors():
        game_phase.get_game(game_id)
        created = hint_service.seed_hints(game_id, [h.model_dump() for h in p.hints])
    return {"ok": True, "hints": [h.model_dump() for h in created]}


@router.get("/games/{game_id}/hints", dependencies=[Depends(admin_required)])
def list_hints(game_id: str):
    """Indices groupés par énigme, triés par ordre."""
    with service_errors():
        grouped = hint_service.hints_by_puzzle(game_id)
    return {"hints": {key: [h.model_dump() for h in items] for key, items in grouped.items()}}


@router.post("/games/{game_id}/hints/{hint_id}/reveal", dependencies=[Depends(admin_required)])
def reveal_hint(game_id: str, hint_id: str, p: RevealPayload):
    """Déjà révélé à cette équipe → `changed: false` (no-op)."""
    with service_errors():
        ticket = hint_service.reveal_hint(game_id, hint_id, p.team_id)
    return {"ok": True, "changed": ticket is not None}


# ---------------------------------------------------------------------------
# Analytics / supports / notifications
# ---------------------------------------------------------------------------
@router.get("/games/{game_id}/analytics", dependencies=[Depends(admin_required)])
def game_analytics(game_id: str):
    with service_errors():
        return analytics.game_analytics(game_id)


@router.get("/games/{game_id}/materials", dependencies=[Depends(admin_required)])
def list_materials(game_id: str):
    with service_errors():
        return {"materials": [m.model_dump() for m in materials.list_materials(game_id)]}


@router.post("/games/{game_id}/materials", dependencies=[Depends(admin_required)])
def add_material(game_id: str, p: MaterialPayload):
    with service_errors():
        game_phase.get_game(game_id)
        return materials.add_material(game_id, **p.model_dump()).model_dump()


@router.post("/games/{game_id}/materials/{material_id}/printed", dependencies=[Depends(admin_required)])
def mark_printed(game_id: str, material_id: str, p: PrintedPayload):
    with service_errors():
        materials.mark_printed(game_id, material_id, p.printed)
    return {"ok": True, "dispatched": True}


@router.get("/notices", dependencies=[Depends(admin_required)])
def notices(game_id: Optional[str] = Query(default=None), limit: int = Query(default=50, ge=1, le=500)):
    items: List[Dict[str, Any]] = [n.model_dump() for n in NOTICES.recent(game_id, limit)]
    return {"notices": items}
