"""
Models / player.py
Rôle:
- Participant : une session de joueur rattachée à une partie (clé = uid de session).
- ParticipantCode : code d'accès à usage unique, global (unique toutes parties confondues).

Champs:
- display_name: fixé une seule fois à l'onboarding (None tant que non choisi).
- team_id: None = non assigné.
"""
import time
from typing import Optional

from pydantic import BaseModel, Field


class Participant(BaseModel):
    id: str  # uid de session participant
    game_id: str
    display_name: Optional[str] = None
    team_id: Optional[str] = None
    participant_code: str = ""
    created_at: float = Field(default_factory=time.time)


class ParticipantCode(BaseModel):
    code: str  # ex: "CRIMSON-HARBOR"
    game_id: str
    created_at: float = Field(default_factory=time.time)
    redeemed_by: Optional[str] = None  # uid du participant, une fois utilisé

    @property
    def redeemed(self) -> bool:
        return self.redeemed_by is not None
