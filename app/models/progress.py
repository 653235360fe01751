"""
Models / progress.py
Rôle:
- RoomProgress : état d'une salle pour un participant (index courant, énigmes résolues,
  compteur de tentatives, salle terminée, fragment de clé récupéré).
- ProgressRecord : les trois salles d'un participant, tel que stocké dans
  `games/{gid}/progress/{uid}`.

Invariant:
- key_collected ⇒ room_complete (refusé à la validation sinon).
- Le déverrouillage du Nexus n'est jamais stocké : il est recalculé à la lecture.
"""
import time
from typing import Dict

from pydantic import BaseModel, Field, model_validator


class RoomProgress(BaseModel):
    current_puzzle_index: int = 0
    solved: Dict[str, bool] = Field(default_factory=dict)
    attempts: Dict[str, int] = Field(default_factory=dict)
    room_complete: bool = False
    key_collected: bool = False

    @model_validator(mode="after")
    def _key_implies_complete(self) -> "RoomProgress":
        if self.key_collected and not self.room_complete:
            raise ValueError("key_collected requires room_complete")
        return self


class ProgressRecord(BaseModel):
    participant_id: str
    game_id: str
    archive: RoomProgress = Field(default_factory=RoomProgress)
    well: RoomProgress = Field(default_factory=RoomProgress)
    network: RoomProgress = Field(default_factory=RoomProgress)
    updated_at: float = Field(default_factory=time.time)

    def room(self, room: str) -> RoomProgress:
        return getattr(self, room)
