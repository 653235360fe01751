"""
Models / game.py
Rôle:
- Décrire une partie (Game), ses équipes (Team) et ses supports imprimables (Material).
- Tous les champs ont une valeur par défaut : un document lu du store est toujours complet.

Champs (Game):
- phase: cycle de vie piloté par l'admin (lobby → assigning → playing → voting → ended).
- joinable: drapeau orthogonal ; False bloque la création ET l'utilisation des codes.
"""
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class GamePhase(str, Enum):
    LOBBY = "lobby"
    ASSIGNING = "assigning"
    PLAYING = "playing"
    VOTING = "voting"
    ENDED = "ended"


class Game(BaseModel):
    """Instance de session d'escape room."""
    id: str
    name: str
    phase: GamePhase = GamePhase.LOBBY
    joinable: bool = True  # False = partie "en pause" côté inscriptions
    created_at: float = Field(default_factory=time.time)


class Team(BaseModel):
    id: str
    name: str
    color: Optional[str] = None  # couleur d'affichage (console admin)


class Material(BaseModel):
    """Support imprimable (fichier hébergé hors du backend)."""
    id: str
    title: str
    description: str = ""
    storage_path: str = ""
    phase: Optional[str] = None  # phase pendant laquelle le support est distribué
    required: bool = False
    printed: bool = False
