"""
Models / event.py
Rôle:
- Définir la notification (toast) standard échangée dans l'app : erreurs d'écriture,
  confirmations admin, annonces aux joueurs.

Notes:
- `level` restreint à un jeu de valeurs (Literal) pour éviter les fautes de frappe.
- `game_id` optionnel : None => notification globale (console admin).
"""
import time
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

NoticeLevel = Literal["info", "success", "destructive"]


class Notice(BaseModel):
    """Une entrée du canal de notifications (affichée en toast côté front)."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    level: NoticeLevel = "info"
    title: str
    description: str = ""
    game_id: Optional[str] = None
    ts: float = Field(default_factory=time.time)
