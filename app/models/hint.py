"""
Models / hint.py
Rôle:
- Indice admin rattaché à une énigme (`puzzle_key` = "room/puzzle").
- `revealed_for` ne fait que croître : un indice révélé à une équipe ne peut pas être masqué.
"""
from typing import List

from pydantic import BaseModel, Field


class Hint(BaseModel):
    id: str
    puzzle_key: str
    order: int = 0  # position dans la séquence d'indices de l'énigme
    text: str = ""
    revealed_for: List[str] = Field(default_factory=list)  # team_ids

    def is_revealed_to(self, team_id: str) -> bool:
        return team_id in self.revealed_for
