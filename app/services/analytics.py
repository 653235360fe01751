"""
Service: analytics.py
Rôle :
- Vue admin de la progression : par participant, salles terminées, fragments de clé,
  accès au Nexus et total des tentatives. Lecture directe du store (source de vérité).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.models.progress import ProgressRecord
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.progress import PlayerProgress
from app.services.puzzle_catalog import ROOM_IDS
from app.services.team_service import list_participants


def game_analytics(game_id: str, store: Optional[DocumentStore] = None) -> Dict[str, Any]:
    st = store or get_store()
    participants = {p.id: p for p in list_participants(game_id, st)}
    rows: List[Dict[str, Any]] = []
    for raw in st.list(doc_path("games", game_id) + "/progress"):
        record = ProgressRecord.model_validate(raw)
        progress = PlayerProgress(record)
        participant = participants.get(record.participant_id)
        rows.append({
            "participant_id": record.participant_id,
            "display_name": participant.display_name if participant else None,
            "team_id": participant.team_id if participant else None,
            "completion": progress.completion(),
            "keys": progress.keys(),
            "nexus_unlocked": progress.is_nexus_unlocked,
            "attempts_total": sum(sum(record.room(room).attempts.values()) for room in ROOM_IDS),
            "updated_at": record.updated_at,
        })
    rows.sort(key=lambda r: ((r["display_name"] or "").lower(), r["participant_id"]))

    totals = {room: sum(1 for r in rows if r["completion"][room]) for room in ROOM_IDS}
    return {
        "game_id": game_id,
        "players": rows,
        "rooms_completed": totals,
        "nexus_unlocked": sum(1 for r in rows if r["nexus_unlocked"]),
        "player_count": len(rows),
    }
