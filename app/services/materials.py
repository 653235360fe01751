"""
Service: materials.py
Rôle :
- Supports imprimables d'une partie (`games/{gid}/materials/{mid}`) : liste triée par titre,
  marquage "imprimé". Les fichiers eux-mêmes restent hébergés à l'extérieur (storage_path).
"""
from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from app.models.game import Material
from app.services.document_store import DocumentStore, doc_path, get_store
from app.services.nonblocking import WriteTicket, update_document_nonblocking


class MaterialNotFound(LookupError):
    pass


def material_path(game_id: str, material_id: str) -> str:
    return doc_path("games", game_id, "materials", material_id)


def add_material(
    game_id: str,
    title: str,
    description: str = "",
    storage_path: str = "",
    phase: Optional[str] = None,
    required: bool = False,
    store: Optional[DocumentStore] = None,
) -> Material:
    title = (title or "").strip()
    if not title:
        raise ValueError("Material title is required")
    material = Material(
        id=uuid4().hex[:10],
        title=title,
        description=description,
        storage_path=storage_path,
        phase=phase,
        required=required,
    )
    (store or get_store()).set(material_path(game_id, material.id), material.model_dump())
    return material


def list_materials(game_id: str, store: Optional[DocumentStore] = None) -> List[Material]:
    items = [Material.model_validate(raw) for raw in (store or get_store()).list(doc_path("games", game_id) + "/materials")]
    return sorted(items, key=lambda m: m.title.lower())


def mark_printed(game_id: str, material_id: str, printed: bool = True, store: Optional[DocumentStore] = None) -> WriteTicket:
    st = store or get_store()
    if st.get(material_path(game_id, material_id)) is None:
        raise MaterialNotFound(material_id)
    return update_document_nonblocking(
        material_path(game_id, material_id), {"printed": bool(printed)}, game_id=game_id, store=store
    )
