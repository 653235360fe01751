"""
Service: document_store.py
Rôle :
- Stocker les documents du jeu (games, teams, players, progress, hints, codes…) sous
  forme de fichiers JSON (orjson) organisés par chemin hiérarchique.
- Offrir les opérations dont le cœur a besoin : get, list, set (merge ou remplacement),
  update, array_union (union ensembliste atomique), delete, delete_tree.
- Notifier en push les abonnés (`subscribe`) à chaque écriture sous un préfixe donné.

Chemins :
- Les segments alternent collection / document : `games/{gid}`, `games/{gid}/teams/{tid}`.
- Un document `a/b` est stocké dans `<root>/a/b.json`, ses sous-collections sous `<root>/a/b/`.

Concurrence :
- Toutes les lectures/écritures passent par un RLock ; `array_union` lit et réécrit le
  document sous ce verrou, deux ajouts concurrents ne peuvent donc pas s'écraser.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.config.settings import settings
from .io_utils import read_json, remove_path, write_json

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class DocumentNotFound(LookupError):
    """Le document visé n'existe pas."""


class InvalidPath(ValueError):
    """Chemin de document/collection mal formé."""


@dataclass(frozen=True)
class DocumentChange:
    path: str
    data: Optional[Dict[str, Any]]  # None => document supprimé

    @property
    def deleted(self) -> bool:
        return self.data is None


Listener = Callable[[DocumentChange], None]


def _segments(path: str) -> List[str]:
    parts = [p for p in (path or "").strip("/").split("/")]
    if not parts or any(not _SEGMENT_RE.match(p) for p in parts):
        raise InvalidPath(f"Invalid store path: {path!r}")
    return parts


def doc_path(*parts: str) -> str:
    """Construit un chemin de document en validant chaque segment."""
    path = "/".join(parts)
    if len(_segments(path)) % 2 != 0:
        raise InvalidPath(f"Document path needs an even number of segments: {path!r}")
    return path


@dataclass
class DocumentStore:
    root: Path
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    _listeners: List[Tuple[str, Listener]] = field(default_factory=list, init=False, repr=False)

    # -----------------------------
    # Chemins
    # -----------------------------
    def _doc_file(self, path: str) -> Path:
        parts = _segments(path)
        if len(parts) % 2 != 0:
            raise InvalidPath(f"Not a document path: {path!r}")
        return self.root.joinpath(*parts[:-1]) / f"{parts[-1]}.json"

    def _collection_dir(self, path: str) -> Path:
        parts = _segments(path)
        if len(parts) % 2 != 1:
            raise InvalidPath(f"Not a collection path: {path!r}")
        return self.root.joinpath(*parts)

    # -----------------------------
    # Lectures
    # -----------------------------
    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return read_json(self._doc_file(path))

    def list(self, collection_path: str) -> List[Dict[str, Any]]:
        """Retourne tous les documents d'une collection (chacun avec son `id`)."""
        with self._lock:
            folder = self._collection_dir(collection_path)
            if not folder.is_dir():
                return []
            docs: List[Dict[str, Any]] = []
            for entry in sorted(folder.glob("*.json")):
                data = read_json(entry)
                if not isinstance(data, dict):
                    continue
                data.setdefault("id", entry.stem)
                docs.append(data)
            return docs

    # -----------------------------
    # Écritures
    # -----------------------------
    def set(self, path: str, data: Dict[str, Any], merge: bool = False) -> Dict[str, Any]:
        """Remplace le document (ou fusionne les champs si `merge=True`)."""
        with self._lock:
            target = self._doc_file(path)
            current = read_json(target) if merge else None
            doc = dict(current or {})
            doc.update(data)
            write_json(target, doc)
        self._emit(DocumentChange(path, doc))
        return doc

    def update(self, path: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Fusion partielle sur un document existant."""
        with self._lock:
            target = self._doc_file(path)
            current = read_json(target)
            if current is None:
                raise DocumentNotFound(path)
            current.update(fields)
            write_json(target, current)
        self._emit(DocumentChange(path, current))
        return current

    def array_union(self, path: str, field_name: str, *values: Any) -> bool:
        """
        Ajoute `values` à la liste `field_name` sans doublon.
        Retourne True si au moins une valeur a été ajoutée.
        """
        with self._lock:
            target = self._doc_file(path)
            current = read_json(target)
            if current is None:
                raise DocumentNotFound(path)
            items = list(current.get(field_name) or [])
            added = False
            for value in values:
                if value not in items:
                    items.append(value)
                    added = True
            if not added:
                return False
            current[field_name] = items
            write_json(target, current)
        self._emit(DocumentChange(path, current))
        return True

    def delete(self, path: str) -> bool:
        with self._lock:
            removed = remove_path(self._doc_file(path))
        if removed:
            self._emit(DocumentChange(path, None))
        return removed

    def delete_tree(self, path: str) -> bool:
        """Supprime un document et toutes ses sous-collections."""
        with self._lock:
            target = self._doc_file(path)
            removed_doc = remove_path(target)
            removed_children = remove_path(target.with_suffix(""))
        if removed_doc or removed_children:
            self._emit(DocumentChange(path, None))
            return True
        return False

    # -----------------------------
    # Abonnements (push)
    # -----------------------------
    def subscribe(self, prefix: str, callback: Listener) -> Callable[[], None]:
        """Abonne `callback` aux écritures sous `prefix`. Retourne la fonction de désabonnement."""
        _segments(prefix)
        entry = (prefix.strip("/"), callback)
        with self._lock:
            self._listeners.append(entry)

        def _unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return _unsubscribe

    def _emit(self, change: DocumentChange) -> None:
        with self._lock:
            targets = [
                cb for prefix, cb in self._listeners
                if change.path == prefix or change.path.startswith(prefix + "/")
            ]
        for callback in targets:
            try:
                callback(change)
            except Exception:
                logger.exception("Store listener failed", extra={"store_path": change.path})


# -----------------------------
# Singleton global
# -----------------------------
_instance: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Garantit une unique instance `DocumentStore` pour tout le backend (lazy)."""
    global _instance
    if _instance is None:
        _instance = DocumentStore(root=Path(settings.DATA_DIR) / "store")
    return _instance
