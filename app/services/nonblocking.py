"""
Service: nonblocking.py
Rôle :
- Expédier les écritures du document store sans bloquer l'appelant ("fire-and-forget"),
  tout en gardant un canal de résultat (`WriteTicket`) que l'appelant PEUT observer.
- Un échec d'écriture n'est jamais rejoué : il est publié sur le canal de notifications.

Ordre :
- Avec `settings.WRITE_WORKERS == 1` (défaut), les écritures sont appliquées dans l'ordre
  de dispatch ; deux mises à jour successives d'un même document ne peuvent pas s'inverser.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import RLock
from typing import Any, Callable, Dict, Optional, Set

from app.config.settings import settings
from app.services.document_store import DocumentStore, get_store
from app.services.notifications import NOTICES

logger = logging.getLogger(__name__)


class WriteTicket:
    """Résultat observable d'une écriture expédiée."""

    def __init__(self, future: Future, description: str) -> None:
        self._future = future
        self.description = description

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        """Attend l'écriture ; relance l'erreur du store le cas échéant."""
        return self._future.result(timeout=timeout)

    @property
    def error(self) -> Optional[BaseException]:
        if not self._future.done():
            return None
        return self._future.exception()

    def add_done_callback(self, callback: Callable[["WriteTicket"], None]) -> None:
        self._future.add_done_callback(lambda _f: callback(self))


class WritePool:
    def __init__(self, workers: int = 1) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="store-write")
        self._lock = RLock()
        self._pending: Set[Future] = set()

    def dispatch(
        self,
        fn: Callable[..., Any],
        *args: Any,
        description: str = "store write",
        game_id: Optional[str] = None,
        **kwargs: Any,
    ) -> WriteTicket:
        def _run() -> Any:
            # La notification part avant que le ticket ne soit marqué terminé.
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                logger.error(
                    "Non-blocking write failed",
                    exc_info=True,
                    extra={"write": description, "game_id": game_id},
                )
                NOTICES.notify(
                    "Error",
                    f"Could not save changes ({description}): {exc}",
                    level="destructive",
                    game_id=game_id,
                )
                raise

        future = self._executor.submit(_run)
        with self._lock:
            self._pending.add(future)

        def _forget(f: Future) -> None:
            with self._lock:
                self._pending.discard(f)

        future.add_done_callback(_forget)
        return WriteTicket(future, description)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: Optional[float] = 10.0) -> bool:
        """Attend toutes les écritures en vol. Retourne False si le délai expire."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self) -> None:
        self.drain()
        self._executor.shutdown(wait=True)


WRITES = WritePool(workers=settings.WRITE_WORKERS)


# -----------------------------
# Helpers (miroir des opérations du store)
# -----------------------------
def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store or get_store()


def set_document_nonblocking(
    path: str,
    data: Dict[str, Any],
    merge: bool = False,
    game_id: Optional[str] = None,
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    return WRITES.dispatch(_store(store).set, path, data, merge=merge, description=f"set {path}", game_id=game_id)


def update_document_nonblocking(
    path: str,
    fields: Dict[str, Any],
    game_id: Optional[str] = None,
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    return WRITES.dispatch(_store(store).update, path, fields, description=f"update {path}", game_id=game_id)


def array_union_nonblocking(
    path: str,
    field_name: str,
    *values: Any,
    game_id: Optional[str] = None,
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    return WRITES.dispatch(
        _store(store).array_union, path, field_name, *values,
        description=f"array_union {path}.{field_name}", game_id=game_id,
    )


def delete_tree_nonblocking(
    path: str,
    game_id: Optional[str] = None,
    store: Optional[DocumentStore] = None,
) -> WriteTicket:
    return WRITES.dispatch(_store(store).delete_tree, path, description=f"delete {path}", game_id=game_id)
