# app/services/ws_manager.py
"""
Service: ws_manager.py
- Mapping participant_id -> sockets ET socket -> participant_id (ws_to_player).
- Consoles admin abonnées par partie (`admins_by_game`, clé "*" = toutes les parties).
- Identification idempotente (déplacement de socket si le participant change).
- Snapshots immuables pour éviter "set changed size during iteration".
- Helpers sync thread-safe : les écritures non bloquantes tournent sur un worker thread,
  les envois sont donc replanifiés sur la boucle qui a accepté les sockets.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, Iterable, Optional, Set

from starlette.websockets import WebSocket

logger = logging.getLogger(__name__)

ALL_GAMES = "*"


@dataclass
class WSManager:
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    # participant_id -> set(WebSocket)
    clients_by_player: Dict[str, Set[WebSocket]] = field(default_factory=dict)
    # game_id (ou "*") -> set(WebSocket) des consoles admin
    admins_by_game: Dict[str, Set[WebSocket]] = field(default_factory=dict)
    # sockets anonymes en attente d'identify
    pending: Set[WebSocket] = field(default_factory=set)
    ws_to_player: Dict[WebSocket, str] = field(default_factory=dict)
    # boucle qui possède les sockets (capturée à la première connexion)
    loop: Optional[asyncio.AbstractEventLoop] = field(default=None, repr=False)

    async def connect(self, ws: WebSocket) -> None:
        """Accepte la connexion WS joueur et place dans 'pending'."""
        await ws.accept()
        with self._lock:
            self.loop = asyncio.get_running_loop()
            self.pending.add(ws)

    async def connect_admin(self, ws: WebSocket, game_id: str) -> None:
        await ws.accept()
        with self._lock:
            self.loop = asyncio.get_running_loop()
            self.admins_by_game.setdefault(game_id or ALL_GAMES, set()).add(ws)

    def _unlink(self, ws: WebSocket) -> None:
        """Retire 'ws' de toutes les structures (pending, joueur, admin)."""
        with self._lock:
            self.pending.discard(ws)
            prev_pid = self.ws_to_player.pop(ws, None)
            if prev_pid:
                bucket = self.clients_by_player.get(prev_pid)
                if bucket is not None:
                    bucket.discard(ws)
                    if not bucket:
                        self.clients_by_player.pop(prev_pid, None)
            for gid in list(self.admins_by_game):
                bucket = self.admins_by_game[gid]
                bucket.discard(ws)
                if not bucket:
                    self.admins_by_game.pop(gid, None)

    async def disconnect(self, ws: WebSocket) -> None:
        self._unlink(ws)
        try:
            await ws.close()
        except Exception:
            pass

    def identify(self, ws: WebSocket, player_id: str) -> None:
        """Associe un WebSocket à un participant (déplacé proprement s'il était déjà lié)."""
        with self._lock:
            self.pending.discard(ws)
            prev_pid = self.ws_to_player.get(ws)
            if prev_pid and prev_pid != player_id:
                bucket_prev = self.clients_by_player.get(prev_pid)
                if bucket_prev:
                    bucket_prev.discard(ws)
                    if not bucket_prev:
                        self.clients_by_player.pop(prev_pid, None)
            self.clients_by_player.setdefault(player_id, set()).add(ws)
            self.ws_to_player[ws] = player_id

    async def _send_json_one(self, ws: WebSocket, payload: Any) -> bool:
        """Envoie à un WS; renvoie True si succès, sinon False (et retire le WS mort)."""
        try:
            data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
            await ws.send_text(data)
            return True
        except Exception:
            logger.debug("Dropping dead websocket", exc_info=True, extra={"player_id": self.ws_to_player.get(ws)})
            self._unlink(ws)
            return False

    async def send_json(self, ws: WebSocket, payload: Any) -> bool:
        return await self._send_json_one(ws, payload)

    # ---------- snapshots immuables ----------
    def _snapshot_players(self, player_ids: Iterable[str]) -> list[WebSocket]:
        with self._lock:
            result: list[WebSocket] = []
            for pid in player_ids:
                result.extend(self.clients_by_player.get(pid, ()))
            return result

    def _snapshot_admins(self, game_id: Optional[str]) -> list[WebSocket]:
        with self._lock:
            result = list(self.admins_by_game.get(ALL_GAMES, ()))
            if game_id and game_id != ALL_GAMES:
                result.extend(self.admins_by_game.get(game_id, ()))
            return result

    # ---------- envois ----------
    async def send_type_to_players(self, player_ids: Iterable[str], event_type: str, payload: Any) -> int:
        success = 0
        for ws in self._snapshot_players(player_ids):
            if await self._send_json_one(ws, {"type": event_type, "payload": payload}):
                success += 1
        return success

    async def broadcast_admin_type(self, game_id: Optional[str], event_type: str, payload: Any) -> int:
        success = 0
        for ws in self._snapshot_admins(game_id):
            if await self._send_json_one(ws, {"type": event_type, "game_id": game_id, "payload": payload}):
                success += 1
        return success

    # ---------- admin ----------
    def stats(self) -> dict:
        with self._lock:
            identified = {pid: len(conns) for pid, conns in self.clients_by_player.items()}
            return {
                "identified": identified,
                "identified_total": sum(identified.values()),
                "pending_total": len(self.pending),
                "admin_total": sum(len(c) for c in self.admins_by_game.values()),
            }


WS = WSManager()

# =====================================================
# WRAPPERS THREAD-SAFE (utilisables depuis code sync / worker threads)
# =====================================================

def _run_async(coro):
    """
    Planifie une coroutine d'envoi sur la boucle propriétaire des sockets.
    - Aucune boucle connue (aucun client connecté) → rien à envoyer, la coroutine est fermée.
    - Appel depuis la boucle elle-même → create_task (fire-and-forget).
    - Appel depuis un autre thread → run_coroutine_threadsafe.
    """
    loop = WS.loop
    if loop is None or loop.is_closed() or not loop.is_running():
        coro.close()
        return None
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        return loop.create_task(coro)
    return asyncio.run_coroutine_threadsafe(coro, loop)


def ws_send_type_to_players_safe(player_ids: Iterable[str], event_type: str, payload: dict):
    """Wrapper synchrone: envoi typé à une liste de participants."""
    _run_async(WS.send_type_to_players(list(player_ids), event_type, payload))


def ws_send_type_to_player_safe(player_id: str, event_type: str, payload: dict):
    ws_send_type_to_players_safe([player_id], event_type, payload)


def ws_broadcast_admin_safe(game_id: Optional[str], event_type: str, payload: dict):
    """Wrapper synchrone: diffusion typée aux consoles admin d'une partie (et aux globales)."""
    _run_async(WS.broadcast_admin_type(game_id, event_type, payload))


def ws_send_json_safe(ws: WebSocket, payload: dict):
    """Wrapper synchrone: envoi à un socket précis (flux admin par partie)."""
    _run_async(WS.send_json(ws, payload))
