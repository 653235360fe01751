# app/routes/websocket.py
"""
WebSocket endpoints.

- /ws : canal joueur (identification par jeton participant, ping/pong, ACK générique).
  Reçoit `progress`, `hint_revealed`.
- /ws/admin/{game_id} : flux console admin d'une partie ("*" = toutes). Push des
  modifications du store sous `games/{game_id}` (type=doc_change) et des toasts (type=toast).
  Auth : `?token=<ADMIN_TOKEN>` ou cookie `admin_session`.
"""
from __future__ import annotations

import json
import time
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from app.config.settings import settings
from app.deps.auth import ADMIN_COOKIE_NAME, identity_from_token
from app.services.document_store import DocumentChange, InvalidPath, doc_path, get_store
from app.services.ws_manager import ALL_GAMES, WS, ws_send_json_safe

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    """
    Boucle d'écoute des clients joueurs.
    - Identification via {"type":"identify","token": "<participant token>"}.
    - Ping/pong pour heartbeat.
    """
    await WS.connect(ws)
    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except Exception:
                # Message non JSON -> ignore
                continue

            mtype: str = msg.get("type")
            if mtype == "identify":
                payload = msg.get("payload") or {}
                token: Optional[str] = (msg.get("token") or payload.get("token") or "").strip()
                identity = identity_from_token(token)
                if identity:
                    WS.identify(ws, identity.uid)
                    await WS.send_json(ws, {"type": "identified", "participant_id": identity.uid})
                else:
                    await WS.send_json(ws, {"type": "error", "error": "invalid token"})
            elif mtype == "ping":
                await WS.send_json(ws, {"type": "pong"})
            else:
                await WS.send_json(ws, {"type": "ack", "received": msg})
    except WebSocketDisconnect:
        pass
    finally:
        if ws.client_state != WebSocketState.DISCONNECTED:
            await WS.disconnect(ws)
        else:
            WS._unlink(ws)


def _admin_ws_allowed(ws: WebSocket) -> bool:
    if ws.query_params.get("token") == settings.ADMIN_TOKEN:
        return True
    sid = ws.cookies.get(ADMIN_COOKIE_NAME)
    if not sid:
        return False
    try:
        rec = get_store().get(doc_path("admin_sessions", sid))
    except InvalidPath:
        return False
    return isinstance(rec, dict) and float(rec.get("exp", 0)) >= time.time()


@router.websocket("/ws/admin/{game_id}")
async def websocket_admin_stream(ws: WebSocket, game_id: str):
    """Flux push (pas de polling) des changements d'une partie pour la console admin."""
    if not _admin_ws_allowed(ws):
        await ws.close(code=4401)
        return

    await WS.connect_admin(ws, game_id)
    prefix = "games" if game_id == ALL_GAMES else f"games/{game_id}"

    def _on_change(change: DocumentChange) -> None:
        ws_send_json_safe(ws, {"type": "doc_change", "path": change.path, "deleted": change.deleted, "data": change.data})

    try:
        unsubscribe = get_store().subscribe(prefix, _on_change)
    except InvalidPath:
        await WS.disconnect(ws)
        return

    await WS.send_json(ws, {"type": "subscribed", "game_id": game_id})
    try:
        while True:
            raw = await ws.receive_text()
            if raw.strip() == "ping" or raw.strip() == '{"type":"ping"}':
                await WS.send_json(ws, {"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        if ws.client_state != WebSocketState.DISCONNECTED:
            await WS.disconnect(ws)
        else:
            WS._unlink(ws)
