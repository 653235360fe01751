"""
Dépendances d'authentification (admin / participant)
====================================================

Objectif
--------
Fournir l'identité de la session courante aux routes :
- `admin_required` : console admin, via
  1) un **cookie de session HttpOnly** `admin_session` (interface web), *ou*
  2) un **Bearer token** `settings.ADMIN_TOKEN` (pratique en dev/CLI).
- `participant_required` : joueur, via le header `X-Participant-Token` (ou le cookie
  `participant_session`) obtenu à l'échange d'un code.

Identité
--------
`Identity(uid, is_anonymous)` : `uid` est la clé primaire du Participant ; `is_anonymous`
distingue une session joueur (True) d'une session admin (False).

Comportement & codes retour
---------------------------
- 401 si aucune authentification valide.
- 403 si un Bearer est fourni mais invalide.

Notes
-----
- Les préflights OPTIONS ne portent pas d'auth : protéger chaque route, pas le router.
- Sessions admin stockées dans `admin_sessions/{sid}` avec expiration (12h).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from fastapi import Depends, Header, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config.settings import settings
from app.services.code_service import SessionNotFound, resolve_session
from app.services.document_store import InvalidPath, doc_path, get_store

# ----------------------------
# Constantes & utilitaires
# ----------------------------
ADMIN_COOKIE_NAME = "admin_session"
PARTICIPANT_COOKIE_NAME = "participant_session"
ADMIN_TTL_SECONDS = 12 * 3600  # 12 heures


@dataclass(frozen=True)
class Identity:
    uid: str
    is_anonymous: bool
    game_id: Optional[str] = None


def _admin_session_path(sid: str) -> str:
    return doc_path("admin_sessions", sid)


def create_admin_session() -> str:
    """Crée une session admin avec TTL et renvoie son identifiant (utilisé par /auth/admin/login)."""
    sid = uuid4().hex
    get_store().set(_admin_session_path(sid), {"exp": time.time() + ADMIN_TTL_SECONDS})
    return sid


def delete_admin_session(sid: Optional[str]) -> None:
    if not sid:
        return
    try:
        get_store().delete(_admin_session_path(sid))
    except InvalidPath:
        return


def _admin_cookie_valid(request: Request) -> bool:
    """Session admin par cookie : présente ET non expirée (supprimée si expirée)."""
    sid = request.cookies.get(ADMIN_COOKIE_NAME)
    if not sid:
        return False
    try:
        rec = get_store().get(_admin_session_path(sid))
    except InvalidPath:
        return False
    if not isinstance(rec, dict):
        return False
    if float(rec.get("exp", 0)) < time.time():
        delete_admin_session(sid)
        return False
    return True


# Schéma Bearer (désactive l'erreur auto pour qu'on rende nos 401/403)
bearer = HTTPBearer(auto_error=False)

ADMIN_IDENTITY = Identity(uid="admin", is_anonymous=False)


def admin_required(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Identity:
    if _admin_cookie_valid(request):
        return ADMIN_IDENTITY

    if credentials and (credentials.scheme or "").lower() == "bearer":
        if credentials.credentials == settings.ADMIN_TOKEN:
            return ADMIN_IDENTITY
        raise HTTPException(status_code=403, detail="Invalid token")

    raise HTTPException(status_code=401, detail="Admin authentication required")


def identity_from_token(token: Optional[str]) -> Optional[Identity]:
    if not token:
        return None
    try:
        session = resolve_session(token)
    except SessionNotFound:
        return None
    return Identity(uid=session["uid"], is_anonymous=True, game_id=session.get("game_id"))


def participant_required(
    request: Request,
    x_participant_token: Optional[str] = Header(default=None),
) -> Identity:
    token = x_participant_token or request.cookies.get(PARTICIPANT_COOKIE_NAME)
    identity = identity_from_token(token)
    if identity is None:
        raise HTTPException(status_code=401, detail="Participant session required")
    return identity
