"""
Routes d'authentification
=========================

- POST /auth/admin/login  : vérifie les identifiants admin et POSE un cookie 'admin_session'
- POST /auth/admin/logout : supprime la session côté serveur + EFFACE le cookie client
- POST /auth/redeem       : échange un code participant contre une session joueur

Cookies
-------
- HttpOnly, `SameSite=Lax`, `Secure` quand DEBUG=False.
- Le jeton participant est aussi renvoyé dans le corps (header `X-Participant-Token`).
"""

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from app.config.settings import settings
from app.deps.auth import (
    ADMIN_COOKIE_NAME,
    ADMIN_TTL_SECONDS,
    PARTICIPANT_COOKIE_NAME,
    create_admin_session,
    delete_admin_session,
)
from app.deps.errors import service_errors
from app.services.code_service import redeem_code

router = APIRouter(prefix="/auth", tags=["auth"])


class AdminLogin(BaseModel):
    username: str
    password: str


class RedeemPayload(BaseModel):
    code: str


@router.post("/admin/login")
def admin_login(p: AdminLogin, response: Response):
    if p.username != settings.ADMIN_USER or p.password != settings.ADMIN_PASSWORD:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    sid = create_admin_session()
    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=sid,
        httponly=True,
        samesite="lax",
        secure=(not settings.DEBUG),
        max_age=ADMIN_TTL_SECONDS,
        path="/",
    )
    return {"ok": True, "ttl": ADMIN_TTL_SECONDS}


@router.post("/admin/logout")
def admin_logout(request: Request, response: Response):
    delete_admin_session(request.cookies.get(ADMIN_COOKIE_NAME))
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return {"ok": True}


@router.post("/redeem")
def redeem(p: RedeemPayload, response: Response):
    """Code valide, non utilisé, partie joignable → session participant."""
    with service_errors():
        out = redeem_code(p.code)

    response.set_cookie(
        key=PARTICIPANT_COOKIE_NAME,
        value=out["token"],
        httponly=True,
        samesite="lax",
        secure=(not settings.DEBUG),
        path="/",
    )
    participant = out["participant"]
    return {
        "ok": True,
        "token": out["token"],
        "participant": participant.model_dump(),
        "needs_display_name": not participant.display_name,
    }
