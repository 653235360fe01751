"""
Service: code_service.py
Rôle :
- Frapper les codes participants d'une partie (`codes/{CODE}`, unicité globale, champ game_id).
- Échanger un code contre une session participant (usage unique) : crée le Participant,
  sa progression initiale et le jeton de session `participant_sessions/{token}`.
- Onboarding : nom d'affichage choisi une seule fois.

Règles :
- `joinable == False` → ni frappe ni échange de code (GameNotJoinable).
- Collision de code → nouveau tirage, au plus `settings.CODE_MINT_MAX_ATTEMPTS` fois.
"""
from __future__ import annotations

import logging
import time
from threading import RLock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.config.settings import settings
from app.models.player import Participant, ParticipantCode
from app.services import llm_engine
from app.services.document_store import DocumentStore, InvalidPath, doc_path, get_store
from app.services.game_phase import get_game
from app.services.progress_service import initial_record, progress_path
from app.services.team_service import get_participant, player_path

logger = logging.getLogger(__name__)

DISPLAY_NAME_MAX = 50

_redeem_lock = RLock()


class GameNotJoinable(PermissionError):
    pass


class CodeNotFound(LookupError):
    pass


class CodeAlreadyRedeemed(ValueError):
    pass


class CodeSpaceExhausted(RuntimeError):
    pass


class DisplayNameLocked(ValueError):
    pass


class SessionNotFound(LookupError):
    pass


def _store(store: Optional[DocumentStore]) -> DocumentStore:
    return store or get_store()


def code_path(code: str) -> str:
    try:
        return doc_path("codes", code)
    except InvalidPath:
        raise CodeNotFound(code) from None


def session_path(token: str) -> str:
    return doc_path("participant_sessions", token)


def normalize_code(raw: str) -> str:
    return llm_engine.normalize_code(raw)


# -----------------------------
# Frappe
# -----------------------------
def mint_code(game_id: str, store: Optional[DocumentStore] = None) -> ParticipantCode:
    st = _store(store)
    game = get_game(game_id, st)
    if not game.joinable:
        raise GameNotJoinable(game_id)

    for attempt in range(max(1, settings.CODE_MINT_MAX_ATTEMPTS)):
        code = llm_engine.generate_participant_code()
        with _redeem_lock:
            if st.get(code_path(code)) is not None:
                logger.info("Code collision, drawing again", extra={"game_id": game_id, "attempt": attempt + 1})
                continue
            record = ParticipantCode(code=code, game_id=game_id, created_at=time.time())
            st.set(code_path(code), record.model_dump())
        logger.info("Participant code minted", extra={"game_id": game_id})
        return record
    raise CodeSpaceExhausted("Could not mint a unique code, try again")


def list_codes(game_id: str, store: Optional[DocumentStore] = None) -> List[ParticipantCode]:
    doc_path("games", game_id)
    codes = [ParticipantCode.model_validate(raw) for raw in _store(store).list("codes") if raw.get("game_id") == game_id]
    return sorted(codes, key=lambda c: c.created_at, reverse=True)


# -----------------------------
# Échange (login participant)
# -----------------------------
def redeem_code(raw_code: str, store: Optional[DocumentStore] = None) -> Dict[str, Any]:
    """
    Consomme un code et ouvre une session participant.
    Retourne {"token", "participant"}.
    """
    code = normalize_code(raw_code)
    if not code:
        raise CodeNotFound(raw_code)
    st = _store(store)
    path = code_path(code)

    with _redeem_lock:
        raw = st.get(path)
        if not raw:
            raise CodeNotFound(code)
        record = ParticipantCode.model_validate(raw)
        if record.redeemed:
            raise CodeAlreadyRedeemed(code)
        if not get_game(record.game_id, st).joinable:
            raise GameNotJoinable(record.game_id)

        uid = uuid4().hex
        token = uuid4().hex
        participant = Participant(id=uid, game_id=record.game_id, participant_code=code)
        st.set(player_path(record.game_id, uid), participant.model_dump())
        st.set(progress_path(record.game_id, uid), initial_record(record.game_id, uid).model_dump())
        st.set(session_path(token), {"uid": uid, "game_id": record.game_id, "created_at": time.time()})
        st.update(path, {"redeemed_by": uid})

    logger.info("Code redeemed", extra={"game_id": record.game_id, "uid": uid})
    return {"token": token, "participant": participant}


def resolve_session(token: str, store: Optional[DocumentStore] = None) -> Dict[str, Any]:
    try:
        raw = _store(store).get(session_path(token))
    except InvalidPath:
        raw = None
    if not raw:
        raise SessionNotFound(token)
    return raw


# -----------------------------
# Onboarding
# -----------------------------
def set_display_name(game_id: str, uid: str, name: str, store: Optional[DocumentStore] = None) -> Participant:
    cleaned = " ".join((name or "").split())
    if not cleaned or len(cleaned) > DISPLAY_NAME_MAX:
        raise ValueError(f"Display name must be 1-{DISPLAY_NAME_MAX} characters")
    st = _store(store)
    with _redeem_lock:
        participant = get_participant(game_id, uid, st)
        if participant.display_name:
            raise DisplayNameLocked(uid)
        st.update(player_path(game_id, uid), {"display_name": cleaned})
    participant.display_name = cleaned
    return participant
