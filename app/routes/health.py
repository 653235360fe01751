"""
Module routes/health.py
Rôle:
- Endpoints de santé (service OK + ping LLM).

Intégrations:
- settings: nom d'app + paramètres LLM.
- llm_engine.ping: aller-retour court vers le provider (latence).
"""
from fastapi import APIRouter
import time

from app.config.settings import settings
from app.services import llm_engine
from app.services.nonblocking import WRITES

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    """Renvoie un OK minimal avec le nom de service configuré."""
    return {"ok": True, "service": settings.APP_NAME, "pending_writes": WRITES.pending_count()}


@router.get("/llm")
def health_llm():
    """Vérifie la disponibilité du LLM en mesurant une latence simple."""
    t0 = time.perf_counter()
    try:
        llm_engine.ping()
        ok, error = True, None
    except llm_engine.LLMServiceError as e:
        ok, error = False, str(e)
    out = {
        "ok": ok,
        "provider": settings.LLM_PROVIDER,
        "model": settings.LLM_MODEL,
        "latency_s": round(time.perf_counter() - t0, 3),
    }
    if error:
        out["error"] = error
    return out
