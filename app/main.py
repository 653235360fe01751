"""
Application FastAPI — Point d'entrée
====================================

Rôle
----
- Instancie l'app FastAPI, configure le CORS pour le front,
- Monte tous les routeurs (REST + WebSocket),
- Affiche la configuration LLM et la liste des routes au démarrage,
- Vide le pool d'écritures non bloquantes à l'arrêt.

Notes
-----
- Les importations des routeurs sont explicites pour éviter les surprises d'auto-discovery.
- Garder `settings.ALLOWED_ORIGINS` en phase avec les URLs du front.
- ⚠️ Le middleware CORS doit être ajouté AVANT les include_router.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config.settings import settings
from app.routes.admin_games import router as admin_games_router
from app.routes.auth import router as auth_router
from app.routes.health import router as health_router
from app.routes.players import router as players_router
from app.routes.rooms import router as rooms_router
from app.routes.websocket import router as ws_router
from app.services.nonblocking import WRITES

logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,  # ← whitelist des frontends autorisés
    allow_credentials=True,                  # ← cookies de session admin / participant
    allow_methods=["*"],
    allow_headers=["*"],                     # ← Authorization, X-Participant-Token
)

# ⚠️ Protections admin/participant au niveau DES ROUTES, pas du router entier,
#    pour ne pas bloquer les préflights OPTIONS.
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(admin_games_router)
app.include_router(players_router)
app.include_router(rooms_router)
app.include_router(ws_router)                  # WebSocket endpoints (/ws, /ws/admin/{game_id})


@app.get("/")
async def root():
    """Ping basique : permet de vérifier que l'app tourne (sans dépendance LLM)."""
    return {"ok": True, "service": "aurelia-backend"}


@app.on_event("startup")
async def list_routes():
    """Affiche la config LLM courante et liste les routes (diagnostic)."""
    print("== LLM config ==", settings.LLM_PROVIDER, settings.LLM_MODEL, settings.LLM_ENDPOINT)
    print("== Registered routes ==")
    for r in app.routes:
        methods = getattr(r, "methods", None)
        print(getattr(r, "path", r), methods or "")


@app.on_event("shutdown")
def flush_writes():
    """Attend les écritures en vol avant l'arrêt."""
    if not WRITES.drain(timeout=10.0):
        logging.getLogger(__name__).warning("Shutdown with pending store writes")
