"""
Configuration de l'application (Settings)
=========================================

Rôle
----
- Centraliser les paramètres du backend AURELIA (nom, host/port, secrets admin,
  stockage, LLM, pool d'écritures non bloquantes).
- Les valeurs par défaut conviennent pour un environnement de dev local.
- Les variables peuvent être surchargées via un fichier `.env` ou l'environnement.

Intégrations
------------
- `pydantic-settings` charge automatiquement les variables d'env et `.env`.
- Les services/routers importent `from app.config.settings import settings`.

Bonnes pratiques
----------------
- *Ne commitez pas* une valeur réelle de `ADMIN_TOKEN` / `ADMIN_PASSWORD`.
- `LLM_ENDPOINT` pointe par défaut vers Ollama local (http://localhost:11434).
- `DATA_DIR` calcule un chemin relatif au repo : `<repo>/app/data`.

Exemple de `.env`
-----------------
APP_NAME="AURELIA Escape Backend (Staging)"
ADMIN_TOKEN="mettre-une-valeur-secrète-en-prod"
ADMIN_USER="operator"
ADMIN_PASSWORD="..."
LLM_MODEL="mistral"
DATA_DIR="/var/opt/aurelia/data"
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
import os


class Settings(BaseSettings):
    # Nom du service (apparaît dans /health)
    APP_NAME: str = "AURELIA Escape Backend"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    # True en dev → cookie admin non `Secure`
    DEBUG: bool = True

    # Console admin : Bearer (CLI/dev) ou login cookie
    ADMIN_TOKEN: str = "changeme-admin-token"
    ADMIN_USER: str = "operator"
    ADMIN_PASSWORD: str = "changeme"

    # Frontends autorisés (CORS)
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Configuration du LLM (par défaut : Ollama local)
    LLM_PROVIDER: str = "ollama"
    LLM_MODEL: str = "mistral"
    LLM_ENDPOINT: str = "http://localhost:11434/api/chat"

    # Codes participants : nombre de tirages avant abandon sur collision
    CODE_MINT_MAX_ATTEMPTS: int = 5

    # Pool d'écritures non bloquantes (1 worker = ordre de dispatch préservé)
    WRITE_WORKERS: int = 1
    # Nombre de notifications (toasts) conservées en mémoire
    NOTICE_BUFFER_SIZE: int = 200

    # Racine du document store (JSON orjson). Par défaut: <repo>/app/data
    DATA_DIR: str = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


# Instance unique importable partout : `settings`
settings = Settings()
