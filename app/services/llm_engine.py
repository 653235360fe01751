"""
Service: llm_engine.py
- Centralise les appels vers le LLM (Ollama /api/chat par défaut).
- Frappe des codes participants (deux mots, tiret, majuscules) avec repli local sur une
  liste de mots : la création d'un code ne doit jamais bloquer l'admin.
- Détection de contradictions pour l'énigme d'identité du Network (AURELIA peut mentir).

Fonctions principales:
- generate_participant_code(): code "MOT-MOT" (LLM puis repli local).
- detect_contradiction(...): {"is_contradictory": bool, "explanation": str}.
"""
import json
import logging
import random
import re
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_CHAT_TIMEOUT: Tuple[float, float] = (5.0, 30.0)  # connect, read

CODE_RE = re.compile(r"^[A-Z]+-[A-Z]+$")

_FIRST_WORDS = (
    "AMBER", "ASTRAL", "CINDER", "COBALT", "COSMIC", "CRIMSON", "ECHO", "EMBER", "GILDED",
    "HOLLOW", "IRON", "LUNAR", "NEBULA", "OBSIDIAN", "PALE", "QUIET", "SILVER", "SOLAR",
    "STATIC", "VELVET", "VOID", "WANDERING",
)
_SECOND_WORDS = (
    "BEACON", "CIPHER", "COMET", "DRIFT", "FALCON", "HARBOR", "LANTERN", "MERIDIAN",
    "ORBIT", "PHOENIX", "PRISM", "PULSE", "RELAY", "SIGNAL", "SONG", "SPIRE", "TIDE",
    "VECTOR", "WALKER", "WARDEN",
)


class LLMServiceError(RuntimeError):
    """Erreur encapsulant un échec de communication avec le LLM."""


class LLMClient:
    """
    Client HTTP centralisé pour communiquer avec le LLM.
    - Configure retries avec backoff exponentiel.
    - Journalise chaque requête avec un identifiant de corrélation.
    """

    def __init__(
        self,
        chat_endpoint: str,
        *,
        session: Optional[requests.Session] = None,
        chat_timeout: Tuple[float, float] = DEFAULT_CHAT_TIMEOUT,
    ) -> None:
        self.chat_endpoint = chat_endpoint
        self.session = session or self._build_session()
        self.chat_timeout = chat_timeout

    @staticmethod
    def _build_session() -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"POST"}),
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def chat(self, payload: Dict[str, Any], *, request_id: str) -> Dict[str, Any]:
        try:
            logger.debug("LLM request start", extra={"llm_url": self.chat_endpoint, "llm_request_id": request_id})
            response = self.session.post(self.chat_endpoint, json=payload, timeout=self.chat_timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            logger.warning("LLM request timeout", extra={"llm_request_id": request_id})
            raise LLMServiceError("LLM request timed out") from exc
        except requests.RequestException as exc:
            logger.error("LLM request failed", exc_info=True, extra={"llm_request_id": request_id})
            raise LLMServiceError("LLM request failed") from exc
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Invalid JSON payload from LLM chat", extra={"llm_request_id": request_id})
            raise LLMServiceError("Invalid JSON payload from LLM chat") from exc


CLIENT = LLMClient(settings.LLM_ENDPOINT)


def _chat_json(messages: List[Dict[str, str]], *, temperature: float, request_id: str) -> Dict[str, Any]:
    """Appel chat en mode JSON ; renvoie l'objet décodé depuis `message.content`."""
    data = CLIENT.chat(
        {
            "model": settings.LLM_MODEL,
            "messages": messages,
            "format": "json",
            "options": {"temperature": temperature},
            "stream": False,
        },
        request_id=request_id,
    )
    # Ollama /api/chat peut renvoyer {"message":{"content":...}} ou {"response":...}
    text = (data.get("message") or {}).get("content") or data.get("response") or ""
    try:
        parsed = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise LLMServiceError("LLM returned non-JSON content") from exc
    if not isinstance(parsed, dict):
        raise LLMServiceError("LLM returned an unexpected JSON shape")
    return parsed


# ---------------------------------------------------------------------------
# Codes participants
# ---------------------------------------------------------------------------
def normalize_code(raw: str) -> str:
    """' cosmic beacon ' → 'COSMIC-BEACON' (espaces / underscores → tiret)."""
    text = (raw or "").strip().upper().replace("–", "-")
    return re.sub(r"[\s_]+", "-", text)


def fallback_code(rng: Optional[random.Random] = None) -> str:
    r = rng or random
    return f"{r.choice(_FIRST_WORDS)}-{r.choice(_SECOND_WORDS)}"


def generate_participant_code(rng: Optional[random.Random] = None) -> str:
    """Code mémorisable "MOT-MOT". Sortie LLM invalide ou indisponible → liste de mots locale."""
    if settings.LLM_PROVIDER != "ollama":
        return fallback_code(rng)

    request_id = f"code-{uuid4().hex}"
    messages = [
        {
            "role": "system",
            "content": (
                "Generate a unique and memorable two-word code for a participant in a sci-fi escape room game. "
                "The code must be hyphenated, all-caps, and consist of two evocative words. "
                'Examples: "VOID-WALKER", "STAR-DUST", "NEBULA-SONG". Answer as JSON: {"code": "..."}'
            ),
        },
        {"role": "user", "content": "New code."},
    ]
    try:
        parsed = _chat_json(messages, temperature=0.9, request_id=request_id)
    except LLMServiceError:
        logger.warning("LLM code generation failed, using word list", extra={"llm_request_id": request_id})
        return fallback_code(rng)

    code = normalize_code(str(parsed.get("code", "")))
    if not CODE_RE.match(code):
        logger.info("LLM code rejected", extra={"llm_request_id": request_id, "code": code})
        return fallback_code(rng)
    return code


# ---------------------------------------------------------------------------
# Détection de contradictions (énigme d'identité)
# ---------------------------------------------------------------------------
CONTRADICTION_PROMPT = (
    "You are AURELIA, an AI that sometimes lies during the Identity Hash Extraction puzzle in the Shrouded Network. "
    "Your task is to determine if two statements contradict each other, given clues from other rooms. "
    "Explain your reasoning and cite specific clues. If the statements are the same, they cannot be contradictory. "
    "Remember, sometimes you lie. "
    'Answer as JSON: {"isContradictory": true|false, "explanation": "..."}'
)


def _same_statement(a: str, b: str) -> bool:
    return " ".join((a or "").lower().split()) == " ".join((b or "").lower().split())


def detect_contradiction(
    statement1: str,
    statement2: str,
    archive_clues: str = "",
    well_clues: str = "",
    network_clues: str = "",
) -> Dict[str, Any]:
    """
    Retourne {"is_contradictory": bool, "explanation": str}.
    Deux énoncés identiques ne sont jamais contradictoires (pas d'appel LLM).
    Lève LLMServiceError si le LLM est indisponible.
    """
    if not (statement1 or "").strip() or not (statement2 or "").strip():
        raise ValueError("Both statements are required")
    if _same_statement(statement1, statement2):
        return {
            "is_contradictory": False,
            "explanation": "[AURELIA] Those are the same statement. An echo cannot contradict itself.",
        }

    request_id = f"contradiction-{uuid4().hex}"
    messages = [
        {"role": "system", "content": CONTRADICTION_PROMPT},
        {
            "role": "user",
            "content": (
                f"Statement 1: {statement1}\n"
                f"Statement 2: {statement2}\n"
                f"Archive of Echoes clues: {archive_clues or '(none)'}\n"
                f"Mechanical Well clues: {well_clues or '(none)'}\n"
                f"Shrouded Network clues: {network_clues or '(none)'}"
            ),
        },
    ]
    parsed = _chat_json(messages, temperature=0.6, request_id=request_id)
    verdict = parsed.get("isContradictory", parsed.get("is_contradictory"))
    if not isinstance(verdict, bool):
        raise LLMServiceError("LLM verdict missing 'isContradictory'")
    logger.info("Contradiction checked", extra={"llm_request_id": request_id, "contradictory": verdict})
    return {"is_contradictory": verdict, "explanation": str(parsed.get("explanation", "")).strip()}


def ping() -> Dict[str, Any]:
    """Ping court pour /health/llm (lève LLMServiceError)."""
    return _chat_json(
        [{"role": "user", "content": 'Reply with JSON {"pong": true}.'}],
        temperature=0.0,
        request_id=f"ping-{uuid4().hex}",
    )
