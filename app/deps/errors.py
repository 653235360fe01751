"""
Traduction des exceptions métier en réponses HTTP.

- LookupError (partie, équipe, indice, code… introuvable) → 404
- GameNotJoinable → 423
- CodeAlreadyRedeemed / DisplayNameLocked → 409
- ValueError (requête invalide) → 400
- LLMServiceError / CodeSpaceExhausted → 503
"""
from contextlib import contextmanager

from fastapi import HTTPException

from app.services.code_service import CodeAlreadyRedeemed, CodeSpaceExhausted, DisplayNameLocked, GameNotJoinable
from app.services.llm_engine import LLMServiceError


@contextmanager
def service_errors():
    try:
        yield
    except GameNotJoinable as e:
        raise HTTPException(status_code=423, detail=f"Game not joinable: {e}")
    except (CodeAlreadyRedeemed, DisplayNameLocked) as e:
        raise HTTPException(status_code=409, detail=f"{type(e).__name__}: {e}")
    except LookupError as e:
        raise HTTPException(status_code=404, detail=f"Not found: {e}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (LLMServiceError, CodeSpaceExhausted) as e:
        raise HTTPException(status_code=503, detail=str(e))
