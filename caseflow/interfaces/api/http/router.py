"""
===============================================================================
TARJETA CRC — router.py (Router raíz / Composición)
===============================================================================

Responsabilidades:
  - Definir el APIRouter raíz que se incluye en FastAPI (app.include_router).
  - Centralizar responses RFC7807 para OpenAPI.
  - Componer routers por feature (documents / derivations / permissions).

Notas:
  - Este router se incluye desde caseflow/api/main.py con prefix="/v1".
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from ....crosscutting.error_responses import OPENAPI_ERROR_RESPONSES
from .routers.derivations import router as derivations_router
from .routers.documents import router as documents_router
from .routers.permissions import router as permissions_router


def build_router() -> APIRouter:
    """Construye el router raíz v1 (sin efectos al importar)."""
    api_router = APIRouter(responses=OPENAPI_ERROR_RESPONSES)

    api_router.include_router(documents_router)
    api_router.include_router(derivations_router)
    api_router.include_router(permissions_router)

    return api_router


router = build_router()

__all__ = ["router", "build_router"]
