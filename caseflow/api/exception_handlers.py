"""
===============================================================================
TARJETA CRC — caseflow/api/exception_handlers.py (Manejo Centralizado)
===============================================================================

Responsabilidades:
  - Traducir excepciones que escapan de los casos de uso a RFC7807.
  - Centralizar logging de errores con request_id + error_id.
  - Evitar filtrar detalles internos en errores no controlados.

Colaboradores:
  - crosscutting.error_responses: AppHTTPException, ErrorCode, app_exception_handler
  - crosscutting.exceptions: CaseflowError, DatabaseError
  - crosscutting.config.get_settings (nivel de detalle)
===============================================================================
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import (
    AppHTTPException,
    app_exception_handler,
    internal_error,
)
from ..crosscutting.exceptions import CaseflowError
from ..crosscutting.logger import logger


def _request_id_from(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


async def caseflow_error_handler(request: Request, exc: CaseflowError) -> JSONResponse:
    """DatabaseError y demás errores tipados: 500 con error_id para correlación."""
    request_id = _request_id_from(request)

    logger.error(
        "Error de servicio",
        extra={"request_id": request_id, **exc.log_extra()},
    )

    app_exc = internal_error(errors=[{"error_id": exc.error_id}])
    return await app_exception_handler(request, app_exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback: log completo, respuesta genérica."""
    request_id = _request_id_from(request)

    logger.error(
        "Excepción no controlada",
        exc_info=True,
        extra={"request_id": request_id, "error": str(exc)},
    )

    detail = str(exc) if not get_settings().is_production() else "Error interno."
    app_exc = internal_error(detail)
    return await app_exception_handler(request, app_exc)


def register_exception_handlers(app) -> None:
    """AppHTTPException primero; Exception genérica como fallback."""
    app.add_exception_handler(CaseflowError, caseflow_error_handler)
    app.add_exception_handler(AppHTTPException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
