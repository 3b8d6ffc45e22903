# caseflow/crosscutting/middleware.py
"""
===============================================================================
MÓDULO: Middleware HTTP de contexto
===============================================================================

RequestContextMiddleware:
  - Acepta X-Request-Id del cliente (acotado) o genera uno
  - Carga request_id / origin / method / path en contextvars: el logger los
    agrega a cada línea y el motor de autorización toma `origin` para los
    eventos de acceso denegado
  - Una línea de log por request (salvo /healthz)

No resuelve identidad: request.state.actor lo setea el colaborador de
autenticación que se monte antes de los routers.

Colaboradores:
  - caseflow/context.py
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context
from .logger import logger

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LEN = 128


def client_origin(request: Request) -> str:
    """IP del cliente: primer salto de X-Forwarded-For o el peer directo."""
    forwarded = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return request.client.host if request.client else ""


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= _MAX_REQUEST_ID_LEN:
        return incoming
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    _QUIET_PATHS = frozenset({"/healthz"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        set_request_context(
            request_id=request_id,
            origin=client_origin(request),
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            if request.url.path not in self._QUIET_PATHS:
                logger.log(
                    logging.WARNING if status_code >= 500 else logging.INFO,
                    "request completado",
                    extra={
                        "status_code": status_code,
                        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )
            clear_context()
