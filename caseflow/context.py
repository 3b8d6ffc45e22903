"""
===============================================================================
TARJETA CRC — caseflow/context.py (Contexto por request)
===============================================================================

Responsabilidades:
  - Mantener contexto "request-scoped" usando ContextVars (async-safe).
  - Correlacionar logs y eventos de auditoría sin pasar parámetros por todo el stack.
  - Exponer el origen del cliente (IP) para los eventos de acceso no autorizado.

Colaboradores:
  - crosscutting.middleware: setea request_id/origin/method/path.
  - crosscutting.logger: enriquece logs leyendo get_context_dict().
  - domain.authorization: usa get_client_origin() si el caller no pasa origin.

Restricciones:
  - Solo tipos primitivos (str) para serialización segura.
  - Defaults vacíos ("") para evitar None y simplificar JSON.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Origen del cliente (IP o identificador del canal).
client_origin_var: ContextVar[str] = ContextVar("client_origin", default="")

http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_ORIGIN: Final[str] = "origin"
_CTX_METHOD: Final[str] = "method"
_CTX_PATH: Final[str] = "path"


def set_request_context(
    *, request_id: str = "", origin: str = "", method: str = "", path: str = ""
) -> None:
    """
    Setea el contexto mínimo del request.

    Regla:
      - Strings vacíos significan "no disponible".
    """
    request_id_var.set(request_id or "")
    client_origin_var.set(origin or "")
    http_method_var.set(method or "")
    http_path_var.set(path or "")


def get_client_origin() -> str | None:
    """Origen del request actual, o None si no hay contexto."""
    return client_origin_var.get() or None


def get_context_dict() -> dict[str, str]:
    """Devuelve el contexto actual como dict, omitiendo claves vacías."""
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := client_origin_var.get():
        ctx[_CTX_ORIGIN] = val
    if val := http_method_var.get():
        ctx[_CTX_METHOD] = val
    if val := http_path_var.get():
        ctx[_CTX_PATH] = val

    return ctx


def clear_context() -> None:
    """Limpia el contexto al final del request."""
    request_id_var.set("")
    client_origin_var.set("")
    http_method_var.set("")
    http_path_var.set("")
