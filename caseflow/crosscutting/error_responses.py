# caseflow/crosscutting/error_responses.py
"""
===============================================================================
MÓDULO: Problem Details (RFC 7807) para la API de caseflow
===============================================================================

Todo error HTTP sale como application/problem+json con:
- code: código estable (ErrorCode) para que el cliente decida sin parsear texto
- errors: detalles opcionales + request_id / error_id para correlación

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  ErrorCode / ErrorDetail / AppHTTPException + factories + handler

Responsabilidades:
  - Catálogo de códigos y su status HTTP (una sola tabla)
  - Factories por código (403 / 404 / 409 / 422 / 401 / 500)
  - Handler FastAPI que serializa ErrorDetail

Colaboradores:
  - crosscutting/middleware.py (request.state.request_id)
  - api/exception_handlers.py (errores internos -> 500)
  - interfaces/api/http/error_mapping.py (WorkflowErrorCode -> ErrorCode)
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# R: INVALID_STATE y CONFLICT comparten 409; el cliente los distingue por code.
STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ErrorDetail(BaseModel):
    """Cuerpo RFC 7807 con `code` y `errors` como extensiones."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None


def problem_type(code: ErrorCode) -> str:
    return "urn:caseflow:problem:" + code.value.lower().replace("_", "-")


OPENAPI_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    key: {
        "description": f"{label} (problem+json)",
        "model": ErrorDetail,
        "content": {
            PROBLEM_JSON_MEDIA_TYPE: {
                "schema": {"$ref": "#/components/schemas/ErrorDetail"}
            }
        },
    }
    for key, label in (
        ("401", "Actor ausente"),
        ("403", "Acción denegada"),
        ("404", "Recurso inexistente"),
        ("409", "Conflicto de versión o estado inválido"),
        ("422", "Entrada inválida"),
        ("default", "Error"),
    )
}


class AppHTTPException(HTTPException):
    """
    HTTPException con ErrorCode estable.

    `errors` viaja tal cual al cuerpo problem+json.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code
        self.errors = errors


def problem(
    code: ErrorCode, detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(STATUS_BY_CODE[code], code, detail, errors)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return problem(ErrorCode.VALIDATION_ERROR, detail, errors)


def not_found(resource: str, identifier: str) -> AppHTTPException:
    return problem(ErrorCode.NOT_FOUND, f"{resource} '{identifier}' no encontrado")


def conflict(detail: str) -> AppHTTPException:
    return problem(ErrorCode.CONFLICT, detail)


def invalid_state(detail: str) -> AppHTTPException:
    return problem(ErrorCode.INVALID_STATE, detail)


def unauthorized(detail: str = "Se requiere un actor autenticado") -> AppHTTPException:
    return problem(ErrorCode.UNAUTHORIZED, detail)


def forbidden(detail: str = "Acción no permitida para el actor") -> AppHTTPException:
    return problem(ErrorCode.FORBIDDEN, detail)


def internal_error(
    detail: str = "Error interno; la operación no se aplicó",
    errors: list[dict[str, Any]] | None = None,
) -> AppHTTPException:
    return problem(ErrorCode.INTERNAL_ERROR, detail, errors)


# ---------------------------------------------------------------------------
# Handler FastAPI
# ---------------------------------------------------------------------------
async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    """Serializa AppHTTPException; agrega request_id si el middleware lo dejó."""
    request_id = getattr(request.state, "request_id", None)
    errors = list(exc.errors or [])
    if request_id:
        errors.append({"request_id": request_id})

    body = ErrorDetail(
        type=problem_type(exc.code),
        title=exc.code.value.replace("_", " ").capitalize(),
        status=exc.status_code,
        detail=str(exc.detail),
        code=exc.code,
        instance=request.url.path,
        errors=errors or None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=exc.headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
