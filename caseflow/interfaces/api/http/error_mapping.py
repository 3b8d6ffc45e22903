"""
===============================================================================
TARJETA CRC — error_mapping.py (WorkflowError -> HTTP RFC7807)
===============================================================================

Responsabilidades:
  - Traducir WorkflowErrorCode a HTTP Exceptions RFC7807.
  - Centralizar el mapeo para evitar duplicación en routers.
  - Mantener el dominio libre de HTTP.

Tabla:
  FORBIDDEN        -> 403
  INVALID_STATE    -> 409 (code INVALID_STATE)
  CONFLICT         -> 409
  NOT_FOUND        -> 404
  VALIDATION_ERROR -> 422
  INTERNAL_ERROR   -> 500

Colaboradores:
  - application.usecases.WorkflowError / WorkflowErrorCode
  - crosscutting.error_responses
===============================================================================
"""

from __future__ import annotations

from typing import NoReturn
from uuid import UUID

from ....application.usecases import WorkflowError, WorkflowErrorCode
from ....crosscutting.error_responses import (
    conflict,
    forbidden,
    internal_error,
    invalid_state,
    not_found,
    validation_error,
)


def raise_workflow_error(
    error: WorkflowError, *, resource_id: UUID | str | None = None
) -> NoReturn:
    """
    Traduce WorkflowError -> HTTP.

    Nota:
      - resource_id se usa para un NOT_FOUND consistente.
    """
    if error.code == WorkflowErrorCode.FORBIDDEN:
        raise forbidden(error.message)
    if error.code == WorkflowErrorCode.INVALID_STATE:
        raise invalid_state(error.message)
    if error.code == WorkflowErrorCode.CONFLICT:
        raise conflict(error.message)
    if error.code == WorkflowErrorCode.NOT_FOUND:
        raise not_found(error.resource or "Resource", str(resource_id or "-"))
    if error.code == WorkflowErrorCode.VALIDATION_ERROR:
        raise validation_error(error.message)

    raise internal_error(error.message)
