# caseflow/crosscutting/exceptions.py
"""
===============================================================================
MÓDULO: Excepciones internas (fallas que abortan una transacción)
===============================================================================

Los resultados de negocio (FORBIDDEN, INVALID_STATE, CONFLICT, NOT_FOUND,
VALIDATION_ERROR) no se modelan como excepciones: los casos de uso los
devuelven tipados (application/usecases/workflow_results.py).

Acá viven las fallas del store:
  - DatabaseError: cualquier error de persistencia. Aborta la transacción y
    el caso de uso la reporta como INTERNAL_ERROR.
  - DuplicateKeyError: violación de unicidad (nro de registro). El caso de
    uso la reporta como CONFLICT.

Cada instancia lleva error_id para cruzar la respuesta 500 con el log.

Colaboradores:
  - infrastructure/repositories/* (levantan)
  - application/usecases/workflow_support.py (traduce)
  - api/exception_handlers.py (última red: 500 + error_id)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class CaseflowError(Exception):
    """Base: error_code estable + error_id + causa original opcional."""

    error_code: str = "CASEFLOW_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_id = error_id or uuid4().hex
        self.original_error = original_error

    def log_extra(self) -> dict[str, str]:
        """Campos para `extra=` al loguear (sin el mensaje del driver)."""
        extra = {"error_code": self.error_code, "error_id": self.error_id}
        if self.original_error is not None:
            extra["cause"] = type(self.original_error).__name__
        return extra


class DatabaseError(CaseflowError):
    error_code: str = "DATABASE_ERROR"


class DuplicateKeyError(DatabaseError):
    """Unicidad violada en el store (p. ej. registration_number)."""

    error_code: str = "DUPLICATE_KEY"
