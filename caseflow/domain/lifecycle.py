"""
===============================================================================
TARJETA CRC — domain/lifecycle.py
===============================================================================

Módulo:
    Reglas de Estado del Documento (máquina de estados pura)

Responsabilidades:
    - Definir qué estados permiten edición y derivación.
    - Definir la tabla de transiciones de change_status.
    - Ser 100% testeable: funciones puras, sin DB.

Colaboradores:
    - domain.entities.DocumentStatus
    - application/usecases/documents/*: consultan estas reglas antes de mutar.
    - application/usecases/derivations/derive_document.py

Notas:
    - TRASH solo se alcanza con move_to_trash y se abandona con restore.
    - DERIVED solo se alcanza con derive.
    - ARCHIVED es terminal para change_status.
===============================================================================
"""

from __future__ import annotations

from typing import Final, Mapping

from .entities import DocumentStatus

_S = DocumentStatus

EDITABLE_STATUSES: Final[frozenset[DocumentStatus]] = frozenset(
    {_S.RECEIVED, _S.IN_PROCESS, _S.OBSERVED}
)

DERIVABLE_STATUSES: Final[frozenset[DocumentStatus]] = frozenset(
    {_S.RECEIVED, _S.IN_PROCESS, _S.DERIVED, _S.OBSERVED}
)

# Estados a los que change_status nunca lleva.
RESERVED_TARGETS: Final[frozenset[DocumentStatus]] = frozenset({_S.TRASH, _S.DERIVED})

# Estado al que vuelve un documento restaurado.
RESTORED_STATUS: Final[DocumentStatus] = _S.RECEIVED

STATUS_TRANSITIONS: Final[Mapping[DocumentStatus, frozenset[DocumentStatus]]] = {
    _S.RECEIVED: frozenset({_S.IN_PROCESS, _S.OBSERVED, _S.FINALIZED, _S.ARCHIVED}),
    _S.IN_PROCESS: frozenset({_S.OBSERVED, _S.FINALIZED, _S.ARCHIVED}),
    _S.DERIVED: frozenset({_S.IN_PROCESS, _S.OBSERVED, _S.FINALIZED, _S.ARCHIVED}),
    _S.OBSERVED: frozenset({_S.IN_PROCESS, _S.FINALIZED, _S.ARCHIVED}),
    _S.FINALIZED: frozenset({_S.ARCHIVED, _S.IN_PROCESS}),
    _S.ARCHIVED: frozenset(),
    _S.TRASH: frozenset(),
}


def parse_status(raw: str | DocumentStatus) -> DocumentStatus | None:
    """Convierte input externo a DocumentStatus (None si no es miembro)."""
    if isinstance(raw, DocumentStatus):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return DocumentStatus(raw.strip().upper())
    except ValueError:
        return None


def is_editable(status: DocumentStatus) -> bool:
    return status in EDITABLE_STATUSES


def is_derivable(status: DocumentStatus) -> bool:
    return status in DERIVABLE_STATUSES


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """True si change_status puede llevar de `current` a `target`."""
    if target in RESERVED_TARGETS:
        return False
    return target in STATUS_TRANSITIONS.get(current, frozenset())


def can_move_to_trash(status: DocumentStatus) -> bool:
    return status != _S.TRASH


def can_restore(status: DocumentStatus) -> bool:
    return status == _S.TRASH


def can_delete_permanently(status: DocumentStatus) -> bool:
    return status == _S.TRASH
