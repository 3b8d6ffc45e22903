"""
===============================================================================
USE CASE: Create Document (Registro en Mesa de Partes)
===============================================================================

Business Goal:
    Registrar un documento recibido, asignándolo a un área y dejando la
    primera entrada de su cadena de procedencia ("Recepción").

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    CreateDocumentUseCase

Responsibilities:
    - Validar campos obligatorios del registro.
    - Autorizar CREAR vía AuthorizationEngine.
    - Garantizar unicidad del número de registro (duplicado -> CONFLICT).
    - Insertar documento + historial + traza en una sola transacción.
    - Emitir log de acción (best-effort, post-commit).

Collaborators:
    - AuthorizationEngine
    - WorkflowUnitOfWork (documents, areas, status_history, traces)
    - AuditTrailRecorder (vía emit_action)

-------------------------------------------------------------------------------
BUSINESS RULES
-------------------------------------------------------------------------------
R1) registration_number, current_area_id, office_number, document_date y
    origin son obligatorios.
R2) El área inicial debe existir y estar activa.
R3) Un número de registro duplicado es CONFLICT (nunca se sobrescribe).
R4) Estado inicial RECEIVED.
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Final, Optional
from uuid import UUID, uuid4

from ....domain.audit import TraceAction
from ....domain.authorization import AuthorizationEngine
from ....domain.entities import Actor, Document, DocumentPriority, DocumentStatus, utcnow
from ....domain.permissions import Action
from ....domain.repositories import AuditTrailRecorder, WorkflowUnitOfWork
from ....domain.rules import ResourceType
from ...audit_trail import emit_action
from ..workflow_results import DocumentResult
from ..workflow_support import (
    RESOURCE_AREA,
    RESOURCE_DOCUMENT,
    TRANSACTION_ERRORS,
    conflict,
    forbidden,
    not_found,
    record_status_change,
    translate_transaction_error,
    validate_observation,
    validation_error,
)

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS: Final[tuple[str, ...]] = (
    "registration_number",
    "office_number",
    "origin",
)


@dataclass
class CreateDocumentInput:
    registration_number: str
    current_area_id: UUID
    office_number: str
    document_date: Optional[date]
    origin: str
    intake_desk_id: Optional[UUID] = None
    provenance: Optional[str] = None
    content: Optional[str] = None
    observations: str = ""
    priority: str = DocumentPriority.NORMAL.value
    assigned_user_id: Optional[UUID] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class CreateDocumentUseCase:
    """Registra un documento nuevo en estado RECEIVED."""

    def __init__(
        self,
        *,
        engine: AuthorizationEngine,
        unit_of_work: WorkflowUnitOfWork,
        recorder: AuditTrailRecorder | None = None,
        max_observation_chars: int = 2_000,
    ) -> None:
        self._engine = engine
        self._uow = unit_of_work
        self._recorder = recorder
        self._max_observation_chars = max_observation_chars

    def execute(
        self, *, actor: Actor, data: CreateDocumentInput, origin: str | None = None
    ) -> DocumentResult:
        # 1) Validación de input (sin tocar el store).
        for name in _REQUIRED_TEXT_FIELDS:
            if not (getattr(data, name) or "").strip():
                return DocumentResult(error=validation_error(f"'{name}' is required."))
        if data.document_date is None:
            return DocumentResult(error=validation_error("'document_date' is required."))

        try:
            priority = DocumentPriority((data.priority or "NORMAL").strip().upper())
        except ValueError:
            allowed = ", ".join(p.value for p in DocumentPriority)
            return DocumentResult(
                error=validation_error(f"'priority' must be one of: {allowed}")
            )

        observations, error = validate_observation(
            data.observations, max_chars=self._max_observation_chars
        )
        if error is not None:
            return DocumentResult(error=error)

        # 2) Autorización (CREAR no tiene recurso previo: solo bitmask/admin).
        decision = self._engine.authorize(
            actor, Action.CREAR, ResourceType.DOCUMENTO, None, origin=origin
        )
        if not decision.allowed:
            return DocumentResult(error=forbidden(RESOURCE_DOCUMENT))

        registration_number = data.registration_number.strip()
        now = utcnow()
        document = Document(
            id=uuid4(),
            registration_number=registration_number,
            current_area_id=data.current_area_id,
            creator_id=actor.user_id,
            status=DocumentStatus.RECEIVED,
            assigned_user_id=data.assigned_user_id,
            intake_desk_id=data.intake_desk_id or actor.area_id,
            office_number=data.office_number.strip(),
            document_date=data.document_date,
            origin=data.origin.strip(),
            provenance=data.provenance,
            content=data.content,
            observations=observations,
            priority=priority,
            metadata=dict(data.metadata or {}),
            version=1,
            created_at=now,
            updated_at=now,
        )

        # 3) Transacción: área válida + unicidad + insert + historial/traza.
        try:
            with self._uow.transaction() as tx:
                area = tx.areas.get_area(data.current_area_id)
                if area is None:
                    return DocumentResult(error=not_found(RESOURCE_AREA))
                if not area.active:
                    return DocumentResult(
                        error=validation_error("Area is not active.", RESOURCE_AREA)
                    )

                if tx.documents.get_by_registration_number(registration_number):
                    return DocumentResult(
                        error=conflict(
                            f"Registration number '{registration_number}' already exists."
                        )
                    )

                tx.documents.insert_document(document)
                record_status_change(
                    tx,
                    document,
                    previous_status=None,
                    actor=actor,
                    action=TraceAction.RECEPCION,
                    observation=observations,
                    at=now,
                )
        except TRANSACTION_ERRORS as exc:
            return DocumentResult(
                error=translate_transaction_error(
                    exc, operation="document.create", document_id=document.id
                )
            )

        logger.info(
            "Document registered",
            extra={
                "document_id": str(document.id),
                "registration_number": registration_number,
            },
        )

        # 4) Log de acción (post-commit, best-effort).
        emit_action(
            self._recorder,
            action="document.create",
            actor=actor,
            target_id=document.id,
            metadata={
                "registration_number": registration_number,
                "area_id": document.current_area_id,
            },
        )
        return DocumentResult(document=document)
