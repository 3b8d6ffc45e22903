"""
===============================================================================
TARJETA CRC — schemas/documents.py
===============================================================================

Módulo:
    Schemas HTTP para Documentos (ciclo de vida, historial, adjuntos)

Responsabilidades:
    - Definir DTOs de request/response para endpoints de documentos.
    - Validar longitudes con límites desde settings.
    - Mapear entidades de dominio -> DTOs (from_entity).

Colaboradores:
    - domain.entities / domain.audit
    - crosscutting.config.get_settings (límites)
===============================================================================
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .....crosscutting.config import get_settings
from .....domain.audit import TraceEvent
from .....domain.entities import (
    AttachmentReference,
    Document,
    DocumentPriority,
    DocumentStatus,
    StatusChange,
)
from .derivations import DerivationRes

_settings = get_settings()


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class CreateDocumentReq(BaseModel):
    """Registro de un documento en mesa de partes."""

    registration_number: str = Field(..., min_length=1, max_length=64)
    current_area_id: UUID
    office_number: str = Field(..., min_length=1, max_length=128)
    document_date: date
    origin: str = Field(..., min_length=1, max_length=255)
    intake_desk_id: UUID | None = None
    provenance: str | None = Field(default=None, max_length=255)
    content: str | None = None
    observations: str = Field(default="", max_length=_settings.max_observation_chars)
    priority: DocumentPriority = DocumentPriority.NORMAL
    assigned_user_id: UUID | None = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("registration_number", "office_number", "origin")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class UpdateDocumentReq(BaseModel):
    """Patch: solo los campos presentes se modifican."""

    registration_number: str | None = Field(default=None, min_length=1, max_length=64)
    office_number: str | None = Field(default=None, min_length=1, max_length=128)
    document_date: date | None = None
    origin: str | None = Field(default=None, min_length=1, max_length=255)
    provenance: str | None = Field(default=None, max_length=255)
    content: str | None = None
    observations: str | None = Field(
        default=None, max_length=_settings.max_observation_chars
    )
    priority: DocumentPriority | None = None
    assigned_user_id: UUID | None = None
    metadata: Dict[str, Any] | None = None


class ChangeStatusReq(BaseModel):
    status: str = Field(..., min_length=1, description="Nuevo estado (enumerado)")
    observation: str | None = Field(
        default=None, max_length=_settings.max_observation_chars
    )


class AddAttachmentReq(BaseModel):
    storage_key: str = Field(..., min_length=1, max_length=512)
    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str | None = Field(default=None, max_length=128)


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class DocumentRes(BaseModel):
    id: UUID
    registration_number: str
    current_area_id: UUID
    creator_id: UUID
    status: DocumentStatus
    assigned_user_id: UUID | None = None
    intake_desk_id: UUID | None = None
    office_number: str | None = None
    document_date: date | None = None
    origin: str | None = None
    provenance: str | None = None
    content: str | None = None
    observations: str = ""
    priority: DocumentPriority
    metadata: Dict[str, Any] = Field(default_factory=dict)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, document: Document) -> "DocumentRes":
        return cls(
            id=document.id,
            registration_number=document.registration_number,
            current_area_id=document.current_area_id,
            creator_id=document.creator_id,
            status=document.status,
            assigned_user_id=document.assigned_user_id,
            intake_desk_id=document.intake_desk_id,
            office_number=document.office_number,
            document_date=document.document_date,
            origin=document.origin,
            provenance=document.provenance,
            content=document.content,
            observations=document.observations,
            priority=document.priority,
            metadata=dict(document.metadata or {}),
            version=document.version,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentListRes(BaseModel):
    documents: List[DocumentRes]
    next_offset: int | None = None


class DeleteDocumentRes(BaseModel):
    deleted: bool


class StatusChangeRes(BaseModel):
    id: UUID
    previous_status: DocumentStatus | None
    new_status: DocumentStatus
    user_id: UUID
    observation: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, change: StatusChange) -> "StatusChangeRes":
        return cls(
            id=change.id,
            previous_status=change.previous_status,
            new_status=change.new_status,
            user_id=change.user_id,
            observation=change.observation,
            created_at=change.created_at,
        )


class TraceEventRes(BaseModel):
    id: UUID
    user_id: UUID
    action: str
    origin_area_id: UUID | None = None
    destination_area_id: UUID | None = None
    observation: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, event: TraceEvent) -> "TraceEventRes":
        return cls(
            id=event.id,
            user_id=event.user_id,
            action=event.action.value,
            origin_area_id=event.origin_area_id,
            destination_area_id=event.destination_area_id,
            observation=event.observation,
            created_at=event.created_at,
        )


class DocumentHistoryRes(BaseModel):
    document: DocumentRes
    derivations: List[DerivationRes]
    status_history: List[StatusChangeRes]
    traces: List[TraceEventRes]


class AttachmentRes(BaseModel):
    id: UUID
    document_id: UUID
    storage_key: str
    file_name: str
    mime_type: str | None = None
    uploaded_by: UUID | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, attachment: AttachmentReference) -> "AttachmentRes":
        return cls(
            id=attachment.id,
            document_id=attachment.document_id,
            storage_key=attachment.storage_key,
            file_name=attachment.file_name,
            mime_type=attachment.mime_type,
            uploaded_by=attachment.uploaded_by,
            created_at=attachment.created_at,
        )


class AttachmentListRes(BaseModel):
    attachments: List[AttachmentRes]
