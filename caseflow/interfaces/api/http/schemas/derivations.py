"""
Schemas HTTP para Derivaciones (pase entre áreas + recepción).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .....crosscutting.config import get_settings
from .....domain.entities import Derivation, DerivationStatus

_settings = get_settings()


class DeriveDocumentReq(BaseModel):
    destination_area_id: UUID
    observation: str | None = Field(
        default=None, max_length=_settings.max_observation_chars
    )
    urgent: bool = False
    reason: str | None = Field(default=None, max_length=255)


class DerivationRes(BaseModel):
    id: UUID
    document_id: UUID
    origin_area_id: UUID
    destination_area_id: UUID
    derived_by: UUID
    status: DerivationStatus
    observation: str = ""
    urgent: bool = False
    reason: str = ""
    derived_at: datetime | None = None
    received_at: datetime | None = None
    received_by: UUID | None = None

    @classmethod
    def from_entity(cls, derivation: Derivation) -> "DerivationRes":
        return cls(
            id=derivation.id,
            document_id=derivation.document_id,
            origin_area_id=derivation.origin_area_id,
            destination_area_id=derivation.destination_area_id,
            derived_by=derivation.derived_by,
            status=derivation.status,
            observation=derivation.observation,
            urgent=derivation.urgent,
            reason=derivation.reason,
            derived_at=derivation.derived_at,
            received_at=derivation.received_at,
            received_by=derivation.received_by,
        )


class DerivationWithDocumentRes(BaseModel):
    derivation: DerivationRes
    document_id: UUID
    document_status: str
    document_version: int
