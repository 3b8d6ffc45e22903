"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/derivations.py
===============================================================================

Responsibilities:
    - POST /documents/{id}/derivations: pase atómico a otra área (If-Match).
    - POST /derivations/{id}/receive: acuse de recepción del área destino.
    - Traducir WorkflowError -> RFC7807.

Collaborators:
    - DeriveDocumentUseCase, ReceiveDerivationUseCase
    - container (factories DI)
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from .....application.usecases import DeriveDocumentUseCase, ReceiveDerivationUseCase
from .....application.usecases.workflow_results import DerivationResult
from .....container import (
    get_derive_document_use_case,
    get_receive_derivation_use_case,
)
from .....domain.entities import Actor
from ..dependencies import expected_version, require_actor
from ..error_mapping import raise_workflow_error
from ..schemas.derivations import (
    DerivationRes,
    DerivationWithDocumentRes,
    DeriveDocumentReq,
)

router = APIRouter(tags=["derivations"])


def _to_res(result: DerivationResult, response: Response) -> DerivationWithDocumentRes:
    document = result.document
    response.headers["ETag"] = f'"{document.version}"'
    return DerivationWithDocumentRes(
        derivation=DerivationRes.from_entity(result.derivation),
        document_id=document.id,
        document_status=document.status.value,
        document_version=document.version,
    )


@router.post(
    "/documents/{document_id}/derivations",
    response_model=DerivationWithDocumentRes,
    status_code=status.HTTP_201_CREATED,
)
def derive_document(
    document_id: UUID,
    req: DeriveDocumentReq,
    response: Response,
    version: int | None = Depends(expected_version),
    actor: Actor = Depends(require_actor),
    use_case: DeriveDocumentUseCase = Depends(get_derive_document_use_case),
):
    result = use_case.execute(
        document_id=document_id,
        destination_area_id=req.destination_area_id,
        actor=actor,
        observation=req.observation,
        urgent=req.urgent,
        reason=req.reason,
        expected_version=version,
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _to_res(result, response)


@router.post(
    "/derivations/{derivation_id}/receive",
    response_model=DerivationWithDocumentRes,
)
def receive_derivation(
    derivation_id: UUID,
    response: Response,
    actor: Actor = Depends(require_actor),
    use_case: ReceiveDerivationUseCase = Depends(get_receive_derivation_use_case),
):
    result = use_case.execute(derivation_id=derivation_id, actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=derivation_id)
    return _to_res(result, response)
