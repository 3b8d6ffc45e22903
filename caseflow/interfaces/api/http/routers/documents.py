"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/documents.py
===============================================================================

Class/Module:
    Document Router

Responsibilities:
    - Exponer endpoints HTTP del ciclo de vida del documento (alta, edición,
      cambio de estado, papelera, restauración, borrado permanente),
      historial y adjuntos.
    - Convertir requests HTTP -> inputs de casos de uso.
    - Traducir WorkflowError -> RFC7807.
    - Publicar la versión del documento en ETag; aceptar If-Match.

Collaborators:
    - application.usecases (documents/*)
    - container (factories DI)
    - dependencies.require_actor / expected_version
    - schemas.documents (DTOs Pydantic)

Patterns:
    - Controller / Router
    - Adapter (HTTP -> UseCase)
===============================================================================
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from .....application.usecases import (
    AddAttachmentUseCase,
    ChangeDocumentStatusUseCase,
    CreateDocumentInput,
    CreateDocumentUseCase,
    DeleteDocumentPermanentlyUseCase,
    GetDocumentHistoryUseCase,
    GetDocumentUseCase,
    ListAttachmentsUseCase,
    ListTrashUseCase,
    MoveDocumentToTrashUseCase,
    RestoreDocumentUseCase,
    UpdateDocumentInput,
    UpdateDocumentUseCase,
)
from .....container import (
    get_add_attachment_use_case,
    get_change_document_status_use_case,
    get_create_document_use_case,
    get_delete_document_permanently_use_case,
    get_document_history_use_case,
    get_get_document_use_case,
    get_list_attachments_use_case,
    get_list_trash_use_case,
    get_move_document_to_trash_use_case,
    get_restore_document_use_case,
    get_update_document_use_case,
)
from .....domain.entities import Actor, Document
from ..dependencies import expected_version, require_actor
from ..error_mapping import raise_workflow_error
from ..schemas.derivations import DerivationRes
from ..schemas.documents import (
    AddAttachmentReq,
    AttachmentListRes,
    AttachmentRes,
    ChangeStatusReq,
    CreateDocumentReq,
    DeleteDocumentRes,
    DocumentHistoryRes,
    DocumentListRes,
    DocumentRes,
    StatusChangeRes,
    TraceEventRes,
    UpdateDocumentReq,
)

router = APIRouter(tags=["documents"])


def _document_response(response: Response, document: Document) -> DocumentRes:
    response.headers["ETag"] = f'"{document.version}"'
    return DocumentRes.from_entity(document)


# =============================================================================
# Alta / consulta
# =============================================================================


@router.post(
    "/documents",
    response_model=DocumentRes,
    status_code=status.HTTP_201_CREATED,
)
def create_document(
    req: CreateDocumentReq,
    response: Response,
    actor: Actor = Depends(require_actor),
    use_case: CreateDocumentUseCase = Depends(get_create_document_use_case),
):
    result = use_case.execute(
        actor=actor,
        data=CreateDocumentInput(
            registration_number=req.registration_number,
            current_area_id=req.current_area_id,
            office_number=req.office_number,
            document_date=req.document_date,
            origin=req.origin,
            intake_desk_id=req.intake_desk_id,
            provenance=req.provenance,
            content=req.content,
            observations=req.observations,
            priority=req.priority.value,
            assigned_user_id=req.assigned_user_id,
            metadata=req.metadata,
        ),
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=req.current_area_id)
    return _document_response(response, result.document)


@router.get("/documents/trash", response_model=DocumentListRes)
def list_trash(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_actor),
    use_case: ListTrashUseCase = Depends(get_list_trash_use_case),
):
    result = use_case.execute(actor=actor, limit=limit, offset=offset)
    if result.error is not None:
        raise_workflow_error(result.error)

    documents = result.documents or []
    return DocumentListRes(
        documents=[DocumentRes.from_entity(d) for d in documents],
        next_offset=offset + limit if len(documents) == limit else None,
    )


@router.get("/documents/{document_id}", response_model=DocumentRes)
def get_document(
    document_id: UUID,
    response: Response,
    actor: Actor = Depends(require_actor),
    use_case: GetDocumentUseCase = Depends(get_get_document_use_case),
):
    result = use_case.execute(document_id=document_id, actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _document_response(response, result.document)


@router.get("/documents/{document_id}/history", response_model=DocumentHistoryRes)
def get_document_history(
    document_id: UUID,
    actor: Actor = Depends(require_actor),
    use_case: GetDocumentHistoryUseCase = Depends(get_document_history_use_case),
):
    result = use_case.execute(document_id=document_id, actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return DocumentHistoryRes(
        document=DocumentRes.from_entity(result.document),
        derivations=[DerivationRes.from_entity(d) for d in result.derivations],
        status_history=[StatusChangeRes.from_entity(c) for c in result.status_history],
        traces=[TraceEventRes.from_entity(t) for t in result.traces],
    )


# =============================================================================
# Mutaciones del ciclo de vida
# =============================================================================


@router.patch("/documents/{document_id}", response_model=DocumentRes)
def update_document(
    document_id: UUID,
    req: UpdateDocumentReq,
    response: Response,
    version: int | None = Depends(expected_version),
    actor: Actor = Depends(require_actor),
    use_case: UpdateDocumentUseCase = Depends(get_update_document_use_case),
):
    data = UpdateDocumentInput(
        **req.model_dump(exclude_unset=True, exclude={"priority"}),
        priority=req.priority.value if req.priority else None,
        # "assigned_user_id": null explícito desasigna.
        unassign="assigned_user_id" in req.model_fields_set
        and req.assigned_user_id is None,
    )
    result = use_case.execute(
        document_id=document_id,
        actor=actor,
        data=data,
        expected_version=version,
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _document_response(response, result.document)


@router.post("/documents/{document_id}/status", response_model=DocumentRes)
def change_document_status(
    document_id: UUID,
    req: ChangeStatusReq,
    response: Response,
    version: int | None = Depends(expected_version),
    actor: Actor = Depends(require_actor),
    use_case: ChangeDocumentStatusUseCase = Depends(
        get_change_document_status_use_case
    ),
):
    result = use_case.execute(
        document_id=document_id,
        actor=actor,
        new_status=req.status,
        observation=req.observation,
        expected_version=version,
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _document_response(response, result.document)


@router.post("/documents/{document_id}/trash", response_model=DocumentRes)
def move_document_to_trash(
    document_id: UUID,
    response: Response,
    version: int | None = Depends(expected_version),
    actor: Actor = Depends(require_actor),
    use_case: MoveDocumentToTrashUseCase = Depends(
        get_move_document_to_trash_use_case
    ),
):
    result = use_case.execute(
        document_id=document_id, actor=actor, expected_version=version
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _document_response(response, result.document)


@router.post("/documents/{document_id}/restore", response_model=DocumentRes)
def restore_document(
    document_id: UUID,
    response: Response,
    version: int | None = Depends(expected_version),
    actor: Actor = Depends(require_actor),
    use_case: RestoreDocumentUseCase = Depends(get_restore_document_use_case),
):
    result = use_case.execute(
        document_id=document_id, actor=actor, expected_version=version
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return _document_response(response, result.document)


@router.delete("/documents/{document_id}", response_model=DeleteDocumentRes)
def delete_document_permanently(
    document_id: UUID,
    actor: Actor = Depends(require_actor),
    use_case: DeleteDocumentPermanentlyUseCase = Depends(
        get_delete_document_permanently_use_case
    ),
):
    result = use_case.execute(document_id=document_id, actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return DeleteDocumentRes(deleted=result.deleted)


# =============================================================================
# Adjuntos (referencias)
# =============================================================================


@router.post(
    "/documents/{document_id}/attachments",
    response_model=AttachmentRes,
    status_code=status.HTTP_201_CREATED,
)
def add_attachment(
    document_id: UUID,
    req: AddAttachmentReq,
    actor: Actor = Depends(require_actor),
    use_case: AddAttachmentUseCase = Depends(get_add_attachment_use_case),
):
    result = use_case.execute(
        document_id=document_id,
        actor=actor,
        storage_key=req.storage_key,
        file_name=req.file_name,
        mime_type=req.mime_type,
    )
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return AttachmentRes.from_entity(result.attachment)


@router.get("/documents/{document_id}/attachments", response_model=AttachmentListRes)
def list_attachments(
    document_id: UUID,
    actor: Actor = Depends(require_actor),
    use_case: ListAttachmentsUseCase = Depends(get_list_attachments_use_case),
):
    result = use_case.execute(document_id=document_id, actor=actor)
    if result.error is not None:
        raise_workflow_error(result.error, resource_id=document_id)
    return AttachmentListRes(
        attachments=[AttachmentRes.from_entity(a) for a in result.attachments]
    )
