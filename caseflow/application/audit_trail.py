"""
===============================================================================
TARJETA CRC — application/audit_trail.py (Emisión del log de acciones)
===============================================================================

Responsabilidades:
  - Construir ActionLogEntry con formato consistente (actor/action/target/metadata).
  - Normalizar actor y metadata a partir del Actor del request.
  - Persistir vía AuditTrailRecorder (puerto del dominio).
  - "Best-effort": si falla la persistencia, NO rompe el flujo de negocio ni
    revierte una mutación ya confirmada.

Colaboradores:
  - domain.audit.ActionLogEntry
  - domain.repositories.AuditTrailRecorder
  - domain.entities.Actor
  - crosscutting.logger.logger

Notas:
  - Se emite DESPUÉS del commit: la traza transaccional (TraceEvent) ya
    garantiza la procedencia; este log es el canal estructurado externo.
  - Metadata se sanitiza a valores serializables; lo no serializable se
    stringifica.
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from ..crosscutting.logger import logger
from ..domain.audit import ActionLogEntry
from ..domain.entities import Actor, utcnow
from ..domain.repositories import AuditTrailRecorder


def actor_label(actor: Actor | None) -> str:
    """
    Identificador de actor estable y fácil de consultar.

    Formato:
      - user:{uuid}
      - anonymous
    """
    if actor is None:
        return "anonymous"
    return f"user:{actor.user_id}"


def _metadata_from_actor(actor: Actor | None) -> dict[str, Any]:
    if actor is None:
        return {}
    return {
        "user_id": str(actor.user_id),
        "role_id": str(actor.role_id),
        "area_id": str(actor.area_id) if actor.area_id else None,
    }


def _sanitize(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, dict):
        return {str(k): _sanitize(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]

    return str(value)


def emit_action(
    recorder: AuditTrailRecorder | None,
    *,
    action: str,
    actor: Actor | None = None,
    target_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """
    Emite una entrada del log de acciones.

    Regla clave:
      - Si recorder es None o falla al escribir, NO se lanza excepción.
    """
    if recorder is None:
        return

    payload = _sanitize({**_metadata_from_actor(actor), **(metadata or {})})

    entry = ActionLogEntry(
        id=uuid4(),
        actor=actor_label(actor),
        action=action,
        target_id=target_id,
        metadata=payload,
        created_at=utcnow(),
    )

    try:
        recorder.record_action(entry)
    except Exception as exc:
        logger.warning(
            "Action log write failed",
            extra={"action": action, "target_id": str(target_id), "error": str(exc)},
        )
