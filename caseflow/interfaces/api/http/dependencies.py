"""
===============================================================================
TARJETA CRC — dependencies.py (Dependencias y helpers comunes)
===============================================================================

Responsabilidades:
  - Obtener el Actor autenticado desde request.state.actor (lo setea el
    colaborador de identidad aguas arriba). Sin actor => 401.
  - Parsear If-Match como expected_version (concurrencia optimista).

Colaboradores:
  - domain.entities.Actor
  - crosscutting.error_responses (RFC7807 factories)
===============================================================================
"""

from __future__ import annotations

from fastapi import Header, Request

from ....crosscutting.error_responses import unauthorized, validation_error
from ....domain.entities import Actor


def require_actor(request: Request) -> Actor:
    """Actor del request o 401."""
    actor = getattr(request.state, "actor", None)
    if not isinstance(actor, Actor):
        raise unauthorized()
    return actor


def parse_version_tag(raw: str | None) -> int | None:
    """
    Acepta `3`, `"3"` o `W/"3"`. None / vacío => sin precondición.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value or value == "*":
        return None
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    if not value.isdigit():
        raise validation_error("If-Match must carry a document version")
    return int(value)


def expected_version(if_match: str | None = Header(None, alias="If-Match")) -> int | None:
    return parse_version_tag(if_match)
