# caseflow/crosscutting/logger.py
"""
===============================================================================
MÓDULO: Logger estructurado (JSON) con contexto de request
===============================================================================

CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  JSONFormatter + setup_logger()

Responsabilidades:
  - Una línea JSON por evento, con request_id / origin / method / path
  - Redactar credenciales y recortar texto libre de documentos
    (contenido, observaciones) antes de escribirlo

Colaboradores:
  - caseflow/context.py (ContextVars)
  - crosscutting/config.py (log_level, log_json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

# Atributos estándar de LogRecord: todo lo demás llegó por `extra=`.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime", "taskName"}

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "authorization",
        "credential",
        "database_url",
        "dsn",
    }
)

# Texto libre cargado por usuarios: se recorta más agresivamente.
_FREE_TEXT_KEYS: frozenset[str] = frozenset(
    {"content", "observation", "observations", "note", "body"}
)


class _Redactor:
    def __init__(self, max_str: int = 2_000, max_free_text: int = 256, max_depth: int = 4):
        self._max_str = max_str
        self._max_free_text = max_free_text
        self._max_depth = max_depth

    def _clip(self, text: str, limit: int) -> str:
        if len(text) <= limit:
            return text
        return f"{text[:limit]}…(+{len(text) - limit})"

    def sanitize(self, value: Any, *, depth: int = 0, key: str | None = None) -> Any:
        lowered = (key or "").lower()
        if lowered in _SECRET_KEYS:
            return "***"
        if depth > self._max_depth:
            return "…"

        if isinstance(value, str):
            limit = self._max_free_text if lowered in _FREE_TEXT_KEYS else self._max_str
            return self._clip(value, limit)
        if isinstance(value, (bool, int, float)) or value is None:
            return value
        if isinstance(value, dict):
            return {
                str(k): self.sanitize(v, depth=depth + 1, key=str(k))
                for k, v in value.items()
            }
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.sanitize(v, depth=depth + 1, key=key) for v in value]
        # UUID, Enum, datetime y demás: su str() es la forma legible.
        return self._clip(str(value), self._max_str)


class JSONFormatter(logging.Formatter):
    """LogRecord -> JSON (contexto del request + extras saneados)."""

    def __init__(self):
        super().__init__()
        self._redactor = _Redactor()

    def format(self, record: logging.LogRecord) -> str:
        from ..context import get_context_dict

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
            "pid": os.getpid(),
        }
        payload.update(get_context_dict())

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                payload[key] = self._redactor.sanitize(value, key=key)

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "stacktrace": traceback.format_exception(exc_type, exc, tb),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(name: str = "caseflow") -> logging.Logger:
    """
    Configura el logger del paquete una sola vez.

    Los loggers de módulo (`caseflow.*`, vía logging.getLogger(__name__))
    propagan hacia este y heredan handler y formato.
    """
    from .config import get_settings

    settings = get_settings()

    log = logging.getLogger(name)
    log.setLevel(getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_json:
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
            )
        log.addHandler(handler)

    return log


logger = setup_logger()
