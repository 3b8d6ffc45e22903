"""
DERIVATION USE CASES PACKAGE (Public API / Exports)

  - DeriveDocumentUseCase: pase atómico a otra área.
  - ReceiveDerivationUseCase: acuse de recepción del área destino.
"""

from __future__ import annotations

from .derive_document import DeriveDocumentUseCase
from .receive_derivation import ReceiveDerivationUseCase

__all__ = [
    "DeriveDocumentUseCase",
    "ReceiveDerivationUseCase",
]
