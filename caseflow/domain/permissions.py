"""
===============================================================================
TARJETA CRC — domain/permissions.py
===============================================================================

Módulo:
    Vocabulario de Permisos (bitmask por rol)

Responsabilidades:
    - Definir los 8 flags de capacidad como un IntFlag inmutable.
    - Definir las acciones del sistema (lenguaje ubicuo: CREAR, EDITAR, ...).
    - Mapear acción -> bit y decodificar máscaras para su visualización.

Colaboradores:
    - domain.authorization.AuthorizationEngine: recibe PermissionBits inyectado.
    - domain.rules: RuleBody usa Action.
    - application.usecases.permissions: catálogo de roles decodificado.

Notas:
    - La asignación numérica es un contrato binario: las filas de roles ya
      persistidas la codifican. NO reordenar.
    - Un bit se considera presente si (mask & bit) == bit.
===============================================================================
"""

from __future__ import annotations

from enum import Enum, IntFlag


class PermissionBits(IntFlag):
    """Capacidades gruesas de un rol (8 bits, potencias de dos)."""

    CREATE = 1
    EDIT = 2
    DELETE = 4
    VIEW = 8
    DERIVE = 16
    AUDIT = 32
    EXPORT = 64
    ADMIN = 128


# Todos los bits encendidos (máscara de administrador "completa").
ALL_PERMISSIONS: int = 0xFF


class Action(str, Enum):
    """Acciones que se pueden intentar sobre un recurso."""

    CREAR = "CREAR"
    EDITAR = "EDITAR"
    ELIMINAR = "ELIMINAR"
    VER = "VER"
    DERIVAR = "DERIVAR"
    AUDITAR = "AUDITAR"
    EXPORTAR = "EXPORTAR"
    ADMIN = "ADMIN"


ACTION_BITS: dict[Action, PermissionBits] = {
    Action.CREAR: PermissionBits.CREATE,
    Action.EDITAR: PermissionBits.EDIT,
    Action.ELIMINAR: PermissionBits.DELETE,
    Action.VER: PermissionBits.VIEW,
    Action.DERIVAR: PermissionBits.DERIVE,
    Action.AUDITAR: PermissionBits.AUDIT,
    Action.EXPORTAR: PermissionBits.EXPORT,
    Action.ADMIN: PermissionBits.ADMIN,
}

_ACTION_BY_BIT_NAME: dict[str, Action] = {
    bit.name: action for action, bit in ACTION_BITS.items()
}


def action_from_name(raw: str) -> Action | None:
    """Acepta el nombre de la acción (ELIMINAR) o del bit (DELETE); None si no existe."""
    value = raw.strip().upper()
    if value in Action.__members__:
        return Action(value)
    return _ACTION_BY_BIT_NAME.get(value)


def bit_for_action(action: Action) -> PermissionBits:
    """Bit que habilita la acción."""
    return ACTION_BITS[action]


def has_bit(mask: int, bit: PermissionBits) -> bool:
    """True si la máscara (8 bits sin signo) tiene el bit encendido."""
    return (int(mask) & ALL_PERMISSIONS & int(bit)) == int(bit)


def decode_mask(mask: int) -> dict[str, bool]:
    """
    Decodifica una máscara en flags legibles.

    Ejemplo:
      decode_mask(9) -> {"CREATE": True, "EDIT": False, ..., "VIEW": True, ...}
    """
    return {bit.name: has_bit(mask, bit) for bit in PermissionBits}


def encode_mask(bits: list[PermissionBits] | tuple[PermissionBits, ...]) -> int:
    """Combina bits en una máscara entera."""
    mask = 0
    for bit in bits:
        mask |= int(bit)
    return mask


def validate_mask(mask: int) -> int:
    """Valida que la máscara entre en 8 bits sin signo."""
    if not isinstance(mask, int) or isinstance(mask, bool):
        raise ValueError("permission mask must be an integer")
    if mask < 0 or mask > ALL_PERMISSIONS:
        raise ValueError("permission mask must be between 0 and 255")
    return mask
