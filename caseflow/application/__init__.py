"""
APPLICATION LAYER

Casos de uso (usecases/) y emisión best-effort del log de acciones
(audit_trail.emit_action).
"""

from .audit_trail import actor_label, emit_action

__all__ = ["actor_label", "emit_action"]
