"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 001_workflow_schema (Alembic Migration)

Responsibilities:
  - Crear el esquema completo del workflow documental desde cero.
  - Definir tablas, constraints e índices usados por los repositorios
    PostgreSQL (infrastructure/repositories/postgres).

Collaborators:
  - PostgreSQL 14+
  - Alembic (framework de migraciones)

Policy:
  - Migración BASELINE. Downgrade elimina todo (solo entornos de desarrollo).
  - trace_events NO tiene FK a documents: la cadena de procedencia
    sobrevive al borrado permanente del documento.
  - seq (BIGSERIAL) desempata filas con el mismo timestamp para que el
    orden de historial y trazas sea determinístico.
  - Convención de nombres:
      pk_<tabla>, uq_<tabla>_<col>, ix_<tabla>_<col>, fk_<tabla>_<col>__<ref_tabla>
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_workflow_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_UUID = postgresql.UUID(as_uuid=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """
    Orden:
      1) Catálogos (roles, areas)
      2) Reglas contextuales
      3) Documentos + historial + adjuntos
      4) Derivaciones
      5) Trazabilidad / auditoría
    """

    # =========================================================
    # 1) CATÁLOGOS
    # =========================================================
    op.create_table(
        "roles",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("permissions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("access_level", sa.Integer, nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_roles"),
        sa.UniqueConstraint("name", name="uq_roles_name"),
        sa.CheckConstraint("permissions >= 0", name="ck_roles_permissions"),
    )

    op.create_table(
        "areas",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id", name="pk_areas"),
        sa.UniqueConstraint("code", name="uq_areas_code"),
    )

    # =========================================================
    # 2) REGLAS CONTEXTUALES
    # =========================================================
    op.create_table(
        "contextual_permission_rules",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("role_id", _UUID, nullable=False),
        sa.Column("area_id", _UUID, nullable=False),
        sa.Column("resource_type", sa.String(20), nullable=False),
        sa.Column("body", postgresql.JSONB, nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_contextual_permission_rules"),
        sa.ForeignKeyConstraint(
            ["role_id"],
            ["roles.id"],
            name="fk_contextual_permission_rules_role_id__roles",
        ),
        sa.ForeignKeyConstraint(
            ["area_id"],
            ["areas.id"],
            name="fk_contextual_permission_rules_area_id__areas",
        ),
        sa.CheckConstraint(
            "resource_type IN ('DOCUMENTO','USUARIO','AREA')",
            name="ck_contextual_permission_rules_resource_type",
        ),
    )
    op.create_index(
        "ix_contextual_permission_rules_role_id",
        "contextual_permission_rules",
        ["role_id", "resource_type"],
        postgresql_where=sa.text("active"),
    )

    # =========================================================
    # 3) DOCUMENTOS
    # =========================================================
    op.create_table(
        "documents",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("registration_number", sa.String(64), nullable=False),
        sa.Column("current_area_id", _UUID, nullable=False),
        sa.Column("creator_id", _UUID, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("assigned_user_id", _UUID, nullable=True),
        sa.Column("intake_desk_id", _UUID, nullable=True),
        sa.Column("office_number", sa.String(128), nullable=True),
        sa.Column("document_date", sa.Date, nullable=True),
        sa.Column("origin", sa.String(255), nullable=True),
        sa.Column("provenance", sa.String(255), nullable=True),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("observations", sa.Text, nullable=False, server_default=""),
        sa.Column("priority", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column(
            "metadata",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_documents"),
        sa.UniqueConstraint(
            "registration_number", name="uq_documents_registration_number"
        ),
        sa.ForeignKeyConstraint(
            ["current_area_id"],
            ["areas.id"],
            name="fk_documents_current_area_id__areas",
        ),
        sa.CheckConstraint(
            "status IN ('RECEIVED','IN_PROCESS','DERIVED','OBSERVED',"
            "'FINALIZED','ARCHIVED','TRASH')",
            name="ck_documents_status",
        ),
        sa.CheckConstraint("version >= 1", name="ck_documents_version"),
    )
    op.create_index("ix_documents_status", "documents", ["status", "updated_at"])
    op.create_index("ix_documents_current_area_id", "documents", ["current_area_id"])
    op.create_index("ix_documents_creator_id", "documents", ["creator_id"])

    op.create_table(
        "document_status_history",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("seq", sa.BigInteger, sa.Identity(always=False), nullable=False),
        sa.Column("document_id", _UUID, nullable=False),
        sa.Column("previous_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=False),
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("observation", sa.Text, nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_document_status_history"),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_document_status_history_document_id__documents",
        ),
    )
    op.create_index(
        "ix_document_status_history_document_id",
        "document_status_history",
        ["document_id", "created_at"],
    )

    op.create_table(
        "document_attachments",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("document_id", _UUID, nullable=False),
        sa.Column("storage_key", sa.String(512), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(128), nullable=True),
        sa.Column("uploaded_by", _UUID, nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_document_attachments"),
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_document_attachments_document_id__documents",
        ),
    )
    op.create_index(
        "ix_document_attachments_document_id",
        "document_attachments",
        ["document_id"],
    )

    # =========================================================
    # 4) DERIVACIONES
    # =========================================================
    op.create_table(
        "derivations",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("document_id", _UUID, nullable=False),
        sa.Column("origin_area_id", _UUID, nullable=False),
        sa.Column("destination_area_id", _UUID, nullable=False),
        sa.Column("derived_by", _UUID, nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("observation", sa.Text, nullable=False, server_default=""),
        sa.Column("urgent", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("reason", sa.String(255), nullable=False, server_default=""),
        sa.Column(
            "derived_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by", _UUID, nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_derivations"),
        # Sin ON DELETE CASCADE: el borrado permanente rechaza documentos
        # con derivaciones.
        sa.ForeignKeyConstraint(
            ["document_id"],
            ["documents.id"],
            name="fk_derivations_document_id__documents",
        ),
        sa.ForeignKeyConstraint(
            ["origin_area_id"],
            ["areas.id"],
            name="fk_derivations_origin_area_id__areas",
        ),
        sa.ForeignKeyConstraint(
            ["destination_area_id"],
            ["areas.id"],
            name="fk_derivations_destination_area_id__areas",
        ),
        sa.CheckConstraint(
            "status IN ('PENDING','RECEIVED')", name="ck_derivations_status"
        ),
        sa.CheckConstraint(
            "origin_area_id <> destination_area_id",
            name="ck_derivations_distinct_areas",
        ),
    )
    op.create_index(
        "ix_derivations_document_id", "derivations", ["document_id", "derived_at"]
    )

    # =========================================================
    # 5) TRAZABILIDAD / AUDITORÍA (append-only)
    # =========================================================
    op.create_table(
        "trace_events",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("seq", sa.BigInteger, sa.Identity(always=False), nullable=False),
        sa.Column("document_id", _UUID, nullable=False),
        sa.Column("user_id", _UUID, nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("origin_area_id", _UUID, nullable=True),
        sa.Column("destination_area_id", _UUID, nullable=True),
        sa.Column("observation", sa.Text, nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_trace_events"),
    )
    op.create_index(
        "ix_trace_events_document_id", "trace_events", ["document_id", "created_at"]
    )

    op.create_table(
        "unauthorized_access_events",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("user_id", _UUID, nullable=True),
        sa.Column("resource_type", sa.String(20), nullable=False),
        sa.Column("resource_id", _UUID, nullable=True),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("origin", sa.String(255), nullable=True),
        sa.Column("reason", sa.String(64), nullable=False, server_default=""),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_unauthorized_access_events"),
    )
    op.create_index(
        "ix_unauthorized_access_events_user_id",
        "unauthorized_access_events",
        ["user_id", "created_at"],
    )

    op.create_table(
        "action_log",
        sa.Column("id", _UUID, nullable=False),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("target_id", _UUID, nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_action_log"),
    )
    op.create_index("ix_action_log_target_id", "action_log", ["target_id"])
    op.create_index("ix_action_log_created_at", "action_log", ["created_at"])


def downgrade() -> None:
    for table in (
        "action_log",
        "unauthorized_access_events",
        "trace_events",
        "derivations",
        "document_attachments",
        "document_status_history",
        "documents",
        "contextual_permission_rules",
        "areas",
        "roles",
    ):
        op.drop_table(table)
