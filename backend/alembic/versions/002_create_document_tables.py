"""Create document_sequences, documents, burned_document_numbers + guards

Revision ID: 002
Revises: 001
Create Date: 2026-10-02

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

from issuance.db.triggers import DROP_STATEMENTS, INSTALL_STATEMENTS

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TENANT = "NULLIF(current_setting('app.current_tenant', true), '')::uuid"

_TABLES = ["document_sequences", "documents", "burned_document_numbers"]

_DOCUMENT_TYPES = (
    "'receipt', 'tax_invoice', 'tax_invoice_receipt', "
    "'credit_invoice', 'quote', 'delivery_note'"
)
_DOCUMENT_STATUSES = "'draft', 'final', 'cancelled', 'voided'"


def _tenant_and_timestamps() -> list[sa.Column]:
    return [
        sa.Column("tenant_id", sa.UUID(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _enable_rls_and_grant(table: str, privileges: str) -> None:
    """Enable + force RLS, create 4 policies, grant to app_user."""
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
    op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")

    op.execute(f"""
        CREATE POLICY tenant_isolation_select ON {table}
        FOR SELECT
        USING (tenant_id = {_TENANT})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_insert ON {table}
        FOR INSERT
        WITH CHECK (tenant_id = {_TENANT})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_update ON {table}
        FOR UPDATE
        USING (tenant_id = {_TENANT})
        WITH CHECK (tenant_id = {_TENANT})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_delete ON {table}
        FOR DELETE
        USING (tenant_id = {_TENANT})
    """)

    op.execute(f"GRANT {privileges} ON {table} TO app_user")


def upgrade() -> None:
    # =====================================================================
    # 1) document_sequences
    # =====================================================================
    op.create_table(
        "document_sequences",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        *_tenant_and_timestamps(),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("starting_number", sa.BigInteger(), nullable=False),
        sa.Column("current_number", sa.BigInteger(), nullable=False),
        sa.Column("prefix", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_locked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "tenant_id", "document_type", name="uq_document_sequences_tenant_type"
        ),
        sa.CheckConstraint(
            f"document_type IN ({_DOCUMENT_TYPES})",
            name="ck_document_sequences_document_type",
        ),
        sa.CheckConstraint(
            "starting_number >= 1", name="ck_document_sequences_starting_positive"
        ),
        sa.CheckConstraint(
            "current_number >= starting_number - 1",
            name="ck_document_sequences_current_floor",
        ),
    )
    op.create_index("ix_document_sequences_tenant_id", "document_sequences", ["tenant_id"])
    # sequences are never deleted through the application
    _enable_rls_and_grant("document_sequences", "SELECT, INSERT, UPDATE")

    # =====================================================================
    # 2) documents
    # =====================================================================
    op.create_table(
        "documents",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        *_tenant_and_timestamps(),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("document_status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("document_number", sa.Text(), nullable=True),
        sa.Column("sequence_number", sa.BigInteger(), nullable=True),
        sa.Column("finalized_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("issue_date", sa.Date(), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="ILS"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("payments", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.UniqueConstraint(
            "tenant_id",
            "document_type",
            "document_number",
            name="uq_documents_tenant_type_number",
        ),
        sa.CheckConstraint(
            f"document_type IN ({_DOCUMENT_TYPES})", name="ck_documents_document_type"
        ),
        sa.CheckConstraint(
            f"document_status IN ({_DOCUMENT_STATUSES})", name="ck_documents_document_status"
        ),
        sa.CheckConstraint(
            "document_status <> 'draft' OR document_number IS NULL",
            name="ck_documents_draft_unnumbered",
        ),
        sa.CheckConstraint(
            "document_status <> 'final' OR "
            "(document_number IS NOT NULL AND finalized_at IS NOT NULL)",
            name="ck_documents_final_numbered",
        ),
    )
    op.create_index("ix_documents_tenant_id", "documents", ["tenant_id"])
    op.create_index(
        "ix_documents_tenant_type_status",
        "documents",
        ["tenant_id", "document_type", "document_status"],
    )
    _enable_rls_and_grant("documents", "SELECT, INSERT, UPDATE, DELETE")

    # =====================================================================
    # 3) burned_document_numbers (append-only reconciliation log)
    # =====================================================================
    op.create_table(
        "burned_document_numbers",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        *_tenant_and_timestamps(),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("sequence_value", sa.BigInteger(), nullable=False),
        sa.Column("document_number", sa.Text(), nullable=False),
        sa.Column("document_id", sa.UUID(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
    )
    op.create_index(
        "ix_burned_document_numbers_tenant_id", "burned_document_numbers", ["tenant_id"]
    )
    _enable_rls_and_grant("burned_document_numbers", "SELECT, INSERT")

    # =====================================================================
    # 4) storage-level guards
    # =====================================================================
    for statement in INSTALL_STATEMENTS:
        op.execute(statement)


def downgrade() -> None:
    for statement in DROP_STATEMENTS:
        op.execute(statement)

    for table in reversed(_TABLES):
        for action in ("select", "insert", "update", "delete"):
            op.execute(f"DROP POLICY IF EXISTS tenant_isolation_{action} ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
        op.execute(f"REVOKE ALL ON {table} FROM app_user")
        op.drop_table(table)
