"""Create auth and tenancy tables

Revision ID: 001
Revises:
Create Date: 2026-09-28

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Safe cast expressions (NULLIF guard against empty-string GUC)
_TENANT = "NULLIF(current_setting('app.current_tenant', true), '')::uuid"
_USER = "NULLIF(current_setting('app.current_user_id', true), '')::uuid"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # --- tenants (global, no RLS) ---
    op.create_table(
        "tenants",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(63), nullable=False, unique=True),
        sa.Column("registration_number", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("default_currency", sa.String(3), nullable=False, server_default="ILS"),
        *_timestamps(),
    )

    # --- users (global, no RLS) ---
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("auth_sub", sa.String(255), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
    )

    # --- tenant_members (RLS-protected) ---
    op.create_table(
        "tenant_members",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("tenant_id", sa.UUID(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("user_id", sa.UUID(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_tenant_members_tenant_user"),
        sa.CheckConstraint(
            "role IN ('owner', 'admin', 'member')", name="ck_tenant_members_role"
        ),
        sa.CheckConstraint("status IN ('active', 'removed')", name="ck_tenant_members_status"),
    )
    op.create_index("ix_tenant_members_tenant_id", "tenant_members", ["tenant_id"])
    op.create_index("ix_tenant_members_user_id", "tenant_members", ["user_id"])

    op.execute("ALTER TABLE tenant_members ENABLE ROW LEVEL SECURITY")
    op.execute("ALTER TABLE tenant_members FORCE ROW LEVEL SECURITY")

    # SELECT by tenant OR by user: the dependency chain resolves membership
    # before the tenant is known
    op.execute(f"""
        CREATE POLICY tenant_isolation_select ON tenant_members
        FOR SELECT
        USING (tenant_id = {_TENANT} OR user_id = {_USER})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_insert ON tenant_members
        FOR INSERT
        WITH CHECK (tenant_id = {_TENANT})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_update ON tenant_members
        FOR UPDATE
        USING (tenant_id = {_TENANT})
        WITH CHECK (tenant_id = {_TENANT})
    """)
    op.execute(f"""
        CREATE POLICY tenant_isolation_delete ON tenant_members
        FOR DELETE
        USING (tenant_id = {_TENANT})
    """)

    op.execute("GRANT SELECT, INSERT, UPDATE ON tenants, users TO app_user")
    op.execute("GRANT SELECT, INSERT, UPDATE, DELETE ON tenant_members TO app_user")


def downgrade() -> None:
    for action in ("select", "insert", "update", "delete"):
        op.execute(f"DROP POLICY IF EXISTS tenant_isolation_{action} ON tenant_members")
    op.execute("ALTER TABLE tenant_members DISABLE ROW LEVEL SECURITY")

    op.execute("REVOKE ALL ON tenants, users, tenant_members FROM app_user")

    op.drop_table("tenant_members")
    op.drop_table("users")
    op.drop_table("tenants")
