"""Create authorization schema - global roles, tenant memberships, approval requests

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
approval_status_enum = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", name="approvalstatus", create_type=False
)


def upgrade() -> None:
    approval_status_enum.create(op.get_bind(), checkfirst=True)

    # 1. principal_global_roles
    op.create_table(
        "principal_global_roles",
        sa.Column("principal_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("roles", JSONB, server_default="[]", nullable=False),
        sa.Column("unrestricted_access", sa.Boolean, server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    # 2. tenant_memberships
    op.create_table(
        "tenant_memberships",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("principal_id", UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", UUID(as_uuid=True), nullable=False),
        sa.Column("roles", JSONB, nullable=False),
        sa.Column("active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("principal_id", "tenant_id", name="uq_membership_principal_tenant"),
        sa.CheckConstraint("jsonb_array_length(roles) > 0", name="ck_membership_roles_not_empty"),
    )
    op.create_index("ix_memberships_principal_active", "tenant_memberships", ["principal_id", "active"])
    op.create_index("ix_memberships_tenant_id", "tenant_memberships", ["tenant_id"])

    # 3. approval_requests
    op.create_table(
        "approval_requests",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("requested_by", UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", UUID(as_uuid=True), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("required_approver_role", sa.String(50), nullable=False),
        sa.Column("resource", JSONB, server_default="{}", nullable=False),
        sa.Column("status", approval_status_enum, server_default="PENDING", nullable=False),
        sa.Column("resolved_by", UUID(as_uuid=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_note", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_approval_requests_tenant_status", "approval_requests", ["tenant_id", "status"])
    op.create_index("ix_approval_requests_status_created", "approval_requests", ["status", "created_at"])
    op.create_index("ix_approval_requests_requested_by", "approval_requests", ["requested_by"])


def downgrade() -> None:
    op.drop_table("approval_requests")
    op.drop_table("tenant_memberships")
    op.drop_table("principal_global_roles")
    approval_status_enum.drop(op.get_bind(), checkfirst=True)
