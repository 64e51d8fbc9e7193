from __future__ import annotations

import uuid

from sqlalchemy import Boolean, CheckConstraint, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TenantMembership(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Role set of a principal inside one tenant. Inactive rows grant nothing."""

    __tablename__ = "tenant_memberships"

    principal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    roles: Mapped[list] = mapped_column(JSONB, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    __table_args__ = (
        UniqueConstraint("principal_id", "tenant_id", name="uq_membership_principal_tenant"),
        CheckConstraint("jsonb_array_length(roles) > 0", name="ck_membership_roles_not_empty"),
        Index("ix_memberships_principal_active", "principal_id", "active"),
        Index("ix_memberships_tenant_id", "tenant_id"),
    )
