from __future__ import annotations

import uuid

from sqlalchemy import Boolean
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin


class GlobalRoleGrant(TimestampMixin, Base):
    """Platform-level roles of a principal.

    ``unrestricted_access`` lets the principal reach any tenant without a
    membership row (platform admins, support, auditors, franchisors).
    """

    __tablename__ = "principal_global_roles"

    principal_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    roles: Mapped[list] = mapped_column(JSONB, nullable=False, server_default="[]")
    unrestricted_access: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )
