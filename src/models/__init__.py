# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.approval_request import ApprovalRequest
from src.models.enums import ApprovalStatus, TenantAccessType
from src.models.global_role_grant import GlobalRoleGrant
from src.models.tenant_membership import TenantMembership

__all__ = [
    "ApprovalRequest",
    "ApprovalStatus",
    "GlobalRoleGrant",
    "TenantAccessType",
    "TenantMembership",
]
