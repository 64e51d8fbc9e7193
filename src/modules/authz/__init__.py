"""Authorization module: tenant access, policy decisions and approvals."""

from src.modules.authz.approval_service import ApprovalWorkflowTracker
from src.modules.authz.auth import get_current_principal, get_optional_principal
from src.modules.authz.dependencies import require_authorization
from src.modules.authz.gate import AuthorizationGate, ensure_permitted
from src.modules.authz.middleware import TenantContextMiddleware
from src.modules.authz.policy_client import PolicyDecisionClient
from src.modules.authz.schemas import (
    Deny,
    DenyReason,
    PendingApproval,
    Permit,
    Principal,
    RequestContext,
    Verdict,
)
from src.modules.authz.tenant_access import TenantAccessResolver

__all__ = [
    # Schemas
    "Principal",
    "RequestContext",
    "Verdict",
    "Permit",
    "Deny",
    "DenyReason",
    "PendingApproval",
    # Auth
    "get_current_principal",
    "get_optional_principal",
    # Middleware
    "TenantContextMiddleware",
    # Dependencies
    "require_authorization",
    # Services
    "AuthorizationGate",
    "ensure_permitted",
    "PolicyDecisionClient",
    "TenantAccessResolver",
    "ApprovalWorkflowTracker",
]
