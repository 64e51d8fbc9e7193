"""Authorization API router: tenant access, authorization checks, approvals and members."""

import logging
import uuid
from dataclasses import replace

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from src.exceptions import NotFoundException
from src.models.enums import ApprovalStatus
from src.modules.authz.api_schemas import (
    ApprovalRequestListResponse,
    ApprovalRequestResponse,
    AuthorizationCheckRequest,
    AuthorizationCheckResponse,
    LimitedTenantsResponse,
    MemberCreate,
    MemberRolesUpdate,
    MembershipResponse,
    PolicyEngineHealthResponse,
    ResolveApprovalRequest,
    TenantSummary,
    UnrestrictedTenantsResponse,
    UserTenantsResponse,
)
from src.modules.authz.approval_service import ApprovalWorkflowTracker
from src.modules.authz.auth import get_current_principal
from src.modules.authz.dependencies import (
    SERVER_RESOURCE_KEYS,
    build_request_context,
    get_gate,
    get_membership_service,
    get_policy_client,
    get_resolver,
    get_tracker,
    require_authorization,
)
from src.modules.authz.gate import AuthorizationGate
from src.modules.authz.membership_service import MembershipService
from src.modules.authz.policy_client import PolicyDecisionClient
from src.modules.authz.schemas import (
    PendingApproval,
    Principal,
    RequestContext,
    UnrestrictedAccess,
)
from src.modules.authz.tenant_access import TenantAccessResolver
from src.schemas.responses import AUTHORIZATION_RESPONSES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authz"])
health_router = APIRouter(tags=["health"])

limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Tenant access
# ---------------------------------------------------------------------------


@router.get("/user/tenants", response_model=UserTenantsResponse)
async def list_user_tenants(
    limit: int | None = Query(None),
    offset: int = Query(0),
    principal: Principal = Depends(get_current_principal),
    resolver: TenantAccessResolver = Depends(get_resolver),
):
    """Tenants the caller may access; unrestricted callers get no list."""
    summary = await resolver.summarize(principal, limit=limit, offset=offset)
    if isinstance(summary, UnrestrictedAccess):
        return UnrestrictedTenantsResponse()
    return LimitedTenantsResponse(
        total_tenants=summary.total_count,
        tenants=[TenantSummary.model_validate(m) for m in summary.memberships],
    )


# ---------------------------------------------------------------------------
# Authorization check
# ---------------------------------------------------------------------------


@router.post("/authz/check", response_model=AuthorizationCheckResponse)
@limiter.limit("120/minute")
async def check_authorization(
    request: Request,
    body: AuthorizationCheckRequest,
    principal: Principal = Depends(get_current_principal),
    gate: AuthorizationGate = Depends(get_gate),
):
    """Run the gate for an explicit action. Escalations create an approval request."""
    context = build_request_context(request, principal, body.action, target_tenant=body.tenant_id)
    resource = {**context.resource, **body.resource}
    resource.update({key: context.resource[key] for key in SERVER_RESOURCE_KEYS})
    verdict = await gate.authorize_context(replace(context, resource=resource))

    # Deny reasons stay in the logs
    approval_id = verdict.approval_request_id if isinstance(verdict, PendingApproval) else None
    return AuthorizationCheckResponse(decision=verdict.kind, approval_request_id=approval_id)


# ---------------------------------------------------------------------------
# Approvals
# ---------------------------------------------------------------------------


@router.get(
    "/approvals", response_model=ApprovalRequestListResponse, responses=AUTHORIZATION_RESPONSES
)
async def list_approvals(
    status: ApprovalStatus | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    context: RequestContext = Depends(require_authorization("approval:list")),
    tracker: ApprovalWorkflowTracker = Depends(get_tracker),
):
    items, total = await tracker.list_requests(
        context.target_tenant, status=status, limit=limit, offset=offset
    )
    return ApprovalRequestListResponse(
        items=[ApprovalRequestResponse.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/approvals/{approval_id}",
    response_model=ApprovalRequestResponse,
    responses=AUTHORIZATION_RESPONSES,
)
async def get_approval(
    approval_id: uuid.UUID,
    context: RequestContext = Depends(require_authorization("approval:view")),
    tracker: ApprovalWorkflowTracker = Depends(get_tracker),
):
    request = await tracker.get_request(approval_id)
    if request.tenant_id != context.target_tenant:
        raise NotFoundException(f"Approval request {approval_id} not found")
    return request


@router.post("/approvals/{approval_id}/approve", response_model=ApprovalRequestResponse)
async def approve_request(
    approval_id: uuid.UUID,
    body: ResolveApprovalRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    tracker: ApprovalWorkflowTracker = Depends(get_tracker),
):
    """Approve a pending request. The original operation is not executed."""
    return await tracker.resolve(
        approval_id, principal, ApprovalStatus.APPROVED, note=body.note if body else None
    )


@router.post("/approvals/{approval_id}/reject", response_model=ApprovalRequestResponse)
async def reject_request(
    approval_id: uuid.UUID,
    body: ResolveApprovalRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    tracker: ApprovalWorkflowTracker = Depends(get_tracker),
):
    return await tracker.resolve(
        approval_id, principal, ApprovalStatus.REJECTED, note=body.note if body else None
    )


# ---------------------------------------------------------------------------
# Tenant members
# ---------------------------------------------------------------------------


@router.post(
    "/tenants/{tenant_id}/members",
    response_model=MembershipResponse,
    status_code=201,
    responses=AUTHORIZATION_RESPONSES,
)
async def add_member(
    tenant_id: uuid.UUID,
    body: MemberCreate,
    _: RequestContext = Depends(require_authorization("member:create")),
    svc: MembershipService = Depends(get_membership_service),
):
    return await svc.add_member(tenant_id, body.principal_id, body.roles)


@router.put(
    "/tenants/{tenant_id}/members/{principal_id}",
    response_model=MembershipResponse,
    responses=AUTHORIZATION_RESPONSES,
)
async def update_member_roles(
    tenant_id: uuid.UUID,
    principal_id: uuid.UUID,
    body: MemberRolesUpdate,
    _: RequestContext = Depends(require_authorization("member:update")),
    svc: MembershipService = Depends(get_membership_service),
):
    return await svc.update_roles(tenant_id, principal_id, body.roles)


@router.delete(
    "/tenants/{tenant_id}/members/{principal_id}",
    status_code=204,
    responses=AUTHORIZATION_RESPONSES,
)
async def remove_member(
    tenant_id: uuid.UUID,
    principal_id: uuid.UUID,
    _: RequestContext = Depends(require_authorization("member:delete")),
    svc: MembershipService = Depends(get_membership_service),
):
    await svc.remove_member(tenant_id, principal_id)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@health_router.get("/health/policy-engine", response_model=PolicyEngineHealthResponse)
async def policy_engine_health(
    policy_client: PolicyDecisionClient = Depends(get_policy_client),
):
    healthy = await policy_client.health_check()
    if not healthy:
        logger.warning("Policy engine at %s is DOWN", policy_client.base_url)
    return PolicyEngineHealthResponse(
        status="UP" if healthy else "DOWN",
        policy_engine_url=policy_client.base_url,
    )
