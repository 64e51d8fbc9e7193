"""FastAPI dependency functions for authorization."""

import logging
import uuid

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.database.session import get_db
from src.exceptions import ApprovalPendingException
from src.modules.authz.action_extractor import extract_action, extract_resource_id, is_public_action
from src.modules.authz.approval_service import ApprovalWorkflowTracker
from src.modules.authz.auth import get_current_principal
from src.modules.authz.cache import AuthzCache
from src.modules.authz.gate import AuthorizationGate, ensure_permitted
from src.modules.authz.membership_service import MembershipService
from src.modules.authz.policy_client import PolicyDecisionClient
from src.modules.authz.repositories import (
    ApprovalRequestRepository,
    GlobalRoleRepository,
    MembershipRepository,
)
from src.modules.authz.schemas import PendingApproval, Principal, RequestContext
from src.modules.authz.tenant_access import TenantAccessResolver

logger = logging.getLogger(__name__)

# Resource keys derived from the request itself; callers cannot supply them
SERVER_RESOURCE_KEYS = ("tenant_id", "client")

# Process-wide singletons; the HTTP connection pool is shared across requests.
_cache: AuthzCache | None = None
_policy_client: PolicyDecisionClient | None = None


def get_cache() -> AuthzCache | None:
    global _cache
    if not settings.authz_cache_enabled:
        return None
    if _cache is None:
        _cache = AuthzCache()
    return _cache


def get_policy_client() -> PolicyDecisionClient:
    global _policy_client
    if _policy_client is None:
        _policy_client = PolicyDecisionClient(cache=get_cache())
    return _policy_client


async def close_policy_client() -> None:
    """Close the shared policy client. Called on application shutdown."""
    global _policy_client
    if _policy_client is not None:
        await _policy_client.aclose()
        _policy_client = None


def get_resolver(
    db: AsyncSession = Depends(get_db),
    cache: AuthzCache | None = Depends(get_cache),
) -> TenantAccessResolver:
    return TenantAccessResolver(GlobalRoleRepository(db), MembershipRepository(db), cache=cache)


def get_tracker(
    db: AsyncSession = Depends(get_db),
    resolver: TenantAccessResolver = Depends(get_resolver),
) -> ApprovalWorkflowTracker:
    return ApprovalWorkflowTracker(ApprovalRequestRepository(db), resolver)


def get_gate(
    resolver: TenantAccessResolver = Depends(get_resolver),
    policy_client: PolicyDecisionClient = Depends(get_policy_client),
    tracker: ApprovalWorkflowTracker = Depends(get_tracker),
) -> AuthorizationGate:
    return AuthorizationGate(resolver, policy_client, tracker)


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    resolver: TenantAccessResolver = Depends(get_resolver),
) -> MembershipService:
    return MembershipService(
        db,
        MembershipRepository(db),
        GlobalRoleRepository(db),
        ApprovalRequestRepository(db),
        resolver,
    )


def _detect_device(user_agent: str | None) -> str:
    if not user_agent:
        return "unknown"
    ua = user_agent.lower()
    if any(marker in ua for marker in ("mobile", "android", "iphone")):
        return "mobile"
    if any(marker in ua for marker in ("postman", "insomnia", "curl")):
        return "api"
    return "web"


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def resolve_target_tenant(request: Request) -> uuid.UUID | None:
    """Target tenant: ``tenant_id`` path parameter, then X-Tenant-Id, then the token claim."""
    path_tenant = request.path_params.get("tenant_id")
    if path_tenant is not None:
        try:
            return uuid.UUID(str(path_tenant))
        except ValueError:
            return None
    header_tenant = getattr(request.state, "target_tenant", None)
    if header_tenant is not None:
        return header_tenant
    return getattr(request.state, "tenant_claim", None)


def build_request_context(
    request: Request,
    principal: Principal,
    action: str | None = None,
    target_tenant: uuid.UUID | None = None,
) -> RequestContext:
    """Context for the gate. An explicit ``target_tenant`` overrides the request-derived one."""
    action = action or extract_action(request.method, request.url.path)
    target_tenant = target_tenant or resolve_target_tenant(request)
    resource = {
        "id": extract_resource_id(request.url.path, dict(request.path_params)),
        "tenant_id": str(target_tenant) if target_tenant else None,
        "client": {
            "ip": _client_ip(request),
            "device": _detect_device(request.headers.get("User-Agent")),
            "environment": settings.environment,
        },
    }
    return RequestContext(
        principal=principal,
        target_tenant=target_tenant,
        action=action,
        tenant_claim=getattr(request.state, "tenant_claim", None),
        resource=resource,
    )


def require_authorization(action: str | None = None):
    """Factory returning a dependency that runs the authorization gate.

    The action is derived from method and path when not given. A Deny raises
    an opaque 403. A PendingApproval commits the new approval request and
    raises ApprovalPendingException (HTTP 202), so the handler never runs.
    """

    async def _authorize(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        gate: AuthorizationGate = Depends(get_gate),
        db: AsyncSession = Depends(get_db),
    ) -> RequestContext:
        context = build_request_context(request, principal, action)
        if is_public_action(context.action):
            logger.debug("Public action %s, skipping authorization", context.action)
            return context

        verdict = await gate.authorize_context(context)
        if isinstance(verdict, PendingApproval):
            await db.commit()
            raise ApprovalPendingException(verdict.approval_request_id)
        ensure_permitted(verdict)
        return context

    return _authorize
