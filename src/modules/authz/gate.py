"""Authorization gate. Combines tenant access, policy decisions and approvals."""

import logging
import uuid
from typing import Any

from src.exceptions import (
    ConfigurationException,
    NotAuthorizedException,
    PolicyDeniedException,
    PolicyUnavailableException,
    TenantInvalidException,
    TenantNotAccessibleException,
)
from src.modules.authz.approval_service import ApprovalWorkflowTracker
from src.modules.authz.policy_client import PolicyDecisionClient
from src.modules.authz.schemas import (
    Deny,
    DenyReason,
    PendingApproval,
    Permit,
    PolicyQuery,
    Principal,
    RequestContext,
    Verdict,
)
from src.modules.authz.tenant_access import TenantAccessResolver

logger = logging.getLogger(__name__)

_DENY_EXCEPTIONS: dict[DenyReason, type[NotAuthorizedException]] = {
    DenyReason.TENANT_NOT_ACCESSIBLE: TenantNotAccessibleException,
    DenyReason.POLICY_UNAVAILABLE: PolicyUnavailableException,
    DenyReason.TENANT_INVALID: TenantInvalidException,
    DenyReason.POLICY_DENIED: PolicyDeniedException,
}


class AuthorizationGate:
    """Renders a Verdict for one protected operation.

    The order of checks matters: tenant scope is checked before the policy
    engine is called, and the more restrictive signal always wins
    (tenant-invalid over deny, deny over approval, approval over permit).
    The gate holds no per-request state.
    """

    def __init__(
        self,
        resolver: TenantAccessResolver,
        policy_client: PolicyDecisionClient,
        approvals: ApprovalWorkflowTracker,
    ) -> None:
        self._resolver = resolver
        self._policy = policy_client
        self._approvals = approvals

    async def authorize(
        self,
        principal: Principal,
        target_tenant: uuid.UUID,
        action: str,
        resource_attributes: dict[str, Any] | None = None,
        tenant_claim: uuid.UUID | None = None,
    ) -> Verdict:
        resource = dict(resource_attributes or {})

        # 1. Tenant scope
        access = await self._resolver.resolve_access(principal, target_tenant)
        if not access.granted:
            return self._deny(principal, target_tenant, action, DenyReason.TENANT_NOT_ACCESSIBLE)

        # 2. Policy query
        query = PolicyQuery(
            principal_roles=sorted(access.roles | principal.global_roles),
            tenant_claim=tenant_claim,
            target_tenant=target_tenant,
            action=action,
            resource=resource,
        )

        # 3. Fail closed
        try:
            decision = await self._policy.evaluate(query)
        except PolicyUnavailableException:
            return self._deny(principal, target_tenant, action, DenyReason.POLICY_UNAVAILABLE)

        # 4-5. Restrictive signals
        if not decision.tenant_valid:
            return self._deny(principal, target_tenant, action, DenyReason.TENANT_INVALID)
        if not decision.allow:
            return self._deny(principal, target_tenant, action, DenyReason.POLICY_DENIED)

        # 6. Plain permit
        if not decision.requires_approval:
            logger.info(
                "AUTHZ PERMIT: action=%s principal=%s tenant=%s", action, principal.id, target_tenant
            )
            return Permit()

        # 7. Escalation
        if not decision.required_approver_role:
            logger.error(
                "Policy for action=%s requires approval without naming an approver role", action
            )
            raise ConfigurationException("Authorization policy is misconfigured.")

        request = await self._approvals.create_request(
            requested_by=principal.id,
            tenant_id=target_tenant,
            action=action,
            required_approver_role=decision.required_approver_role,
            resource=resource,
        )
        logger.info(
            "AUTHZ PENDING_APPROVAL: action=%s principal=%s tenant=%s request=%s approver_role=%s",
            action,
            principal.id,
            target_tenant,
            request.id,
            decision.required_approver_role,
        )
        return PendingApproval(approval_request_id=request.id)

    async def authorize_context(self, context: RequestContext) -> Verdict:
        """authorize() for a request context; a missing target tenant is denied."""
        if context.target_tenant is None:
            return self._deny(
                context.principal, None, context.action, DenyReason.TENANT_NOT_ACCESSIBLE
            )
        return await self.authorize(
            context.principal,
            context.target_tenant,
            context.action,
            context.resource,
            tenant_claim=context.tenant_claim,
        )

    @staticmethod
    def _deny(
        principal: Principal,
        target_tenant: uuid.UUID | None,
        action: str,
        reason: DenyReason,
    ) -> Deny:
        logger.warning(
            "AUTHZ DENY: action=%s principal=%s tenant=%s reason=%s",
            action,
            principal.id,
            target_tenant,
            reason.value,
        )
        return Deny(reason=reason)


def ensure_permitted(verdict: Verdict) -> None:
    """Raise the opaque NotAuthorized exception matching a Deny verdict.

    Permit and PendingApproval pass through; the caller must still treat
    PendingApproval as "operation not performed".
    """
    if isinstance(verdict, Deny):
        raise _DENY_EXCEPTIONS[verdict.reason]()
