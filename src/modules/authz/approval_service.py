"""Approval workflow tracker: PENDING -> APPROVED | REJECTED.

The tracker records decisions only. Approving a request never performs the
original operation; the requester re-invokes it after observing APPROVED.
"""

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from src.config import settings
from src.exceptions import (
    AlreadyResolvedException,
    ForbiddenApproverException,
    NotFoundException,
    ValidationException,
)
from src.models.approval_request import ApprovalRequest
from src.models.enums import ApprovalStatus
from src.modules.authz.constants import EXPIRED_NOTE
from src.modules.authz.repositories import ApprovalRequestRepository
from src.modules.authz.schemas import Principal
from src.modules.authz.tenant_access import TenantAccessResolver

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: frozenset[ApprovalStatus] = frozenset(
    {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED}
)


class ApprovalWorkflowTracker:
    def __init__(
        self,
        requests: ApprovalRequestRepository,
        resolver: TenantAccessResolver,
    ) -> None:
        self._requests = requests
        self._resolver = resolver

    async def create_request(
        self,
        requested_by: uuid.UUID,
        tenant_id: uuid.UUID,
        action: str,
        required_approver_role: str,
        resource: dict[str, Any] | None = None,
    ) -> ApprovalRequest:
        """Persist a new request in PENDING."""
        request = ApprovalRequest(
            id=uuid.uuid4(),
            requested_by=requested_by,
            tenant_id=tenant_id,
            action=action,
            required_approver_role=required_approver_role,
            resource=dict(resource or {}),
            status=ApprovalStatus.PENDING,
        )
        await self._requests.add(request)
        logger.info(
            "Approval request %s created: action=%s tenant=%s requested_by=%s approver_role=%s",
            request.id,
            action,
            tenant_id,
            requested_by,
            required_approver_role,
        )
        return request

    async def get_request(self, request_id: uuid.UUID) -> ApprovalRequest:
        request = await self._requests.get(request_id)
        if request is None:
            raise NotFoundException(f"Approval request {request_id} not found")
        return request

    async def list_requests(
        self,
        tenant_id: uuid.UUID,
        status: ApprovalStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ApprovalRequest], int]:
        return await self._requests.list_for_tenant(
            tenant_id, status=status, limit=limit, offset=offset
        )

    async def resolve(
        self,
        request_id: uuid.UUID,
        resolving_principal: Principal,
        outcome: ApprovalStatus,
        note: str | None = None,
    ) -> ApprovalRequest:
        """Approve or reject a PENDING request.

        Raises:
            ValidationException: ``outcome`` is not a terminal status.
            NotFoundException: no such request.
            AlreadyResolvedException: the request left PENDING, including when
                a concurrent resolver won the conditional update.
            ForbiddenApproverException: the resolver does not hold the
                required approver role within the request's tenant.
        """
        if outcome not in TERMINAL_STATUSES:
            raise ValidationException(f"Cannot resolve an approval request to {outcome.value}")

        request = await self.get_request(request_id)
        if request.status != ApprovalStatus.PENDING:
            raise AlreadyResolvedException(
                f"Approval request {request_id} is already {request.status.value}"
            )

        access = await self._resolver.resolve_access(
            resolving_principal, request.tenant_id, fresh=True
        )
        if not access.granted or request.required_approver_role not in access.roles:
            logger.warning(
                "Approver %s lacks role %s in tenant %s for request %s",
                resolving_principal.id,
                request.required_approver_role,
                request.tenant_id,
                request_id,
            )
            raise ForbiddenApproverException(
                f"Resolving this request requires the {request.required_approver_role} role"
            )

        resolved_at = datetime.now(UTC)
        swapped = await self._requests.transition_if_pending(
            request_id,
            status=outcome,
            resolved_by=resolving_principal.id,
            resolved_at=resolved_at,
            note=note,
        )
        if not swapped:
            raise AlreadyResolvedException(f"Approval request {request_id} was resolved concurrently")

        logger.info(
            "Approval request %s %s by %s", request_id, outcome.value, resolving_principal.id
        )
        refreshed = await self._requests.reload(request_id)
        return refreshed if refreshed is not None else request

    async def expire_stale(self, ttl_hours: int | None = None) -> int:
        """Reject every PENDING request older than the TTL. Returns the count."""
        ttl = ttl_hours if ttl_hours is not None else settings.approval_ttl_hours
        now = datetime.now(UTC)
        expired = await self._requests.reject_pending_older_than(
            cutoff=now - timedelta(hours=ttl),
            resolved_at=now,
            note=EXPIRED_NOTE,
        )
        if expired:
            logger.info("Expired %d approval requests older than %dh", expired, ttl)
        return expired
