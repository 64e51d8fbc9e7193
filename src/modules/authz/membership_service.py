"""Membership lifecycle service -- add, update roles, remove, off-board."""

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ConflictException, NotFoundException, ValidationException
from src.models.tenant_membership import TenantMembership
from src.modules.authz.repositories import (
    ApprovalRequestRepository,
    GlobalRoleRepository,
    MembershipRepository,
)
from src.modules.authz.tenant_access import TenantAccessResolver

logger = logging.getLogger(__name__)

OFFBOARD_NOTE = "requester off-boarded"


def _normalize_roles(roles: list[str]) -> list[str]:
    cleaned = sorted({role.strip().upper() for role in roles if role and role.strip()})
    if not cleaned:
        raise ValidationException("A membership must carry at least one role")
    return cleaned


class MembershipService:
    def __init__(
        self,
        db: AsyncSession,
        memberships: MembershipRepository,
        global_roles: GlobalRoleRepository,
        approvals: ApprovalRequestRepository,
        resolver: TenantAccessResolver,
    ) -> None:
        self.db = db
        self._memberships = memberships
        self._global_roles = global_roles
        self._approvals = approvals
        self._resolver = resolver

    async def _commit_and_invalidate(self, principal_id: uuid.UUID) -> None:
        """Commit, then drop cached resolutions.

        The cache is never cleared while the old rows are still the committed state.
        """
        await self.db.commit()
        await self._resolver.invalidate(principal_id)

    async def add_member(
        self, tenant_id: uuid.UUID, principal_id: uuid.UUID, roles: list[str]
    ) -> TenantMembership:
        """Create an active membership. One row per (principal, tenant)."""
        normalized = _normalize_roles(roles)
        existing = await self._memberships.find(principal_id, tenant_id)
        if existing is not None:
            raise ConflictException("Principal already has a membership in this tenant")

        membership = TenantMembership(
            id=uuid.uuid4(),
            principal_id=principal_id,
            tenant_id=tenant_id,
            roles=normalized,
            active=True,
        )
        await self._memberships.add(membership)
        await self._commit_and_invalidate(principal_id)
        logger.info("Added principal %s to tenant %s as %s", principal_id, tenant_id, normalized)
        return membership

    async def update_roles(
        self, tenant_id: uuid.UUID, principal_id: uuid.UUID, roles: list[str]
    ) -> TenantMembership:
        """Replace the role set. The set can never become empty."""
        normalized = _normalize_roles(roles)
        membership = await self._memberships.find(principal_id, tenant_id)
        if membership is None:
            raise NotFoundException("Membership not found")

        membership.roles = normalized
        await self._memberships.save(membership)
        await self._commit_and_invalidate(principal_id)
        return membership

    async def remove_member(self, tenant_id: uuid.UUID, principal_id: uuid.UUID) -> None:
        membership = await self._memberships.find(principal_id, tenant_id)
        if membership is None:
            raise NotFoundException("Membership not found")

        await self._memberships.delete(membership)
        await self._commit_and_invalidate(principal_id)
        logger.info("Removed principal %s from tenant %s", principal_id, tenant_id)

    async def offboard_principal(self, principal_id: uuid.UUID) -> dict:
        """Remove every trace of tenant access for a principal.

        Order: reject the principal's pending approval requests, delete its
        memberships, delete its global grant, commit, drop cached resolutions.
        """
        stats = {"approvals_rejected": 0, "memberships_deleted": 0, "global_grant_deleted": 0}

        stats["approvals_rejected"] = await self._approvals.reject_pending_by_requester(
            principal_id, resolved_at=datetime.now(UTC), note=OFFBOARD_NOTE
        )
        stats["memberships_deleted"] = await self._memberships.delete_by_principal(principal_id)
        stats["global_grant_deleted"] = await self._global_roles.delete(principal_id)
        await self._commit_and_invalidate(principal_id)

        logger.info("Off-boarded principal %s: %s", principal_id, stats)
        return stats
