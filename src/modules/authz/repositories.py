"""Repositories for global role grants, tenant memberships and approval requests.

Every write is explicit. There are no ORM relationships between these tables,
so deleting one row never removes another behind the caller's back.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.approval_request import ApprovalRequest
from src.models.enums import ApprovalStatus
from src.models.global_role_grant import GlobalRoleGrant
from src.models.tenant_membership import TenantMembership


class GlobalRoleRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, principal_id: uuid.UUID) -> GlobalRoleGrant | None:
        result = await self.db.execute(
            select(GlobalRoleGrant).where(GlobalRoleGrant.principal_id == principal_id)
        )
        return result.scalar_one_or_none()

    async def add(self, grant: GlobalRoleGrant) -> GlobalRoleGrant:
        self.db.add(grant)
        await self.db.flush()
        return grant

    async def delete(self, principal_id: uuid.UUID) -> int:
        result = await self.db.execute(
            delete(GlobalRoleGrant).where(GlobalRoleGrant.principal_id == principal_id)
        )
        return result.rowcount


class MembershipRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find(self, principal_id: uuid.UUID, tenant_id: uuid.UUID) -> TenantMembership | None:
        """Membership row for the pair regardless of its active flag."""
        result = await self.db.execute(
            select(TenantMembership).where(
                TenantMembership.principal_id == principal_id,
                TenantMembership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_active(
        self, principal_id: uuid.UUID, tenant_id: uuid.UUID
    ) -> TenantMembership | None:
        result = await self.db.execute(
            select(TenantMembership).where(
                TenantMembership.principal_id == principal_id,
                TenantMembership.tenant_id == tenant_id,
                TenantMembership.active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def count_active(self, principal_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(TenantMembership)
            .where(
                TenantMembership.principal_id == principal_id,
                TenantMembership.active.is_(True),
            )
        )
        return result.scalar() or 0

    async def list_active(
        self, principal_id: uuid.UUID, limit: int, offset: int
    ) -> list[TenantMembership]:
        result = await self.db.execute(
            select(TenantMembership)
            .where(
                TenantMembership.principal_id == principal_id,
                TenantMembership.active.is_(True),
            )
            .order_by(TenantMembership.created_at.desc(), TenantMembership.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def add(self, membership: TenantMembership) -> TenantMembership:
        self.db.add(membership)
        await self.db.flush()
        return membership

    async def save(self, membership: TenantMembership) -> TenantMembership:
        await self.db.flush()
        return membership

    async def delete(self, membership: TenantMembership) -> None:
        await self.db.delete(membership)
        await self.db.flush()

    async def delete_by_principal(self, principal_id: uuid.UUID) -> int:
        result = await self.db.execute(
            delete(TenantMembership).where(TenantMembership.principal_id == principal_id)
        )
        return result.rowcount


class ApprovalRequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, request: ApprovalRequest) -> ApprovalRequest:
        self.db.add(request)
        await self.db.flush()
        return request

    async def get(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        result = await self.db.execute(
            select(ApprovalRequest).where(ApprovalRequest.id == request_id)
        )
        return result.scalar_one_or_none()

    async def reload(self, request_id: uuid.UUID) -> ApprovalRequest | None:
        """Re-read the row, overwriting any stale copy held by the session."""
        result = await self.db.execute(
            select(ApprovalRequest)
            .where(ApprovalRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(
        self,
        tenant_id: uuid.UUID,
        status: ApprovalStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ApprovalRequest], int]:
        query = select(ApprovalRequest).where(ApprovalRequest.tenant_id == tenant_id)
        count_query = (
            select(func.count())
            .select_from(ApprovalRequest)
            .where(ApprovalRequest.tenant_id == tenant_id)
        )
        if status is not None:
            query = query.where(ApprovalRequest.status == status)
            count_query = count_query.where(ApprovalRequest.status == status)

        total_result = await self.db.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(ApprovalRequest.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def transition_if_pending(
        self,
        request_id: uuid.UUID,
        status: ApprovalStatus,
        resolved_by: uuid.UUID | None,
        resolved_at: datetime,
        note: str | None = None,
    ) -> bool:
        """Compare-and-swap on status. Returns False if the row was no longer PENDING."""
        result = await self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.id == request_id,
                ApprovalRequest.status == ApprovalStatus.PENDING,
            )
            .values(
                status=status,
                resolved_by=resolved_by,
                resolved_at=resolved_at,
                resolution_note=note,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def reject_pending_older_than(
        self, cutoff: datetime, resolved_at: datetime, note: str
    ) -> int:
        result = await self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.status == ApprovalStatus.PENDING,
                ApprovalRequest.created_at < cutoff,
            )
            .values(
                status=ApprovalStatus.REJECTED,
                resolved_at=resolved_at,
                resolution_note=note,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def reject_pending_by_requester(
        self, principal_id: uuid.UUID, resolved_at: datetime, note: str
    ) -> int:
        result = await self.db.execute(
            update(ApprovalRequest)
            .where(
                ApprovalRequest.status == ApprovalStatus.PENDING,
                ApprovalRequest.requested_by == principal_id,
            )
            .values(
                status=ApprovalStatus.REJECTED,
                resolved_at=resolved_at,
                resolution_note=note,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
