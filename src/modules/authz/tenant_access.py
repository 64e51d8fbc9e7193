"""Tenant access resolution: which tenants a principal may touch.

Access is either unrestricted (a global grant covering every tenant) or
limited to the principal's active memberships. The unrestricted check always
runs first and never touches the membership table, so its cost does not
depend on how many tenants exist. Limited sets are only ever read through a
COUNT query and bounded pages.
"""

import logging
import uuid

from src.config import settings
from src.models.tenant_membership import TenantMembership
from src.modules.authz.cache import AuthzCache
from src.modules.authz.constants import UNRESTRICTED_COUNT
from src.modules.authz.repositories import GlobalRoleRepository, MembershipRepository
from src.modules.authz.schemas import (
    LimitedAccess,
    Principal,
    TenantAccess,
    TenantAccessSummary,
    UnrestrictedAccess,
)

logger = logging.getLogger(__name__)


class TenantAccessResolver:
    def __init__(
        self,
        global_roles: GlobalRoleRepository,
        memberships: MembershipRepository,
        cache: AuthzCache | None = None,
    ) -> None:
        self._global_roles = global_roles
        self._memberships = memberships
        self._cache = cache

    async def _platform_roles(self, principal: Principal) -> list[str] | None:
        """Global roles if the principal has unrestricted access, otherwise None."""
        if principal.unrestricted_access:
            return sorted(principal.global_roles)
        grant = await self._global_roles.get(principal.id)
        if grant is not None and grant.unrestricted_access:
            return sorted(set(grant.roles) | principal.global_roles)
        return None

    async def is_unrestricted(self, principal: Principal) -> bool:
        return await self._platform_roles(principal) is not None

    @staticmethod
    def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
        """Apply the default page size and the server-side hard cap."""
        if limit is None or limit <= 0:
            limit = settings.tenant_page_default_size
        limit = min(limit, settings.tenant_page_max_size)
        offset = max(offset or 0, 0)
        return limit, offset

    async def count_accessible_tenants(self, principal: Principal) -> int:
        """Number of accessible tenants, or UNRESTRICTED_COUNT (-1) for global access."""
        if await self.is_unrestricted(principal):
            return UNRESTRICTED_COUNT
        return await self._memberships.count_active(principal.id)

    async def list_accessible_tenants(
        self,
        principal: Principal,
        limit: int | None = None,
        offset: int | None = 0,
    ) -> list[TenantMembership]:
        """One bounded page of active memberships.

        Must not be used for unrestricted principals; call summarize() or
        is_unrestricted() first.
        """
        limit, offset = self.clamp_page(limit, offset)
        return await self._memberships.list_active(principal.id, limit=limit, offset=offset)

    async def summarize(
        self,
        principal: Principal,
        limit: int | None = None,
        offset: int | None = 0,
    ) -> TenantAccessSummary:
        if await self.is_unrestricted(principal):
            logger.debug("Principal %s has unrestricted tenant access", principal.id)
            return UnrestrictedAccess(reason="Unrestricted platform access")

        total = await self._memberships.count_active(principal.id)
        if total == 0:
            return LimitedAccess(total_count=0, memberships=[])
        page = await self.list_accessible_tenants(principal, limit=limit, offset=offset)
        return LimitedAccess(total_count=total, memberships=page)

    async def resolve_access(
        self, principal: Principal, tenant_id: uuid.UUID, *, fresh: bool = False
    ) -> TenantAccess:
        """Decide whether ``principal`` may act within ``tenant_id``.

        ``fresh`` bypasses the cached resolution (used when resolving approvals).
        """
        if self._cache is not None and not fresh:
            cached = await self._cache.get_tenant_access(principal.id, tenant_id)
            if cached is not None:
                return TenantAccess.from_cache(cached)

        access = await self._resolve_uncached(principal, tenant_id)

        if self._cache is not None:
            await self._cache.set_tenant_access(principal.id, tenant_id, access.to_cache())
        return access

    async def _resolve_uncached(self, principal: Principal, tenant_id: uuid.UUID) -> TenantAccess:
        platform_roles = await self._platform_roles(principal)
        if platform_roles is not None:
            logger.info("Unrestricted access granted: principal=%s tenant=%s", principal.id, tenant_id)
            return TenantAccess.platform(platform_roles)

        membership = await self._memberships.find_active(principal.id, tenant_id)
        if membership is not None:
            logger.debug(
                "Access granted: principal=%s tenant=%s roles=%s",
                principal.id,
                tenant_id,
                membership.roles,
            )
            return TenantAccess.member(list(membership.roles))

        logger.warning("Tenant access denied: principal=%s tenant=%s", principal.id, tenant_id)
        return TenantAccess.denied("Principal is not a member of this tenant")

    async def invalidate(self, principal_id: uuid.UUID) -> None:
        if self._cache is not None:
            await self._cache.invalidate_principal(principal_id)
