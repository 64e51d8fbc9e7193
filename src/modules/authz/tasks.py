"""Celery tasks for approval request housekeeping."""

from __future__ import annotations

import asyncio
import logging

from celery_app import celery
from src.database.engine import async_session
from src.modules.authz.approval_service import ApprovalWorkflowTracker
from src.modules.authz.repositories import (
    ApprovalRequestRepository,
    GlobalRoleRepository,
    MembershipRepository,
)
from src.modules.authz.tenant_access import TenantAccessResolver

logger = logging.getLogger(__name__)


async def _expire_stale_approvals_async(ttl_hours: int | None = None) -> dict:
    """Reject PENDING approval requests older than the configured TTL."""
    stats = {"expired": 0}

    async with async_session() as session:
        resolver = TenantAccessResolver(GlobalRoleRepository(session), MembershipRepository(session))
        tracker = ApprovalWorkflowTracker(ApprovalRequestRepository(session), resolver)
        stats["expired"] = await tracker.expire_stale(ttl_hours)
        await session.commit()

    return stats


@celery.task(name="src.modules.authz.tasks.expire_stale_approvals")
def expire_stale_approvals(ttl_hours: int | None = None):
    """Expire approval requests nobody resolved in time."""
    stats = asyncio.run(_expire_stale_approvals_async(ttl_hours))
    logger.info("expire_stale_approvals complete: %s", stats)
    return stats
