"""Unit tests for MembershipService."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.exceptions import ConflictException, NotFoundException, ValidationException
from src.modules.authz.membership_service import OFFBOARD_NOTE, MembershipService


def _make_membership(roles: list[str] | None = None):
    m = MagicMock()
    m.id = uuid.uuid4()
    m.principal_id = uuid.uuid4()
    m.tenant_id = uuid.uuid4()
    m.roles = roles or ["OPERATOR"]
    m.active = True
    return m


def _recorder(calls: list[str], name: str, value=None):
    async def _call(*args, **kwargs):
        calls.append(name)
        return value

    return _call


def _service(existing=None):
    db = AsyncMock()
    memberships = AsyncMock()
    memberships.find.return_value = existing
    global_roles = AsyncMock()
    approvals = AsyncMock()
    resolver = AsyncMock()
    svc = MembershipService(db, memberships, global_roles, approvals, resolver)
    return svc, memberships, global_roles, approvals, resolver, db


@pytest.mark.asyncio
async def test_add_member_creates_active_membership_and_invalidates_cache():
    svc, memberships, _, _, resolver, _ = _service(existing=None)
    tenant_id, principal_id = uuid.uuid4(), uuid.uuid4()

    membership = await svc.add_member(tenant_id, principal_id, ["operator", " GERENTE "])

    assert membership.tenant_id == tenant_id
    assert membership.principal_id == principal_id
    assert membership.roles == ["GERENTE", "OPERATOR"]
    assert membership.active is True
    memberships.add.assert_awaited_once_with(membership)
    resolver.invalidate.assert_awaited_once_with(principal_id)


@pytest.mark.asyncio
async def test_add_member_rejects_empty_roles():
    svc, memberships, _, _, _, _ = _service()

    with pytest.raises(ValidationException):
        await svc.add_member(uuid.uuid4(), uuid.uuid4(), ["  "])
    memberships.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_member_rejects_duplicate_pair():
    svc, memberships, _, _, _, _ = _service(existing=_make_membership())

    with pytest.raises(ConflictException):
        await svc.add_member(uuid.uuid4(), uuid.uuid4(), ["OPERATOR"])
    memberships.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_roles_replaces_role_set():
    existing = _make_membership(["OPERATOR"])
    svc, memberships, _, _, resolver, _ = _service(existing=existing)

    updated = await svc.update_roles(existing.tenant_id, existing.principal_id, ["GERENTE"])

    assert updated.roles == ["GERENTE"]
    memberships.save.assert_awaited_once_with(existing)
    resolver.invalidate.assert_awaited_once_with(existing.principal_id)


@pytest.mark.asyncio
async def test_update_roles_cannot_empty_the_set():
    existing = _make_membership(["OPERATOR"])
    svc, memberships, _, _, _, _ = _service(existing=existing)

    with pytest.raises(ValidationException):
        await svc.update_roles(existing.tenant_id, existing.principal_id, [])
    assert existing.roles == ["OPERATOR"]
    memberships.save.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_roles_unknown_membership():
    svc, _, _, _, _, _ = _service(existing=None)

    with pytest.raises(NotFoundException):
        await svc.update_roles(uuid.uuid4(), uuid.uuid4(), ["GERENTE"])


@pytest.mark.asyncio
async def test_remove_member_deletes_row():
    existing = _make_membership()
    svc, memberships, _, _, resolver, _ = _service(existing=existing)

    await svc.remove_member(existing.tenant_id, existing.principal_id)

    memberships.delete.assert_awaited_once_with(existing)
    resolver.invalidate.assert_awaited_once_with(existing.principal_id)


@pytest.mark.asyncio
async def test_remove_member_unknown_membership():
    svc, memberships, _, _, _, _ = _service(existing=None)

    with pytest.raises(NotFoundException):
        await svc.remove_member(uuid.uuid4(), uuid.uuid4())
    memberships.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_offboard_runs_steps_in_order():
    svc, memberships, global_roles, approvals, resolver, db = _service()
    principal_id = uuid.uuid4()
    calls: list[str] = []
    approvals.reject_pending_by_requester.side_effect = _recorder(calls, "approvals", 2)
    memberships.delete_by_principal.side_effect = _recorder(calls, "memberships", 3)
    global_roles.delete.side_effect = _recorder(calls, "global_grant", 1)
    db.commit.side_effect = _recorder(calls, "commit")
    resolver.invalidate.side_effect = _recorder(calls, "cache")

    stats = await svc.offboard_principal(principal_id)

    assert calls == ["approvals", "memberships", "global_grant", "commit", "cache"]
    assert stats == {"approvals_rejected": 2, "memberships_deleted": 3, "global_grant_deleted": 1}
    assert approvals.reject_pending_by_requester.await_args.kwargs["note"] == OFFBOARD_NOTE


class TestCommitBeforeInvalidate:
    """The cached resolution is dropped only after the change is committed."""

    @staticmethod
    def _track(db, resolver) -> list[str]:
        calls: list[str] = []
        db.commit.side_effect = _recorder(calls, "commit")
        resolver.invalidate.side_effect = _recorder(calls, "invalidate")
        return calls

    @pytest.mark.asyncio
    async def test_add_member(self):
        svc, _, _, _, resolver, db = _service(existing=None)
        calls = self._track(db, resolver)

        await svc.add_member(uuid.uuid4(), uuid.uuid4(), ["OPERATOR"])

        assert calls == ["commit", "invalidate"]

    @pytest.mark.asyncio
    async def test_update_roles(self):
        existing = _make_membership()
        svc, _, _, _, resolver, db = _service(existing=existing)
        calls = self._track(db, resolver)

        await svc.update_roles(existing.tenant_id, existing.principal_id, ["GERENTE"])

        assert calls == ["commit", "invalidate"]

    @pytest.mark.asyncio
    async def test_remove_member(self):
        existing = _make_membership()
        svc, _, _, _, resolver, db = _service(existing=existing)
        calls = self._track(db, resolver)

        await svc.remove_member(existing.tenant_id, existing.principal_id)

        assert calls == ["commit", "invalidate"]

    @pytest.mark.asyncio
    async def test_failed_change_is_neither_committed_nor_invalidated(self):
        svc, _, _, _, resolver, db = _service(existing=None)

        with pytest.raises(NotFoundException):
            await svc.remove_member(uuid.uuid4(), uuid.uuid4())

        db.commit.assert_not_awaited()
        resolver.invalidate.assert_not_awaited()
