"""Unit tests for AuthzCache (Redis mocked)."""

import json
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.modules.authz.cache import AuthzCache


def _redis(keys: list[str] | None = None):
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock(return_value=1)

    async def _scan_iter(match=None, count=None):
        for key in keys or []:
            yield key

    client.scan_iter = MagicMock(side_effect=_scan_iter)
    return client


@pytest.mark.asyncio
async def test_get_decodes_json():
    client = _redis()
    client.get.return_value = json.dumps({"granted": True})
    cache = AuthzCache(client)

    assert await cache.get("k") == {"granted": True}


@pytest.mark.asyncio
async def test_tenant_access_written_with_ttl():
    client = _redis()
    cache = AuthzCache(client)
    principal_id, tenant_id = uuid.uuid4(), uuid.uuid4()

    await cache.set_tenant_access(principal_id, tenant_id, {"granted": False})

    key = client.set.await_args.args[0]
    assert key == f"tenant-access:{principal_id}:{tenant_id}"
    assert client.set.await_args.kwargs["ex"] == 300


@pytest.mark.asyncio
async def test_policy_decision_uses_own_namespace():
    client = _redis()
    cache = AuthzCache(client)

    await cache.set_policy_decision("abc123", {"allow": True})

    assert client.set.await_args.args[0] == "policy-decision:abc123"
    assert client.set.await_args.kwargs["ex"] == 30


@pytest.mark.asyncio
async def test_zero_ttl_skips_write():
    client = _redis()
    cache = AuthzCache(client)

    await cache.set("k", {"v": 1}, ttl=0)

    client.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_failure_reads_as_miss():
    client = _redis()
    client.get.side_effect = RedisConnectionError("down")
    cache = AuthzCache(client)

    assert await cache.get_tenant_access(uuid.uuid4(), uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_redis_failure_on_write_is_swallowed():
    client = _redis()
    client.set.side_effect = RedisConnectionError("down")
    cache = AuthzCache(client)

    await cache.set_policy_decision("abc", {"allow": False})


@pytest.mark.asyncio
async def test_invalidate_principal_deletes_only_its_keys():
    principal_id = uuid.uuid4()
    keys = [f"tenant-access:{principal_id}:{uuid.uuid4()}" for _ in range(3)]
    client = _redis(keys)
    cache = AuthzCache(client)

    deleted = await cache.invalidate_principal(principal_id)

    assert deleted == 3
    assert client.scan_iter.call_args.kwargs["match"] == f"tenant-access:{principal_id}:*"
    assert [c.args[0] for c in client.delete.await_args_list] == keys
