"""Redis cache for tenant-access resolutions and policy decisions."""

import json
import logging
import uuid
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.config import settings
from src.modules.authz.constants import CACHE_PREFIX_POLICY, CACHE_PREFIX_TENANT_ACCESS

logger = logging.getLogger(__name__)


class AuthzCache:
    """Redis-backed cache with one namespace per kind of authorization result.

    Tenant-access entries are keyed "tenant-access:{principal}:{tenant}" and
    policy decisions "policy-decision:{query digest}". The two namespaces have
    independent TTLs and are never invalidated together.

    A Redis failure is logged and treated as a cache miss, so an unavailable
    cache never changes an authorization outcome.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self._redis = redis_client

    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(settings.redis_url, decode_responses=True)
        return self._redis

    async def get(self, key: str) -> Any | None:
        try:
            client = await self._get_redis()
            raw = await client.get(key)
        except RedisError as exc:
            logger.warning("Authz cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        if ttl <= 0:
            return
        try:
            client = await self._get_redis()
            await client.set(key, json.dumps(value, default=str), ex=ttl)
        except RedisError as exc:
            logger.warning("Authz cache write failed for %s: %s", key, exc)

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching ``pattern``. Returns the number deleted."""
        deleted_count = 0
        try:
            client = await self._get_redis()
            async for key in client.scan_iter(match=pattern, count=100):
                deleted_count += await client.delete(key)
        except RedisError as exc:
            logger.warning("Authz cache invalidation failed for %s: %s", pattern, exc)
        return deleted_count

    # ------------------------------------------------------------------
    # Tenant access
    # ------------------------------------------------------------------

    @staticmethod
    def tenant_access_key(principal_id: uuid.UUID, tenant_id: uuid.UUID) -> str:
        return f"{CACHE_PREFIX_TENANT_ACCESS}:{principal_id}:{tenant_id}"

    async def get_tenant_access(self, principal_id: uuid.UUID, tenant_id: uuid.UUID) -> dict | None:
        return await self.get(self.tenant_access_key(principal_id, tenant_id))

    async def set_tenant_access(
        self, principal_id: uuid.UUID, tenant_id: uuid.UUID, value: dict
    ) -> None:
        await self.set(
            self.tenant_access_key(principal_id, tenant_id),
            value,
            ttl=settings.tenant_access_cache_ttl_seconds,
        )

    async def invalidate_principal(self, principal_id: uuid.UUID) -> int:
        return await self.delete_matching(f"{CACHE_PREFIX_TENANT_ACCESS}:{principal_id}:*")

    # ------------------------------------------------------------------
    # Policy decisions
    # ------------------------------------------------------------------

    @staticmethod
    def policy_key(query_digest: str) -> str:
        return f"{CACHE_PREFIX_POLICY}:{query_digest}"

    async def get_policy_decision(self, query_digest: str) -> dict | None:
        return await self.get(self.policy_key(query_digest))

    async def set_policy_decision(self, query_digest: str, value: dict) -> None:
        await self.set(
            self.policy_key(query_digest),
            value,
            ttl=settings.policy_cache_ttl_seconds,
        )
