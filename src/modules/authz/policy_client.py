"""Client for the external policy engine (Open Policy Agent data API)."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from src.config import settings
from src.exceptions import PolicyUnavailableException
from src.modules.authz.cache import AuthzCache
from src.modules.authz.schemas import PolicyDecision, PolicyQuery

logger = logging.getLogger(__name__)


class PolicyDecisionClient:
    """Sends a PolicyQuery to the engine and returns its structured decision.

    Any transport failure, timeout, non-2xx status or malformed payload raises
    PolicyUnavailableException. The gate turns that into a deny. No retries
    are attempted here; the call is bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        base_url: str | None = None,
        decision_path: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        cache: AuthzCache | None = None,
    ) -> None:
        self.base_url = base_url or settings.policy_engine_url
        self.decision_path = decision_path or settings.policy_decision_path
        self.timeout = timeout if timeout is not None else settings.policy_timeout_seconds
        self._client = http_client
        self._cache = cache

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def evaluate(self, query: PolicyQuery) -> PolicyDecision:
        digest = query.cache_key() if self._cache is not None else None
        if digest is not None:
            cached = await self._cache.get_policy_decision(digest)
            if cached is not None:
                logger.debug("Policy decision cache hit: action=%s", query.action)
                return PolicyDecision.model_validate(cached)

        decision = await self._request_decision(query)
        logger.info(
            "Policy decision: action=%s tenant=%s allow=%s requer_aprovacao=%s aprovador=%s tenant_is_valid=%s",
            query.action,
            query.target_tenant,
            decision.allow,
            decision.requires_approval,
            decision.required_approver_role,
            decision.tenant_is_valid,
        )

        if digest is not None:
            await self._cache.set_policy_decision(digest, decision.to_wire())
        return decision

    async def _request_decision(self, query: PolicyQuery) -> PolicyDecision:
        client = await self._get_client()
        try:
            response = await client.post(self.decision_path, json=query.to_wire())
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            logger.warning(
                "Policy engine timed out after %.1fs: action=%s", self.timeout, query.action
            )
            raise PolicyUnavailableException() from exc
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Policy engine returned %d: action=%s",
                exc.response.status_code,
                query.action,
            )
            raise PolicyUnavailableException() from exc
        except httpx.RequestError as exc:
            logger.error("Policy engine unreachable: action=%s error=%s", query.action, exc)
            raise PolicyUnavailableException() from exc
        except ValueError as exc:
            logger.error("Policy engine returned a non-JSON body: action=%s", query.action)
            raise PolicyUnavailableException() from exc

        return self.parse_decision(payload)

    @staticmethod
    def parse_decision(payload: object) -> PolicyDecision:
        """Unwrap ``{"result": ...}``. A boolean result is a plain allow/deny rule."""
        if not isinstance(payload, dict) or payload.get("result") is None:
            logger.warning("Policy engine returned no result (undefined decision)")
            raise PolicyUnavailableException()

        result = payload["result"]
        if isinstance(result, bool):
            return PolicyDecision(allow=result)
        if not isinstance(result, dict):
            logger.warning("Policy engine result has unexpected type %s", type(result).__name__)
            raise PolicyUnavailableException()

        try:
            return PolicyDecision.model_validate(result)
        except ValidationError as exc:
            logger.warning("Policy engine result failed validation: %s", exc.errors())
            raise PolicyUnavailableException() from exc

    async def health_check(self) -> bool:
        """Return True if the policy engine answers its health endpoint."""
        try:
            client = await self._get_client()
            response = await client.get(settings.policy_health_path)
            return response.status_code == 200
        except httpx.HTTPError:
            logger.exception("Policy engine health check failed")
            return False
