"""FastAPI middleware that extracts the target tenant from request headers."""

import logging
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.modules.authz.constants import EXCLUDED_ROUTES, TENANT_HEADER

logger = logging.getLogger(__name__)


def parse_tenant_header(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        logger.warning("Ignoring malformed %s header: %r", TENANT_HEADER, value)
        return None


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Stores the requested tenant id in ``request.state.target_tenant``.

    Excluded routes (health, docs) pass through untouched. A missing or
    malformed header leaves ``target_tenant`` as None; the authorization
    dependency then falls back to the token's tenant claim, and denies when
    neither is present. Authentication is not performed here.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        if any(path.startswith(route) for route in EXCLUDED_ROUTES):
            return await call_next(request)

        request.state.target_tenant = parse_tenant_header(request.headers.get(TENANT_HEADER))
        return await call_next(request)
