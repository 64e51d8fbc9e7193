"""JWT authentication dependency for FastAPI.

Validates Bearer tokens from the Authorization header and builds the
Principal. Token roles are carried as global roles; unrestricted access is
never taken from the token, only from the stored global grant.
"""

import logging
import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.modules.authz.schemas import Principal

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


def principal_from_claims(payload: dict) -> tuple[Principal, uuid.UUID | None]:
    """Build the Principal and the optional tenant claim from decoded claims."""
    try:
        roles = payload.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        principal = Principal(
            id=uuid.UUID(payload["sub"]),
            email=payload.get("email", ""),
            global_roles=frozenset(str(role).upper() for role in roles),
        )
        raw_tenant = payload.get("tenant_id")
        tenant_claim = uuid.UUID(raw_tenant) if raw_tenant else None
    except (KeyError, ValueError, TypeError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc
    return principal, tenant_claim


async def get_current_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> Principal:
    """FastAPI dependency that extracts and validates the caller from the JWT.

    Stores the principal and the token's tenant claim on request.state.
    """
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)
    principal, tenant_claim = principal_from_claims(payload)

    request.state.principal = principal
    request.state.tenant_claim = tenant_claim
    return principal


async def get_optional_principal(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> Principal | None:
    """Like get_current_principal but returns None for unauthenticated requests."""
    if credentials is None:
        return None

    try:
        return await get_current_principal(request, credentials)
    except UnauthorizedException:
        return None
