"""Value types for authorization: principals, policy wire models and verdicts."""

from __future__ import annotations

import enum
import hashlib
import json
import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.tenant_membership import TenantMembership


@dataclass(frozen=True)
class Principal:
    """The authenticated caller. Immutable for the lifetime of a request."""

    id: uuid.UUID
    email: str
    global_roles: frozenset[str] = frozenset()
    unrestricted_access: bool = False


@dataclass(frozen=True)
class RequestContext:
    """Everything the gate needs to know about one protected operation."""

    principal: Principal
    target_tenant: uuid.UUID | None
    action: str
    tenant_claim: uuid.UUID | None = None
    resource: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Tenant access
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TenantAccess:
    """Outcome of checking one principal against one tenant."""

    granted: bool
    unrestricted: bool
    roles: frozenset[str]
    reason: str

    @classmethod
    def denied(cls, reason: str) -> TenantAccess:
        return cls(granted=False, unrestricted=False, roles=frozenset(), reason=reason)

    @classmethod
    def member(cls, roles: list[str]) -> TenantAccess:
        return cls(
            granted=True,
            unrestricted=False,
            roles=frozenset(roles),
            reason="Access granted via tenant membership",
        )

    @classmethod
    def platform(cls, global_roles: list[str]) -> TenantAccess:
        return cls(
            granted=True,
            unrestricted=True,
            roles=frozenset(global_roles),
            reason="Unrestricted platform access",
        )

    def to_cache(self) -> dict:
        return {
            "granted": self.granted,
            "unrestricted": self.unrestricted,
            "roles": sorted(self.roles),
            "reason": self.reason,
        }

    @classmethod
    def from_cache(cls, data: dict) -> TenantAccess:
        return cls(
            granted=bool(data["granted"]),
            unrestricted=bool(data["unrestricted"]),
            roles=frozenset(data.get("roles", [])),
            reason=data.get("reason", ""),
        )


@dataclass(frozen=True)
class UnrestrictedAccess:
    reason: str


@dataclass(frozen=True)
class LimitedAccess:
    total_count: int
    memberships: list[TenantMembership]


TenantAccessSummary = UnrestrictedAccess | LimitedAccess


# ---------------------------------------------------------------------------
# Policy engine wire models
# ---------------------------------------------------------------------------


class PolicyQuery(BaseModel):
    """Input document sent to the policy engine."""

    model_config = ConfigDict(frozen=True)

    principal_roles: list[str]
    tenant_claim: uuid.UUID | None = None
    target_tenant: uuid.UUID
    action: str
    resource: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict:
        return {"input": self.model_dump(mode="json")}

    def cache_key(self) -> str:
        """Stable digest of the query, used to key cached decisions."""
        canonical = json.dumps(self.model_dump(mode="json"), sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PolicyDecision(BaseModel):
    """Structured decision returned by the policy engine.

    A missing ``tenant_is_valid`` means the policy did not opt into tenant
    validation and the tenant is treated as valid. When ``allow`` is false,
    ``requires_approval`` is forced to false.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    allow: bool = False
    requires_approval: bool = Field(default=False, alias="requer_aprovacao")
    required_approver_role: str | None = Field(default=None, alias="aprovador_requerido")
    tenant_is_valid: bool | None = None

    @field_validator("allow", "requires_approval", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @model_validator(mode="after")
    def _deny_dominates(self) -> PolicyDecision:
        if not self.allow:
            self.requires_approval = False
        return self

    @property
    def tenant_valid(self) -> bool:
        return self.tenant_is_valid is not False

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------


class DenyReason(str, enum.Enum):
    TENANT_NOT_ACCESSIBLE = "tenant-not-accessible"
    POLICY_UNAVAILABLE = "policy-unavailable"
    TENANT_INVALID = "tenant-invalid"
    POLICY_DENIED = "policy-denied"


@dataclass(frozen=True)
class Permit:
    kind: ClassVar[str] = "PERMIT"


@dataclass(frozen=True)
class Deny:
    reason: DenyReason
    kind: ClassVar[str] = "DENY"


@dataclass(frozen=True)
class PendingApproval:
    approval_request_id: uuid.UUID
    kind: ClassVar[str] = "PENDING_APPROVAL"


Verdict = Permit | Deny | PendingApproval
