"""Pydantic v2 schemas for authorization API endpoints (camelCase on the wire)."""

import uuid
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models.enums import ApprovalStatus, TenantAccessType
from src.modules.authz.constants import UNRESTRICTED_COUNT, UNRESTRICTED_MESSAGE


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AuthorizationCheckRequest(CamelModel):
    tenant_id: uuid.UUID | None = None
    action: str = Field(..., min_length=1, max_length=100)
    resource: dict[str, Any] = Field(default_factory=dict)


class ResolveApprovalRequest(CamelModel):
    note: str | None = Field(None, max_length=1000)


class MemberCreate(CamelModel):
    principal_id: uuid.UUID
    roles: list[str] = Field(..., min_length=1)


class MemberRolesUpdate(CamelModel):
    roles: list[str] = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TenantSummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    tenant_id: uuid.UUID
    roles: list[str]


class UnrestrictedTenantsResponse(CamelModel):
    access_type: Literal["UNRESTRICTED"] = TenantAccessType.UNRESTRICTED.value
    total_tenants: Literal[-1] = UNRESTRICTED_COUNT
    message: str = UNRESTRICTED_MESSAGE
    tenants: list[TenantSummary] = Field(default_factory=list, max_length=0)


class LimitedTenantsResponse(CamelModel):
    access_type: Literal["LIMITED"] = TenantAccessType.LIMITED.value
    total_tenants: int = Field(..., ge=0)
    tenants: list[TenantSummary]


UserTenantsResponse = Annotated[
    UnrestrictedTenantsResponse | LimitedTenantsResponse,
    Field(discriminator="access_type"),
]


class AuthorizationCheckResponse(CamelModel):
    decision: Literal["PERMIT", "DENY", "PENDING_APPROVAL"]
    approval_request_id: uuid.UUID | None = None


class ApprovalRequestResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    requested_by: uuid.UUID
    tenant_id: uuid.UUID
    action: str
    required_approver_role: str
    resource: dict[str, Any]
    status: ApprovalStatus
    resolved_by: uuid.UUID | None = None
    resolved_at: datetime | None = None
    resolution_note: str | None = None
    created_at: datetime


class ApprovalRequestListResponse(CamelModel):
    items: list[ApprovalRequestResponse]
    total: int
    limit: int
    offset: int


class MembershipResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    principal_id: uuid.UUID
    tenant_id: uuid.UUID
    roles: list[str]
    active: bool


class PolicyEngineHealthResponse(CamelModel):
    status: Literal["UP", "DOWN"]
    policy_engine_url: str
