"""Shared response envelopes: structured errors and the pending-approval body."""

import uuid

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    """Structured error body returned inside every error response."""

    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: ErrorBody


class ApprovalPendingBody(BaseModel):
    """Returned with HTTP 202 when an operation was escalated instead of performed."""

    status: str = "PENDING_APPROVAL"
    approval_request_id: uuid.UUID = Field(alias="approvalRequestId")
    message: str
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


# OpenAPI ``responses=`` block for endpoints behind the authorization gate
AUTHORIZATION_RESPONSES: dict = {
    202: {"model": ApprovalPendingBody, "description": "Escalated for approval; not performed"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Not authorized"},
}
