"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations

import uuid


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ConflictException(AppException):
    code = "CONFLICT"
    status_code = 409


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ValidationException(AppException):
    code = "VALIDATION_ERROR"
    status_code = 422


class RateLimitException(AppException):
    code = "RATE_LIMITED"
    status_code = 429


# ---------------------------------------------------------------------------
# Authorization failures
# ---------------------------------------------------------------------------


class NotAuthorizedException(ForbiddenException):
    """Opaque authorization failure.

    Every subclass renders the same code and message to the client. The
    ``reason_code`` is meant for logs only and is never put in a response.
    """

    code = "NOT_AUTHORIZED"
    reason_code: str = "not-authorized"

    def __init__(self, message: str = "Not authorized to perform this operation.") -> None:
        super().__init__(message)


class TenantNotAccessibleException(NotAuthorizedException):
    reason_code = "tenant-not-accessible"


class PolicyUnavailableException(NotAuthorizedException):
    reason_code = "policy-unavailable"


class TenantInvalidException(NotAuthorizedException):
    reason_code = "tenant-invalid"


class PolicyDeniedException(NotAuthorizedException):
    reason_code = "policy-denied"


class ConfigurationException(AppException):
    code = "CONFIGURATION_ERROR"
    status_code = 500


# ---------------------------------------------------------------------------
# Approval workflow misuse
# ---------------------------------------------------------------------------


class AlreadyResolvedException(ConflictException):
    code = "ALREADY_RESOLVED"


class ForbiddenApproverException(ForbiddenException):
    code = "FORBIDDEN_APPROVER"


class ApprovalPendingException(AppException):
    """The operation was escalated; it was not performed.

    Rendered as HTTP 202 carrying the approval request id.
    """

    code = "APPROVAL_PENDING"
    status_code = 202

    def __init__(self, approval_request_id: uuid.UUID) -> None:
        self.approval_request_id = approval_request_id
        super().__init__("Operation requires approval before it can be performed.")
