import enum


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TenantAccessType(str, enum.Enum):
    LIMITED = "LIMITED"
    UNRESTRICTED = "UNRESTRICTED"
