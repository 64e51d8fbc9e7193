"""Authorization module constants."""

# Sentinel returned by count_accessible_tenants for unrestricted principals
UNRESTRICTED_COUNT = -1

UNRESTRICTED_MESSAGE = "Full platform access - use tenant search"

# Request headers
TENANT_HEADER = "X-Tenant-Id"

# Cache namespaces
CACHE_PREFIX_TENANT_ACCESS = "tenant-access"
CACHE_PREFIX_POLICY = "policy-decision"

# Wire field names of the policy engine result
WIRE_ALLOW = "allow"
WIRE_REQUIRES_APPROVAL = "requer_aprovacao"
WIRE_REQUIRED_APPROVER = "aprovador_requerido"
WIRE_TENANT_IS_VALID = "tenant_is_valid"

# Note stamped on requests rejected by the expiry sweep
EXPIRED_NOTE = "expired"

# Routes excluded from tenant context extraction and authorization
EXCLUDED_ROUTES = [
    "/health",
    "/api/docs",
    "/api/openapi.json",
    "/api/redoc",
]

# Action prefixes that never go through the policy engine
PUBLIC_ACTION_PREFIXES = ("health:", "metrics:", "actuator:")

# Known trailing path segments that name an action on a resource
KNOWN_SUB_ACTIONS = (
    "checkin",
    "checkout",
    "desconto",
    "aprovar",
    "fechar",
    "cancelar",
    "registrar",
    "upload",
    "calcular",
    "diario",
    "mensal",
    "invite",
    "activate",
    "accept-terms",
    "confirmar-sinal",
    "confirmar",
    "alocar-jetski",
    "consolidar",
    "reabrir",
    "approve",
    "reject",
)
