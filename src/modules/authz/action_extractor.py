"""Derive a ``resource:action`` name from an HTTP method and path.

    GET    /api/v1/locacoes                  -> locacao:list
    GET    /api/v1/locacoes/{id}             -> locacao:view
    POST   /api/v1/locacoes                  -> locacao:create
    PUT    /api/v1/locacoes/{id}             -> locacao:update
    DELETE /api/v1/jetskis/{id}              -> jetski:delete
    POST   /api/v1/locacoes/{id}/checkin     -> locacao:checkin
    POST   /api/v1/tenants/{id}/members      -> member:create
"""

import logging
import re

from src.modules.authz.constants import KNOWN_SUB_ACTIONS, PUBLIC_ACTION_PREFIXES

logger = logging.getLogger(__name__)

UNKNOWN_ACTION = "unknown:unknown"

_RESOURCE_RE = re.compile(r"^(?:/api)?/v1/([^/]+)")
_NESTED_RESOURCE_RE = re.compile(r"/tenants/[^/]+/([^/]+)")
_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)
_ID_SEGMENT_RE = re.compile(rf"^(?:{_UUID_RE.pattern}|\d+|\{{[^}}]+\}})$")

_METHOD_ACTIONS = {
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}

# (plural suffix, singular suffix), first match wins
_SUFFIX_RULES = (
    ("oes", "ao"),
    ("aes", "ao"),
    ("ais", "al"),
    ("eis", "el"),
    ("ens", "em"),
    ("ores", "or"),
    ("eres", "er"),
    ("ires", "ir"),
)


def _singularize_word(word: str) -> str:
    for plural, singular in _SUFFIX_RULES:
        if word.endswith(plural):
            return word[: -len(plural)] + singular
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def singularize(resource: str) -> str:
    """Singularize a (possibly hyphenated) Portuguese or English resource name."""
    return "-".join(_singularize_word(part) for part in resource.split("-"))


def _strip_query(path: str) -> str:
    return path.split("?", 1)[0].rstrip("/") or "/"


def _extract_resource(path: str) -> str | None:
    nested = _NESTED_RESOURCE_RE.search(path)
    if nested:
        return singularize(nested.group(1))
    match = _RESOURCE_RE.match(path)
    if match:
        return singularize(match.group(1))
    return None


def extract_action(method: str, path: str) -> str:
    """Map an HTTP request to its action name, or ``unknown:unknown``."""
    method = method.upper()
    path = _strip_query(path)

    resource = _extract_resource(path)
    if resource is None:
        logger.warning("Could not extract resource from path %s", path)
        return UNKNOWN_ACTION

    last_segment = path.rsplit("/", 1)[-1]
    if last_segment in KNOWN_SUB_ACTIONS:
        return f"{resource}:{last_segment}"

    if method == "GET":
        verb = "view" if _ID_SEGMENT_RE.match(last_segment) else "list"
    else:
        verb = _METHOD_ACTIONS.get(method, method.lower())

    action = f"{resource}:{verb}"
    logger.debug("Extracted action %s from %s %s", action, method, path)
    return action


def extract_resource_id(path: str, path_params: dict | None = None) -> str | None:
    """Resource id from route params (``id``, ``locacao_id``, ``jetski_id``) or the first UUID in the path."""
    params = path_params or {}
    for key in ("id", "locacao_id", "jetski_id"):
        if params.get(key):
            return str(params[key])
    match = _UUID_RE.search(path)
    return match.group(0) if match else None


def is_public_action(action: str) -> bool:
    return action.startswith(PUBLIC_ACTION_PREFIXES)
