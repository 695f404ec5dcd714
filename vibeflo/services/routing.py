import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PRODUCTION_API_URL = "https://vibeflo-api.onrender.com"
LOCAL_API_URL = "http://localhost:5001"

PRODUCTION_HOSTNAME = "vibeflo.app"
PRODUCTION_HOST_MARKERS = ("vibeflo", "render.com")

HTML_MARKERS = ("<!doctype html", "<html")


@dataclass(frozen=True)
class ApiConfig:
    """Resolved backend location plus the prefix rule that applies to it."""

    base_url: str
    production: bool

    def endpoint(self, path: str) -> str:
        return normalize_endpoint(path, self.production)


def is_production_host(hostname: str | None) -> bool:
    if not hostname:
        return False
    host = hostname.lower()
    return host == PRODUCTION_HOSTNAME or any(m in host for m in PRODUCTION_HOST_MARKERS)


def resolve_api_config(
    api_url: str | None,
    hostname: str | None,
    environment: str | None = None,
) -> ApiConfig:
    """Resolve the backend base URL from explicit inputs.

    Precedence: an explicit ``api_url`` (with any trailing ``/api`` removed),
    then the production URL for a recognised production hostname, then the
    local development default. Production routing is in effect when either
    the hostname or ``environment`` says so.
    """
    production = is_production_host(hostname) or (environment or "").lower() == "production"

    if api_url:
        base_url = _strip_api_suffix(api_url)
        logger.debug("Using configured API URL %s", base_url)
    elif is_production_host(hostname):
        base_url = PRODUCTION_API_URL
        logger.debug("Using production API URL for host %s", hostname)
    else:
        base_url = LOCAL_API_URL
        logger.debug("Using local API URL")

    return ApiConfig(base_url=base_url, production=production)


def normalize_endpoint(path: str, production: bool) -> str:
    """Return the request path with one leading slash and the ``/api`` prefix.

    Development mounts auth routes without ``/api`` so ``/auth/...`` paths are
    left alone there; production serves everything under ``/api``.
    """
    path = "/" + path.lstrip("/")

    if _has_prefix(path, "/api"):
        return path
    if not production and _has_prefix(path, "/auth"):
        return path
    return "/api" + path if path != "/" else "/api"


def is_html_document(body: object) -> bool:
    if not isinstance(body, str):
        return False
    head = body.lstrip()[:32].lower()
    return head.startswith(HTML_MARKERS)


def _has_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/") or path.startswith(prefix + "?")


def _strip_api_suffix(url: str) -> str:
    url = url.rstrip("/")
    if url.endswith("/api"):
        url = url[: -len("/api")]
    return url
