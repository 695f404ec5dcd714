import logging
import re
from typing import Any

from vibeflo.errors import InvalidIdentifierError
from vibeflo.services.gateway import GatewayClient

logger = logging.getLogger(__name__)

_NUMERIC_ID = re.compile(r"^\d+$")


def require_numeric_id(value: Any, resource: str = "resource") -> int:
    """Validate a path identifier before anything is sent.

    Accepts ints and strings of digits; everything else (including ``bool``
    and negative numbers) raises ``InvalidIdentifierError``.
    """
    if isinstance(value, bool):
        raise InvalidIdentifierError(value, resource)
    if isinstance(value, int):
        if value < 0:
            raise InvalidIdentifierError(value, resource)
        return value
    if isinstance(value, str) and _NUMERIC_ID.match(value.strip()):
        return int(value.strip())
    logger.warning("Rejected non-numeric %s id %r", resource, value)
    raise InvalidIdentifierError(value, resource)


class ResourceAPI:
    """Base for the per-resource wrappers around the gateway."""

    def __init__(self, gateway: GatewayClient):
        self.gateway = gateway

    async def _fetch_list(self, path: str) -> list:
        """GET a collection through the gateway's retry policy."""
        data = await self.gateway.retry_policy.run(
            lambda: self.gateway.get(path), label=f"GET {path}"
        )
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Expected a list from %s, got %s", path, type(data).__name__)
            return []
        return data
