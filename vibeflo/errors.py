"""Exceptions raised by the gateway client and the resource APIs.

Callers branch on the class: ``InvalidIdentifierError`` means the request was
never sent, ``NetworkError`` means no response arrived, and ``ApiError``
carries the status code and decoded body of a rejected request.
"""

from typing import Any


class GatewayError(Exception):
    """Base class for every failure surfaced by the gateway."""

    code: str | None = None


class NetworkError(GatewayError):
    """The request was sent but no response was received."""

    def __init__(self, message: str = "Network Error", url: str | None = None):
        super().__init__(message)
        self.url = url


class RequestTimeoutError(NetworkError):
    code = "ECONNABORTED"


class ApiError(GatewayError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Any = None, url: str | None = None):
        self.status_code = status_code
        self.body = body
        self.url = url
        if isinstance(body, dict):
            self.code = body.get("code")
        super().__init__(_message_from_body(status_code, body))

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class InvalidIdentifierError(GatewayError, ValueError):
    """A path identifier failed local validation; nothing was sent."""

    def __init__(self, value: Any, resource: str = "resource"):
        super().__init__("Invalid identifier")
        self.value = value
        self.resource = resource


def _message_from_body(status_code: int, body: Any) -> str:
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"Request failed with status code {status_code}"
