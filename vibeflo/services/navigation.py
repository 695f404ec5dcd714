import logging
from typing import Protocol

logger = logging.getLogger(__name__)

LOGIN_EXPIRED_URL = "/login?expired=true"

AUTH_PATHS = (
    "/login",
    "/register",
    "/forgot-password",
    "/reset-password",
    "/verify-email",
    "/resend-verification",
    "/oauth",
)


class Navigator(Protocol):
    @property
    def current_path(self) -> str: ...

    def redirect(self, url: str) -> None: ...


class InMemoryNavigator:
    """Navigator for headless front ends: tracks location and history."""

    def __init__(self, current_path: str = "/"):
        self._current_path = current_path
        self.history: list[str] = []

    @property
    def current_path(self) -> str:
        return self._current_path

    def redirect(self, url: str) -> None:
        logger.info("Redirecting from %s to %s", self._current_path, url)
        self.history.append(url)
        self._current_path = url


def is_auth_page(path: str) -> bool:
    path = path.split("?", 1)[0]
    return any(path == p or path.startswith(p + "/") for p in AUTH_PATHS)
