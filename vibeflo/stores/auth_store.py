import logging
from collections.abc import Awaitable, Callable

from vibeflo.api.auth import AuthAPI
from vibeflo.errors import ApiError, GatewayError
from vibeflo.services.gateway import GatewayClient
from vibeflo.services.token_store import TOKEN_KEY

logger = logging.getLogger(__name__)

AuthListener = Callable[[bool], Awaitable[None]]


class AuthenticationFailed(Exception):
    """Login or registration succeeded at the HTTP level but gave no token."""


class AuthStore:
    """Current user and credential lifecycle.

    Listeners are awaited with the new ``is_authenticated`` value whenever it
    flips, in registration order.
    """

    def __init__(self, gateway: GatewayClient, auth_api: AuthAPI | None = None):
        self.gateway = gateway
        self.auth_api = auth_api or AuthAPI(gateway)
        self.user: dict | None = None
        self.loading = True
        self._listeners: list[AuthListener] = []

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def add_listener(self, listener: AuthListener) -> None:
        self._listeners.append(listener)

    async def _set_user(self, user: dict | None) -> None:
        was_authenticated = self.is_authenticated
        self.user = user
        if was_authenticated != self.is_authenticated:
            for listener in list(self._listeners):
                await listener(self.is_authenticated)

    async def initialize(self) -> None:
        """Validate a persisted token by fetching the current user."""
        token = self.gateway.token_store.get(TOKEN_KEY)
        if not token:
            logger.info("No authentication token found")
            self.loading = False
            await self._set_user(None)
            return

        self.gateway.set_token(token)
        try:
            user = await self.auth_api.get_current_user()
        except ApiError as exc:
            if exc.is_unauthorized:
                logger.info("Stored token expired or invalid")
            else:
                logger.warning("Token validation failed with status %d", exc.status_code)
            self.gateway.clear_token()
            user = None
        except GatewayError as exc:
            logger.warning("Token validation failed: %s", exc)
            self.gateway.clear_token()
            user = None

        self.loading = False
        await self._set_user(user if isinstance(user, dict) else None)
        if self.user:
            logger.info("User authenticated on startup: %s", self.user.get("username"))

    async def login(self, login: str, password: str) -> dict:
        response = await self.auth_api.login(login, password)
        return await self._accept(response, "Login")

    async def register(self, name: str, username: str, email: str, password: str) -> dict:
        response = await self.auth_api.register(name, username, email, password)
        return await self._accept(response, "Registration")

    async def _accept(self, response, action: str) -> dict:
        token = response.get("token") if isinstance(response, dict) else None
        if not token:
            raise AuthenticationFailed(f"{action} successful but no token received")
        self.gateway.set_token(token)
        await self._set_user(response.get("user") or {})
        logger.info("%s succeeded for %s", action, (self.user or {}).get("username"))
        return response

    async def handle_session_expired(self) -> None:
        """The gateway dropped the credentials after a 401; drop the user with them."""
        if self.user is not None:
            logger.info("Session expired, signing out %s", self.user.get("username"))
        self.loading = False
        await self._set_user(None)

    async def logout(self) -> None:
        self.gateway.clear_token()
        await self._set_user(None)
        logger.info("User logged out")
