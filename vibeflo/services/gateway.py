import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from vibeflo.errors import ApiError, NetworkError, RequestTimeoutError
from vibeflo.services.navigation import LOGIN_EXPIRED_URL, InMemoryNavigator, Navigator, is_auth_page
from vibeflo.services.retry_policy import RetryPolicy
from vibeflo.services.routing import ApiConfig, is_html_document
from vibeflo.services.token_store import TOKEN_KEY, TokenStore

logger = logging.getLogger(__name__)

UnauthorizedListener = Callable[[], Awaitable[None]]


class GatewayClient:
    """Single entry point for every backend call.

    Attaches the persisted bearer token to each request, normalises endpoint
    paths for the resolved environment, reacts to 401 responses by dropping
    credentials and sending the user to the login page, and translates httpx
    failures into ``vibeflo.errors`` exceptions.
    """

    def __init__(
        self,
        api_config: ApiConfig,
        token_store: TokenStore,
        navigator: Navigator | None = None,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_config = api_config
        self.token_store = token_store
        self.navigator = navigator or InMemoryNavigator()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self._unauthorized_listeners: list[UnauthorizedListener] = []

        self._http = httpx.AsyncClient(
            base_url=api_config.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
            event_hooks={
                "request": [self._attach_token],
                "response": [self._check_unauthorized],
            },
        )

        token = token_store.get(TOKEN_KEY)
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"

    # ── Credentials ──────────────────────────────────────────────────

    @property
    def authorization_header(self) -> str | None:
        """The client's default Authorization header, if one is set."""
        return self._http.headers.get("Authorization")

    def set_token(self, token: str | None) -> None:
        if not token:
            self.clear_token()
            return
        self.token_store.set(TOKEN_KEY, token)
        self._http.headers["Authorization"] = f"Bearer {token}"

    def clear_token(self) -> None:
        self.token_store.remove(TOKEN_KEY)
        if "Authorization" in self._http.headers:
            del self._http.headers["Authorization"]

    def add_unauthorized_listener(self, listener: UnauthorizedListener) -> None:
        """Await ``listener()`` after every 401 once credentials are dropped."""
        self._unauthorized_listeners.append(listener)

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self.token_store.get(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        elif "Authorization" in request.headers:
            del request.headers["Authorization"]

    async def _check_unauthorized(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            self._handle_unauthorized(str(response.request.url))
            for listener in list(self._unauthorized_listeners):
                await listener()

    def _handle_unauthorized(self, url: str) -> None:
        logger.warning("401 Unauthorized from %s, clearing stored credentials", url)
        self.clear_token()

        current_path = self.navigator.current_path
        if is_auth_page(current_path):
            return
        self.navigator.redirect(LOGIN_EXPIRED_URL)

    # ── Requests ─────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict | None = None,
    ) -> Any:
        url = self.api_config.endpoint(path)
        logger.debug("%s %s", method, url)

        try:
            response = await self._http.request(method, url, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                f"timeout of {int(self.timeout * 1000)}ms exceeded", url=url
            ) from exc
        except httpx.TransportError as exc:
            logger.error("%s %s failed without a response: %s", method, url, exc)
            raise NetworkError(url=url) from exc

        body = self._decode(response)

        if response.is_error:
            logger.warning("%s %s returned %d", method, url, response.status_code)
            raise ApiError(response.status_code, body, url=url)

        if is_html_document(body):
            logger.error(
                "Received HTML instead of JSON from %s; the API URL is probably misrouted",
                url,
            )
            return []

        return body

    async def get(self, path: str, params: dict | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def delete(self, path: str, json: Any = None) -> Any:
        return await self.request("DELETE", path, json=json)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    # ── Lifecycle ────────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "GatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
