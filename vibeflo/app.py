import logging
from dataclasses import dataclass

import httpx
import sentry_sdk

from vibeflo.api.auth import AuthAPI
from vibeflo.api.playlists import PlaylistAPI
from vibeflo.api.pomodoro import PomodoroAPI
from vibeflo.api.settings import SettingsAPI
from vibeflo.api.themes import ThemeAPI
from vibeflo.config import Settings
from vibeflo.config import settings as default_settings
from vibeflo.logging_config import setup_logging
from vibeflo.services.gateway import GatewayClient
from vibeflo.services.navigation import Navigator
from vibeflo.services.retry_policy import RetryPolicy
from vibeflo.services.routing import resolve_api_config
from vibeflo.services.token_store import FileTokenStore, MemoryTokenStore, TokenStore
from vibeflo.stores.auth_store import AuthStore
from vibeflo.stores.stats_store import StatsStore

logger = logging.getLogger(__name__)


@dataclass
class VibeFloClient:
    gateway: GatewayClient
    auth: AuthAPI
    pomodoro: PomodoroAPI
    playlists: PlaylistAPI
    themes: ThemeAPI
    user_settings: SettingsAPI
    auth_store: AuthStore
    stats_store: StatsStore

    async def start(self) -> None:
        """Restore the persisted login; the stats store follows via its listener."""
        await self.auth_store.initialize()
        if not self.auth_store.is_authenticated:
            await self.stats_store.start()

    async def aclose(self) -> None:
        await self.stats_store.close()
        await self.gateway.aclose()

    async def __aenter__(self) -> "VibeFloClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(
    settings: Settings | None = None,
    token_store: TokenStore | None = None,
    navigator: Navigator | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    configure_logging: bool = False,
) -> VibeFloClient:
    """Build the gateway, resource APIs and stores with explicit wiring."""
    if settings is None:
        settings = default_settings

    if configure_logging:
        setup_logging(settings.LOG_LEVEL)

    if settings.SENTRY_DSN:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
            send_default_pii=False,
        )

    if token_store is None:
        if settings.TOKEN_STORE_PATH:
            token_store = FileTokenStore(settings.TOKEN_STORE_PATH)
        else:
            token_store = MemoryTokenStore()

    api_config = resolve_api_config(settings.API_URL, settings.HOSTNAME, settings.ENVIRONMENT)
    logger.info("Using API at %s (production=%s)", api_config.base_url, api_config.production)

    gateway = GatewayClient(
        api_config,
        token_store,
        navigator=navigator,
        retry_policy=RetryPolicy(
            max_retries=settings.RETRY_MAX_RETRIES,
            initial_delay=settings.RETRY_INITIAL_DELAY_SECONDS,
        ),
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
        transport=transport,
    )

    auth_api = AuthAPI(gateway)
    pomodoro = PomodoroAPI(gateway)
    auth_store = AuthStore(gateway, auth_api)
    stats_store = StatsStore(
        pomodoro,
        min_refresh_interval=settings.STATS_MIN_REFRESH_INTERVAL_SECONDS,
        reconcile_delay=settings.STATS_RECONCILE_DELAY_SECONDS,
    )
    auth_store.add_listener(stats_store.set_authenticated)
    gateway.add_unauthorized_listener(auth_store.handle_session_expired)

    return VibeFloClient(
        gateway=gateway,
        auth=auth_api,
        pomodoro=pomodoro,
        playlists=PlaylistAPI(gateway),
        themes=ThemeAPI(gateway),
        user_settings=SettingsAPI(gateway),
        auth_store=auth_store,
        stats_store=stats_store,
    )
