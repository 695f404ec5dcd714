from collections.abc import AsyncGenerator

import httpx
import pytest

from helpers import RecordingBackend
from vibeflo.services.gateway import GatewayClient
from vibeflo.services.navigation import InMemoryNavigator
from vibeflo.services.retry_policy import RetryPolicy
from vibeflo.services.routing import ApiConfig, resolve_api_config
from vibeflo.services.token_store import MemoryTokenStore


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def navigator() -> InMemoryNavigator:
    return InMemoryNavigator("/dashboard")


@pytest.fixture
def api_config() -> ApiConfig:
    return resolve_api_config(None, "localhost", "development")


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
async def gateway(api_config, token_store, navigator, backend) -> AsyncGenerator[GatewayClient, None]:
    client = GatewayClient(
        api_config,
        token_store,
        navigator=navigator,
        retry_policy=RetryPolicy(max_retries=3, initial_delay=0.0),
        transport=httpx.MockTransport(backend),
    )
    yield client
    await client.aclose()

