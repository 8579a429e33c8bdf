"""Pytest fixtures for the shipping quotes proxy.

Provides fixtures for:
- Settings built without reading the environment
- A fake clock for TTL tests
- An in-process stand-in for the Yampi API served through httpx.MockTransport
"""

import httpx
import pytest

from shipping_quotes.adapters.implementations.yampi.client import YampiClient
from shipping_quotes.core.config import Settings
from shipping_quotes.infrastructure.cache.memory_cache import QuoteCache
from shipping_quotes.services.catalog_service import CatalogSynchronizer
from tests.yampi_stub import ALIAS, SECRET, YAMPI_BASE, FakeClock, YampiStub


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def yampi_stub() -> YampiStub:
    return YampiStub()


@pytest.fixture
def yampi_client(yampi_stub) -> YampiClient:
    return YampiClient(
        alias=ALIAS,
        user_token="user-token",
        secret_key="secret-key",
        base_url=YAMPI_BASE,
        http_client=httpx.AsyncClient(transport=yampi_stub.transport),
    )


@pytest.fixture
def catalog(yampi_client) -> CatalogSynchronizer:
    return CatalogSynchronizer(yampi_client, refresh_interval=0.01, page_limit=2, max_pages=50)


@pytest.fixture
def quote_cache(fake_clock) -> QuoteCache:
    return QuoteCache(ttl=300, clock=fake_clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        SHOPIFY_API_KEY="api-key",
        SHOPIFY_API_SECRET=SECRET,
        SCOPES="read_products",
        APP_URL="https://app.example.com/",
        YAMPI_ALIAS=ALIAS,
        YAMPI_BASE_URL=YAMPI_BASE,
        YAMPI_USER_TOKEN="user-token",
        YAMPI_SECRET_KEY="secret-key",
        ADMIN_TOKEN="admin-token",
        ENABLE_STRUCTURED_LOGGING=False,
    )
