"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator

import httpx
import pytest

# Set test environment before any app code runs
os.environ["ENV"] = "test"
for _name in ("REDIS_URL", "PSI_API_KEY", "PSI_PROXY_URL", "WORDPRESS_DATABASE_URL", "INVENTORY_FILE"):
    os.environ.pop(_name, None)

from siteaudit.config import Settings, get_settings  # noqa: E402
from siteaudit.crawler.fetcher import Fetcher  # noqa: E402
from siteaudit.redis import get_redis_pool  # noqa: E402
from tests.fixtures import FakeRedis  # noqa: E402

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Each test sees settings and a Redis pool built from its own environment."""
    get_settings.cache_clear()
    get_redis_pool.cache_clear()
    yield
    get_settings.cache_clear()
    get_redis_pool.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings with no external services configured."""
    return Settings(
        _env_file=None,
        env="test",
        psi_api_key=None,
        psi_proxy_url=None,
        redis_url=None,
        wordpress_database_url=None,
        inventory_file=None,
        stylesheet_url=None,
        seo_basics_enabled=False,
    )


@pytest.fixture
def make_fetcher(settings: Settings) -> Callable[[Handler], Fetcher]:
    """Build a Fetcher whose requests are answered by a handler function."""

    def _make(handler: Handler) -> Fetcher:
        return Fetcher(settings, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
