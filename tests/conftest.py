"""Shared pytest fixtures for Adaptive Scraper tests.

Fixture summary
---------------
settings        — Settings built from the test environment.
http_client     — Plain httpx.AsyncClient for robots/light fetches (mock with respx).
fake_pool       — Stand-in BrowserPool; the rendered fetcher is patched per test.
make_pipeline   — Factory for ScrapePipeline with test tunables.
app             — Fresh FastAPI app from create_app().
api_client      — httpx.AsyncClient bound to ``app`` through ASGITransport.

Nothing here touches the network or launches a browser: outbound HTTP is
mocked with respx and Playwright with ``unittest.mock``.  ASGITransport
requests are not intercepted by respx.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set required env vars before any application modules are imported so that
# Settings() does not raise a ValidationError during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "SECRET_KEY": "test-secret-key-for-tests-only-not-production",
    "RENDER_ENABLED": "false",
    "METRICS_ENABLED": "true",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from fastapi import FastAPI  # noqa: E402

from adaptive_scraper.api.main import create_app  # noqa: E402
from adaptive_scraper.config.settings import Settings, get_settings  # noqa: E402
from adaptive_scraper.scraper.browser_pool import BrowserPool  # noqa: E402
from adaptive_scraper.scraper.pipeline import PipelineConfig, ScrapePipeline  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()

TEST_THRESHOLD = 200


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest_asyncio.fixture
async def http_client() -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient() as client:
        yield client


@pytest.fixture
def fake_pool() -> MagicMock:
    """A BrowserPool stand-in; ``fetch_url_playwright`` is patched in tests."""
    pool = MagicMock(spec=BrowserPool)
    pool.acquire_timeout = 1.0
    return pool


@pytest.fixture
def make_pipeline(http_client: AsyncClient) -> Callable[..., ScrapePipeline]:
    """Return a factory building a pipeline around the shared test client."""

    def _make(browser_pool: object | None = None, threshold: int = TEST_THRESHOLD) -> ScrapePipeline:
        config = PipelineConfig(
            sufficiency_threshold=threshold,
            robots_timeout=2.0,
            light_fetch_timeout=2.0,
            render_timeout=2.0,
            max_response_bytes=1024 * 1024,
            user_agent="TestScraper/1.0",
        )
        return ScrapePipeline(config=config, client=http_client, browser_pool=browser_pool)

    return _make


@pytest.fixture
def app() -> FastAPI:
    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app; the lifespan is not run."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
