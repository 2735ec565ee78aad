"""Unit tests for the rendered fetcher's outcome mapping."""

from __future__ import annotations

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from adaptive_scraper.core.exceptions import BrowserPoolClosedError, BrowserPoolExhaustedError
from adaptive_scraper.scraper.models import FailureKind, FetchFailure, FetchSuccess
from adaptive_scraper.scraper.playwright_fetcher import fetch_url_playwright


class _FakePool:
    acquire_timeout = 1.0

    def __init__(self, page: MagicMock | None = None, exc: Exception | None = None) -> None:
        self._page = page
        self._exc = exc
        self.released = 0

    @asynccontextmanager
    async def page(self):
        if self._exc is not None:
            raise self._exc
        try:
            yield self._page
        finally:
            self.released += 1


def _page(html: str = "<p>rendered</p>") -> MagicMock:
    response = MagicMock()
    response.status = 200
    response.all_headers = AsyncMock(return_value={"content-type": "text/html"})
    page = MagicMock()
    page.goto = AsyncMock(return_value=response)
    page.content = AsyncMock(return_value=html)
    page.url = "https://example.com/final"
    return page


@pytest.mark.asyncio
class TestFetchUrlPlaywright:
    async def test_success(self) -> None:
        page = _page()
        pool = _FakePool(page)
        result = await fetch_url_playwright("https://example.com/", pool=pool, timeout=5.0)

        assert isinstance(result, FetchSuccess)
        assert result.html == "<p>rendered</p>"
        assert result.final_url == "https://example.com/final"
        assert result.headers == {"content-type": "text/html"}
        assert result.status_code == 200
        page.goto.assert_awaited_once_with(
            "https://example.com/", timeout=5000.0, wait_until="networkidle"
        )
        assert pool.released == 1

    async def test_navigation_timeout(self) -> None:
        page = _page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
        pool = _FakePool(page)
        result = await fetch_url_playwright("https://example.com/", pool=pool, timeout=5.0)

        assert isinstance(result, FetchFailure)
        assert result.kind is FailureKind.TIMEOUT
        assert pool.released == 1

    async def test_browser_crash(self) -> None:
        page = _page()
        page.content.side_effect = PlaywrightError("Target page, context or browser has been closed")
        pool = _FakePool(page)
        result = await fetch_url_playwright("https://example.com/", pool=pool, timeout=5.0)

        assert isinstance(result, FetchFailure)
        assert result.kind is FailureKind.NETWORK_ERROR
        assert pool.released == 1

    async def test_pool_exhausted_is_timeout(self) -> None:
        pool = _FakePool(exc=BrowserPoolExhaustedError(1.0))
        result = await fetch_url_playwright("https://example.com/", pool=pool, timeout=5.0)

        assert isinstance(result, FetchFailure)
        assert result.kind is FailureKind.TIMEOUT

    async def test_no_response_object(self) -> None:
        page = _page()
        page.goto.return_value = None
        result = await fetch_url_playwright("https://example.com/", pool=_FakePool(page), timeout=5.0)

        assert isinstance(result, FetchSuccess)
        assert result.headers == {}
        assert result.status_code is None

    async def test_closed_pool_is_network_error(self) -> None:
        pool = _FakePool(exc=BrowserPoolClosedError())
        result = await fetch_url_playwright("https://example.com/", pool=pool, timeout=5.0)

        assert isinstance(result, FetchFailure)
        assert result.kind is FailureKind.NETWORK_ERROR
        assert "closed" in result.message
