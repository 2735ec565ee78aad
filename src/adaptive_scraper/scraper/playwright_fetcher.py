"""Playwright-based rendered fetcher for JavaScript-heavy pages.

Borrows a page from the process-wide
:class:`~adaptive_scraper.scraper.browser_pool.BrowserPool`, navigates to
the URL, waits for the network to become idle and returns the serialized
DOM.  Releasing the page is the pool's job and happens on every exit path.
"""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from adaptive_scraper.core.exceptions import BrowserPoolClosedError, BrowserPoolExhaustedError
from adaptive_scraper.scraper.browser_pool import BrowserPool
from adaptive_scraper.scraper.models import (
    FailureKind,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
)

logger = logging.getLogger(__name__)


async def _render(url: str, *, pool: BrowserPool, timeout: float) -> FetchSuccess:
    async with pool.page() as page:
        response = await page.goto(
            url,
            timeout=timeout * 1000,
            wait_until="networkidle",
        )
        html = await page.content()
        headers = await response.all_headers() if response is not None else {}
        return FetchSuccess(
            html=html,
            headers=headers,
            final_url=page.url or url,
            status_code=response.status if response is not None else None,
        )


async def fetch_url_playwright(
    url: str,
    *,
    pool: BrowserPool,
    timeout: float,
) -> FetchOutcome:
    """Fetch a URL using the pooled headless Chromium.

    Args:
        url: Target URL (already normalized).
        pool: Shared browser pool.
        timeout: Navigation timeout in seconds (converted to milliseconds
            for Playwright).  The whole render, slot wait excluded, is also
            bounded by this value plus a small grace period.

    Returns:
        :class:`FetchSuccess` with the rendered HTML, or
        :class:`FetchFailure` with ``kind=TIMEOUT`` (navigation timeout or
        no free slot) or ``kind=NETWORK_ERROR`` (crash, protocol error or a
        pool that has been closed).
    """
    # Slot waiting is bounded separately by the pool's acquire timeout.
    hard_limit = timeout + pool.acquire_timeout + 5.0
    try:
        return await asyncio.wait_for(_render(url, pool=pool, timeout=timeout), timeout=hard_limit)
    except BrowserPoolExhaustedError as exc:
        logger.warning("scraper: %s for %s", exc, url)
        return FetchFailure(kind=FailureKind.TIMEOUT, message=str(exc))
    except (PlaywrightTimeoutError, asyncio.TimeoutError):
        logger.warning("scraper: render timed out for %s after %.0fs", url, timeout)
        return FetchFailure(kind=FailureKind.TIMEOUT, message=f"render timed out after {timeout:.0f}s")
    except PlaywrightError as exc:
        logger.warning("scraper: playwright fetch failed for %s: %s", url, exc)
        return FetchFailure(kind=FailureKind.NETWORK_ERROR, message=f"playwright error: {exc}")
    except BrowserPoolClosedError as exc:
        logger.warning("scraper: render of %s refused: %s", url, exc)
        return FetchFailure(kind=FailureKind.NETWORK_ERROR, message=str(exc))
