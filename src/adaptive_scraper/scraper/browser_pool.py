"""Long-lived, bounded pool of headless Chromium page contexts.

Chromium is launched once per process and shared by every request.  Each
rendering gets its own browser *context* (isolated cookies and storage), and
an :class:`asyncio.Semaphore` caps how many contexts exist at once.

Acquire through :meth:`BrowserPool.page`, an async context manager: the
context is closed and the slot released on every exit path, including
timeouts, cancellations and crashes.  If the browser process dies it is
discarded and relaunched by the next acquisition.

Install Playwright and download the Chromium browser binary::

    pip install playwright>=1.48
    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from adaptive_scraper.api.metrics import browser_pages_in_use
from adaptive_scraper.core.exceptions import BrowserPoolClosedError, BrowserPoolExhaustedError
from adaptive_scraper.scraper.config import (
    BROWSER_LAUNCH_ARGS,
    DEFAULT_BROWSER_ACQUIRE_TIMEOUT,
    DEFAULT_BROWSER_POOL_SIZE,
    RENDER_USER_AGENT,
)

logger = logging.getLogger(__name__)


class BrowserPool:
    """Shared Chromium instance with a bounded number of page contexts.

    Args:
        max_pages: Maximum concurrently open contexts.
        acquire_timeout: Seconds :meth:`page` waits for a free slot.
        user_agent: User-agent applied to every context.
        headless: Launch Chromium headless.
        launch_args: Extra Chromium command-line arguments.
    """

    def __init__(
        self,
        *,
        max_pages: int = DEFAULT_BROWSER_POOL_SIZE,
        acquire_timeout: float = DEFAULT_BROWSER_ACQUIRE_TIMEOUT,
        user_agent: str = RENDER_USER_AGENT,
        headless: bool = True,
        launch_args: Sequence[str] = BROWSER_LAUNCH_ARGS,
    ) -> None:
        self.max_pages = max_pages
        self.acquire_timeout = acquire_timeout
        self.user_agent = user_agent
        self.headless = headless
        self.launch_args = list(launch_args)
        self._slots = asyncio.Semaphore(max_pages)
        self._launch_lock = asyncio.Lock()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._in_use = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def in_use(self) -> int:
        """Number of currently checked-out page contexts."""
        return self._in_use

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    def status(self) -> dict[str, object]:
        return {
            "running": self.is_running,
            "in_use": self._in_use,
            "max_pages": self.max_pages,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch Chromium ahead of the first request."""
        await self._ensure_browser()

    async def close(self) -> None:
        """Close the browser and stop the Playwright driver."""
        self._closed = True
        async with self._launch_lock:
            await self._discard_browser()
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except PlaywrightError as exc:
                    logger.warning("scraper: playwright stop failed: %s", exc)
                self._playwright = None
        logger.info("scraper: browser pool closed")

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._closed:
                raise BrowserPoolClosedError()
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._browser is not None:
                logger.warning("scraper: browser disconnected, relaunching")
                await self._discard_browser()
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=self.launch_args,
            )
            logger.info(
                "scraper: browser launched (max_pages=%d, headless=%s)",
                self.max_pages,
                self.headless,
            )
            return self._browser

    async def _discard_browser(self) -> None:
        browser, self._browser = self._browser, None
        if browser is None:
            return
        try:
            await browser.close()
        except PlaywrightError as exc:
            logger.debug("scraper: closing dead browser failed: %s", exc)

    # ------------------------------------------------------------------
    # Scoped acquisition
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Check out a fresh page in its own browser context.

        Raises:
            BrowserPoolClosedError: If :meth:`close` has already run.
            BrowserPoolExhaustedError: If no slot frees up within
                ``acquire_timeout`` seconds.
        """
        try:
            await asyncio.wait_for(self._slots.acquire(), timeout=self.acquire_timeout)
        except asyncio.TimeoutError:
            raise BrowserPoolExhaustedError(self.acquire_timeout) from None

        self._in_use += 1
        browser_pages_in_use.inc()
        try:
            browser = await self._ensure_browser()
            context = await browser.new_context(user_agent=self.user_agent)
            try:
                page = await context.new_page()
                yield page
            finally:
                try:
                    await context.close()
                except PlaywrightError as exc:
                    # The context dies with a crashed browser; the next
                    # acquisition relaunches it.
                    logger.warning("scraper: context close failed: %s", exc)
        finally:
            self._in_use -= 1
            browser_pages_in_use.dec()
            self._slots.release()
