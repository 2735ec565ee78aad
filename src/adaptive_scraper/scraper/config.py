"""Constants and tuning defaults for the scrape pipeline.

Every value here is a default only; the live values come from
:class:`adaptive_scraper.config.settings.Settings` and reach the pipeline
through :class:`adaptive_scraper.scraper.pipeline.PipelineConfig`.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Stage timeouts (seconds)
# ---------------------------------------------------------------------------

#: Timeout for fetching ``/robots.txt``.
DEFAULT_ROBOTS_TIMEOUT: float = 5.0

#: Total timeout for the plain HTTP fetch.
DEFAULT_LIGHT_FETCH_TIMEOUT: float = 15.0

#: Hard timeout for browser navigation (until network idle).
DEFAULT_RENDER_TIMEOUT: float = 30.0

# ---------------------------------------------------------------------------
# Content guards
# ---------------------------------------------------------------------------

#: Maximum response body accepted by the light fetcher (bytes).
DEFAULT_MAX_RESPONSE_BYTES: int = 5 * 1024 * 1024  # 5 MiB

#: robots.txt bytes evaluated; anything past this prefix is ignored.
MAX_ROBOTS_BYTES: int = 500 * 1024  # 500 KiB

#: Extracted paragraph text (characters) below which a light-fetched page is
#: treated as script-rendered and the request escalates to the browser.
DEFAULT_SUFFICIENCY_THRESHOLD: int = 200

# ---------------------------------------------------------------------------
# Browser pool
# ---------------------------------------------------------------------------

#: Maximum concurrently open browser contexts.
DEFAULT_BROWSER_POOL_SIZE: int = 4

#: Seconds to wait for a free browser slot.
DEFAULT_BROWSER_ACQUIRE_TIMEOUT: float = 10.0

#: Chromium launch arguments (container-friendly).
BROWSER_LAUNCH_ARGS: tuple[str, ...] = ("--no-sandbox",)

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

#: User-agent string sent with light fetches and robots.txt requests.
USER_AGENT: str = "AdaptiveScraper/1.0 (+https://github.com/adaptive-scraper)"

#: User-agent string used by headless browser contexts.
RENDER_USER_AGENT: str = "AdaptiveScraper-Playwright/1.0 (+https://github.com/adaptive-scraper)"

#: Content-Type prefixes that indicate binary/non-text resources that should
#: be rejected without attempting extraction.
BINARY_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/zip",
        "application/octet-stream",
        "application/x-executable",
        "application/vnd.",
        "image/",
        "video/",
        "audio/",
        "font/",
    }
)

# ---------------------------------------------------------------------------
# robots.txt
# ---------------------------------------------------------------------------

#: robots.txt group evaluated for every request.
ROBOTS_USER_AGENT: str = "*"

#: HTTP status codes under which a site is treated as having no robots.txt.
ROBOTS_NOT_FOUND_STATUSES: frozenset[int] = frozenset(range(400, 500))
