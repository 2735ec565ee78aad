"""Application-wide exception hierarchy for Adaptive Scraper.

All custom exceptions subclass ``AdaptiveScraperError``, enabling
consistent error handling and structured logging across the application.

Hierarchy::

    AdaptiveScraperError
    ├── ScrapeError                  (reason: str)
    │   ├── InvalidURLError          invalid_url
    │   ├── RobotsDisallowedError    robots_block
    │   ├── FetchFailedError         fetch_failed
    │   ├── BlockedByProtectionError blocked_by_protection (classification)
    │   └── RenderError              render_failed
    │       ├── RenderTimeoutError
    │       └── RenderCrashError
    ├── BrowserPoolExhaustedError
    └── AuthError
        ├── InvalidTokenError
        └── IdentityVerificationError

``ScrapeError`` subclasses are terminal pipeline outcomes.  Each carries a
stable ``reason`` code that the API layer returns verbatim to the caller.
"""

from __future__ import annotations


class AdaptiveScraperError(Exception):
    """Base class for all Adaptive Scraper exceptions.

    All application-specific exceptions inherit from this class so that
    callers can catch the entire hierarchy with a single ``except`` clause
    when needed.
    """


# ---------------------------------------------------------------------------
# Pipeline outcomes
# ---------------------------------------------------------------------------


class ScrapeError(AdaptiveScraperError):
    """A classified, terminal failure of one scrape request.

    Args:
        message: Human-readable description of the failure.
        url: The URL being scraped (normalized where available).
    """

    reason: str = "scrape_failed"

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class InvalidURLError(ScrapeError):
    """Raised when the input cannot be normalized to an http(s) URL."""

    reason = "invalid_url"


class RobotsDisallowedError(ScrapeError):
    """Raised when the target origin's robots.txt disallows the path.

    Args:
        message: Human-readable description.
        url: The normalized URL.
        rule: The ``Disallow`` pattern that matched, if known.
    """

    reason = "robots_block"

    def __init__(
        self,
        message: str,
        url: str | None = None,
        rule: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.rule = rule


class FetchFailedError(ScrapeError):
    """Raised when the light fetch fails and rendering is not available.

    Transient: the pipeline never retries, but the caller may retry the
    whole request.
    """

    reason = "fetch_failed"


class BlockedByProtectionError(ScrapeError):
    """Raised when a bot-protection page is detected and cannot be bypassed.

    Args:
        message: Human-readable description.
        classification: The block verdict (e.g. ``"captcha"``).
        url: The normalized URL.
    """

    reason = "blocked_by_protection"

    def __init__(
        self,
        message: str,
        classification: str,
        url: str | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.classification = classification


class RenderError(ScrapeError):
    """Base class for failures on the browser-rendering path."""

    reason = "render_failed"


class RenderTimeoutError(RenderError):
    """Raised when navigation does not settle within the render timeout,
    or no browser slot frees up in time."""


class RenderCrashError(RenderError):
    """Raised when the browser or page crashes during rendering."""


# ---------------------------------------------------------------------------
# Resource exceptions
# ---------------------------------------------------------------------------


class BrowserPoolExhaustedError(AdaptiveScraperError):
    """Raised when no browser slot becomes free within the acquire timeout.

    Args:
        timeout: The acquire timeout that elapsed, in seconds.
    """

    def __init__(self, timeout: float) -> None:
        super().__init__(f"No browser slot available within {timeout:.1f}s")
        self.timeout = timeout


class BrowserPoolClosedError(AdaptiveScraperError):
    """Raised when a page is requested from a pool that has been shut down."""

    def __init__(self) -> None:
        super().__init__("Browser pool is closed")


# ---------------------------------------------------------------------------
# Authentication exceptions
# ---------------------------------------------------------------------------


class AuthError(AdaptiveScraperError):
    """Base class for authentication failures."""


class InvalidTokenError(AuthError):
    """Raised when a session token is malformed, expired, or badly signed."""


class IdentityVerificationError(AuthError):
    """Raised when a third-party identity assertion cannot be verified."""
