"""Application settings loaded from environment variables.

Uses Pydantic Settings v2 for validated, type-safe configuration.
All secrets and tunables are accessed exclusively through this module;
never call ``os.getenv`` directly elsewhere in the codebase.

Usage::

    from adaptive_scraper.config.settings import get_settings

    settings = get_settings()
    threshold = settings.sufficiency_threshold
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from adaptive_scraper.scraper.config import (
    DEFAULT_BROWSER_ACQUIRE_TIMEOUT,
    DEFAULT_BROWSER_POOL_SIZE,
    DEFAULT_LIGHT_FETCH_TIMEOUT,
    DEFAULT_MAX_RESPONSE_BYTES,
    DEFAULT_RENDER_TIMEOUT,
    DEFAULT_ROBOTS_TIMEOUT,
    DEFAULT_SUFFICIENCY_THRESHOLD,
    RENDER_USER_AGENT,
    USER_AGENT,
)


class Settings(BaseSettings):
    """Process-wide configuration backed by environment variables and an optional .env file.

    Loaded once at startup and treated as read-only afterwards.  Fields
    without defaults must be supplied via the environment before the
    application starts.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------

    secret_key: str
    """Random secret used to sign session JWTs.  Generate with ``openssl rand -hex 32``."""

    access_token_expire_minutes: int = 7 * 24 * 60
    """Lifetime of issued session tokens in minutes (7 days)."""

    google_client_id: Optional[str] = None
    """OAuth client ID that Google ID tokens must be issued for.

    When ``None`` the ``/auth/google`` login exchange is disabled and
    answers HTTP 503.
    """

    auth_required: bool = False
    """Require a valid bearer token on ``POST /scrape``.

    When ``False`` a token is still verified and attached to the request if
    one is supplied, but anonymous requests are served.
    """

    # ------------------------------------------------------------------
    # Application behaviour
    # ------------------------------------------------------------------

    app_name: str = "Adaptive Scraper"
    """Human-readable application name shown in the OpenAPI docs."""

    debug: bool = False
    """Enable FastAPI debug mode.  Never True in production."""

    log_level: str = "INFO"
    """Logging verbosity.  One of: DEBUG, INFO, WARNING, ERROR, CRITICAL."""

    allowed_origins: list[str] = ["http://localhost:3000"]
    """Origins permitted by the CORS middleware."""

    metrics_enabled: bool = True
    """Expose Prometheus metrics at ``GET /metrics``."""

    host: str = "0.0.0.0"
    """Bind address for the ``adaptive-scraper`` console script."""

    port: int = 5000
    """Listen port for the ``adaptive-scraper`` console script."""

    # ------------------------------------------------------------------
    # Scrape pipeline
    # ------------------------------------------------------------------

    sufficiency_threshold: int = Field(default=DEFAULT_SUFFICIENCY_THRESHOLD, ge=0)
    """Minimum extracted-text length (characters) for accepting the light
    fetch without escalating to browser rendering."""

    robots_timeout: float = Field(default=DEFAULT_ROBOTS_TIMEOUT, gt=0)
    """Seconds allowed for fetching ``/robots.txt``."""

    light_fetch_timeout: float = Field(default=DEFAULT_LIGHT_FETCH_TIMEOUT, gt=0)
    """Total seconds allowed for the plain HTTP fetch."""

    render_timeout: float = Field(default=DEFAULT_RENDER_TIMEOUT, gt=0)
    """Seconds allowed for headless-browser navigation and serialisation."""

    max_response_bytes: int = Field(default=DEFAULT_MAX_RESPONSE_BYTES, gt=0)
    """Upper bound on the light-fetch response body size."""

    user_agent: str = USER_AGENT
    """User-agent sent by the light fetcher and the robots.txt check."""

    render_user_agent: str = RENDER_USER_AGENT
    """User-agent used by browser contexts."""

    # ------------------------------------------------------------------
    # Headless browser pool
    # ------------------------------------------------------------------

    render_enabled: bool = True
    """Launch the browser pool and allow escalation to rendering.

    Set to ``False`` on hosts without a Chromium binary; sparse pages are
    then returned from the light path and light failures surface as
    ``fetch_failed``.
    """

    browser_pool_size: int = Field(default=DEFAULT_BROWSER_POOL_SIZE, ge=1)
    """Maximum number of concurrently open browser contexts."""

    browser_acquire_timeout: float = Field(default=DEFAULT_BROWSER_ACQUIRE_TIMEOUT, gt=0)
    """Seconds a request waits for a free browser slot before failing."""

    browser_headless: bool = True
    """Run Chromium headless.  Only disable for local debugging."""


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Uses ``functools.lru_cache`` so that Pydantic Settings reads the environment
    and .env file exactly once per process lifetime.  In tests, call
    ``get_settings.cache_clear()`` after patching environment variables.

    Returns:
        Settings: The validated settings object.
    """
    return Settings()
