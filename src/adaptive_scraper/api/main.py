"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and the
``ScrapeError`` handler, mounts the route routers, and owns the lifespan
of the process-wide resources (HTTP client, browser pool, pipeline).

Usage::

    # Development server (from project root)
    uvicorn adaptive_scraper.api.main:app --reload

    # Console script
    adaptive-scraper
"""

from __future__ import annotations

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Callable

import httpx
import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from playwright.async_api import Error as PlaywrightError

from adaptive_scraper import __version__
from adaptive_scraper.api.metrics import (
    get_metrics_response,
    http_request_duration_seconds,
    http_requests_total,
)
from adaptive_scraper.config.settings import Settings, get_settings
from adaptive_scraper.core.exceptions import (
    BlockedByProtectionError,
    FetchFailedError,
    InvalidURLError,
    RenderError,
    RobotsDisallowedError,
    ScrapeError,
)
from adaptive_scraper.core.logging_config import configure_logging, request_id_var
from adaptive_scraper.core.schemas.scrape import ScrapeFailureResponse
from adaptive_scraper.scraper.browser_pool import BrowserPool
from adaptive_scraper.scraper.pipeline import PipelineConfig, ScrapePipeline

# ---------------------------------------------------------------------------
# Logging configuration: applied once at module import time so that log
# records emitted during app construction are captured correctly.
# The log level is re-applied inside create_app() after settings are loaded.
# ---------------------------------------------------------------------------

configure_logging("INFO")

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Failure reason -> HTTP status
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: tuple[tuple[type[ScrapeError], int], ...] = (
    (InvalidURLError, 400),
    (RobotsDisallowedError, 403),
    (BlockedByProtectionError, 403),
    (FetchFailedError, 502),
    (RenderError, 502),
)


def status_for_error(exc: ScrapeError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 502


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_browser_pool(settings: Settings) -> BrowserPool | None:
    if not settings.render_enabled:
        return None
    return BrowserPool(
        max_pages=settings.browser_pool_size,
        acquire_timeout=settings.browser_acquire_timeout,
        user_agent=settings.render_user_agent,
        headless=settings.browser_headless,
    )


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Create the shared HTTP client, browser pool and pipeline.

    A browser that fails to launch at startup is not fatal: the pool retries
    the launch on the first render, and render failures surface per request
    as ``render_failed``.
    """
    settings = get_settings()
    client = httpx.AsyncClient()
    pool = build_browser_pool(settings)
    if pool is not None:
        try:
            await pool.start()
        except PlaywrightError as exc:
            logger.warning("browser_launch_failed", error=str(exc))

    application.state.http_client = client
    application.state.browser_pool = pool
    application.state.pipeline = ScrapePipeline(
        config=PipelineConfig.from_settings(settings),
        client=client,
        browser_pool=pool,
    )
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        debug=settings.debug,
        log_level=settings.log_level,
        render_enabled=pool is not None,
    )
    try:
        yield
    finally:
        if pool is not None:
            await pool.close()
        await client.aclose()
        logger.info("application_shutdown")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can
    call ``create_app()`` with a patched settings environment before the
    singleton is created.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()

    # Re-apply logging configuration with the correct level from settings.
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description=(
            "Fetches a URL and returns its title, headings, links and text, "
            "escalating to a headless browser when the plain fetch is not enough."
        ),
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---- Request logging middleware ----------------------------------------

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every incoming request and its response status + duration.

        Attaches a unique ``request_id`` to the structlog context so that all
        log lines emitted during a request can be correlated, and records the
        HTTP request metrics.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or route handler in the chain.

        Returns:
            The HTTP response from the handler.
        """
        request_id = str(uuid.uuid4())
        # Populate the ContextVar so stdlib logging records also carry the ID.
        request_id_var.set(request_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed = time.perf_counter() - start
            status_code = getattr(response, "status_code", 500)
            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            http_requests_total.labels(
                method=request.method, path=path, status=str(status_code)
            ).inc()
            http_request_duration_seconds.labels(method=request.method, path=path).observe(
                elapsed
            )
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=round(elapsed * 1000, 2),
            )

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Error handling -----------------------------------------------------

    @application.exception_handler(ScrapeError)
    async def scrape_error_handler(request: Request, exc: ScrapeError) -> JSONResponse:
        body = ScrapeFailureResponse(
            reason=exc.reason,
            message=exc.message,
            classification=getattr(exc, "classification", None),
        )
        return JSONResponse(
            status_code=status_for_error(exc),
            content=body.model_dump(exclude_none=True),
        )

    # ---- Routers -----------------------------------------------------------

    from adaptive_scraper.api.routes import (  # noqa: PLC0415
        auth,
        health as health_routes,
        scrape,
    )

    application.include_router(scrape.router)
    application.include_router(auth.router)
    # Health endpoint (/api/health)
    application.include_router(health_routes.router)

    # ---- Operational endpoints ----------------------------------------------

    @application.get("/health", tags=["system"], include_in_schema=True)
    async def health() -> JSONResponse:
        """Return a minimal process-level liveness status.

        Used by container health checks and load balancers that need a fast
        ``200 OK`` without performing any I/O.  Browser pool status is at
        ``/api/health``.

        Returns:
            JSON response with ``{"status": "ok"}``.
        """
        return JSONResponse({"status": "ok"})

    if settings.metrics_enabled:

        @application.get("/metrics", tags=["system"], include_in_schema=False)
        async def metrics() -> Response:
            body, content_type = get_metrics_response()
            return Response(content=body, media_type=content_type)

    return application


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn.
"""


def run() -> None:
    """Entry point for the ``adaptive-scraper`` console script."""
    import uvicorn  # noqa: PLC0415

    settings = get_settings()
    uvicorn.run(
        "adaptive_scraper.api.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
