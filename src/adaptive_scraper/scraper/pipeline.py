"""Escalation state machine: URL in, structured document out.

States::

    START -> ROBOTS_CHECKED -> LIGHT_ATTEMPTED -> DONE
                                               -> ESCALATING -> RENDER_ATTEMPTED -> DONE
                                                                                 -> FAILED

1. **Robots** — a disallowed path terminates with ``robots_block``.
2. **Light fetch** — a failed or bot-blocked fetch escalates; otherwise the
   page is extracted and accepted if its text reaches the sufficiency
   threshold, else it escalates as probably script-rendered.
3. **Render** — one attempt only.  A failure or a block here is terminal.

Escalation requires a browser pool and ``use_playwright`` not ``False``.
Without it the light result is final: failures become ``fetch_failed``,
blocks ``blocked_by_protection`` and sparse pages are returned as they are.

Terminal failures are raised as
:class:`~adaptive_scraper.core.exceptions.ScrapeError` subclasses.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Literal, Union

import httpx
import structlog

from adaptive_scraper.api.metrics import (
    scrape_escalations_total,
    scrape_requests_total,
    scrape_stage_duration_seconds,
)
from adaptive_scraper.config.settings import Settings
from adaptive_scraper.core.exceptions import (
    BlockedByProtectionError,
    FetchFailedError,
    RenderCrashError,
    RenderTimeoutError,
    RobotsDisallowedError,
    ScrapeError,
)
from adaptive_scraper.scraper.block_detector import detect_block
from adaptive_scraper.scraper.browser_pool import BrowserPool
from adaptive_scraper.scraper.content_extractor import extract_from_html
from adaptive_scraper.scraper.http_fetcher import fetch_url
from adaptive_scraper.scraper.models import (
    Engine,
    FailureKind,
    FetchFailure,
    NormalizedURL,
    ScrapeResult,
)
from adaptive_scraper.scraper.playwright_fetcher import fetch_url_playwright
from adaptive_scraper.scraper.robots_gate import check_robots
from adaptive_scraper.scraper.url_normalizer import normalize_url

logger = structlog.get_logger(__name__)

UsePlaywright = Union[bool, Literal["auto"]]


class PipelineState(str, enum.Enum):
    START = "start"
    ROBOTS_CHECKED = "robots_checked"
    LIGHT_ATTEMPTED = "light_attempted"
    ESCALATING = "escalating"
    RENDER_ATTEMPTED = "render_attempted"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables the pipeline is constructed with.

    Built once at startup from :class:`~adaptive_scraper.config.settings.Settings`
    and never mutated.
    """

    sufficiency_threshold: int
    robots_timeout: float
    light_fetch_timeout: float
    render_timeout: float
    max_response_bytes: int
    user_agent: str

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            sufficiency_threshold=settings.sufficiency_threshold,
            robots_timeout=settings.robots_timeout,
            light_fetch_timeout=settings.light_fetch_timeout,
            render_timeout=settings.render_timeout,
            max_response_bytes=settings.max_response_bytes,
            user_agent=settings.user_agent,
        )


class ScrapePipeline:
    """Sequences the fetch stages for one request at a time.

    Holds no per-request state; one instance serves every request of the
    process concurrently.

    Args:
        config: Pipeline tunables.
        client: Shared :class:`httpx.AsyncClient` for robots and light fetches.
        browser_pool: Shared browser pool, or ``None`` to disable rendering.
    """

    def __init__(
        self,
        *,
        config: PipelineConfig,
        client: httpx.AsyncClient,
        browser_pool: BrowserPool | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.browser_pool = browser_pool

    @property
    def render_available(self) -> bool:
        return self.browser_pool is not None

    async def scrape(
        self,
        raw_url: str,
        *,
        use_playwright: UsePlaywright = "auto",
    ) -> ScrapeResult:
        """Run the pipeline for ``raw_url``.

        Args:
            raw_url: User-supplied URL text.
            use_playwright: ``True``/``"auto"`` allow escalation to rendering;
                ``False`` keeps the request on the light path.

        Returns:
            A :class:`~adaptive_scraper.scraper.models.ScrapeResult`.

        Raises:
            ScrapeError: One of its subclasses for every classified failure.
        """
        log = logger.bind(raw_url=raw_url)
        try:
            result = await self._run(raw_url, use_playwright=use_playwright, log=log)
        except ScrapeError as exc:
            scrape_requests_total.labels(engine="none", outcome=exc.reason).inc()
            log.info(
                "scrape_failed",
                state=PipelineState.FAILED.value,
                reason=exc.reason,
                detail=exc.message,
            )
            raise
        scrape_requests_total.labels(engine=result.engine.value, outcome="success").inc()
        log.info(
            "scrape_done",
            state=PipelineState.DONE.value,
            engine=result.engine.value,
            escalated=result.escalated,
            escalation_cause=result.escalation_cause,
            text_length=len(result.document.text),
        )
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(
        self,
        raw_url: str,
        *,
        use_playwright: UsePlaywright,
        log: structlog.stdlib.BoundLogger,
    ) -> ScrapeResult:
        target = normalize_url(raw_url)
        log = log.bind(url=target.url)

        with scrape_stage_duration_seconds.labels(stage="robots").time():
            decision = await check_robots(
                target,
                client=self.client,
                timeout=self.config.robots_timeout,
                user_agent=self.config.user_agent,
            )
        log.debug(
            "scrape_stage",
            state=PipelineState.ROBOTS_CHECKED.value,
            allowed=decision.allowed,
            basis=decision.basis.value,
        )
        if not decision.allowed:
            raise RobotsDisallowedError(
                "This site disallows scraping via robots.txt",
                url=target.url,
                rule=decision.rule,
            )

        can_render = self.render_available and use_playwright is not False

        with scrape_stage_duration_seconds.labels(stage="light_fetch").time():
            light = await fetch_url(
                target.url,
                client=self.client,
                timeout=self.config.light_fetch_timeout,
                max_bytes=self.config.max_response_bytes,
                user_agent=self.config.user_agent,
            )
        log.debug("scrape_stage", state=PipelineState.LIGHT_ATTEMPTED.value, ok=light.ok)

        if isinstance(light, FetchFailure):
            if not can_render:
                raise FetchFailedError(light.message or "fetch failed", url=target.url)
            cause = "fetch_failed"
        else:
            verdict = detect_block(light.html, light.headers)
            if verdict.is_blocked:
                if not can_render:
                    raise BlockedByProtectionError(
                        f"This site appears to be protected ({verdict.value}). Scraping blocked.",
                        classification=verdict.value,
                        url=target.url,
                    )
                cause = f"blocked:{verdict.value}"
            else:
                document = extract_from_html(light.html, light.final_url or target.url)
                if len(document.text) >= self.config.sufficiency_threshold or not can_render:
                    return ScrapeResult(engine=Engine.LIGHT, url=target.url, document=document)
                cause = "insufficient_text"

        return await self._escalate(target, cause=cause, log=log)

    async def _escalate(
        self,
        target: NormalizedURL,
        *,
        cause: str,
        log: structlog.stdlib.BoundLogger,
    ) -> ScrapeResult:
        assert self.browser_pool is not None
        log.info("scrape_stage", state=PipelineState.ESCALATING.value, cause=cause)
        scrape_escalations_total.labels(cause=cause.split(":", 1)[0]).inc()

        with scrape_stage_duration_seconds.labels(stage="render").time():
            rendered = await fetch_url_playwright(
                target.url,
                pool=self.browser_pool,
                timeout=self.config.render_timeout,
            )
        log.debug("scrape_stage", state=PipelineState.RENDER_ATTEMPTED.value, ok=rendered.ok)

        if isinstance(rendered, FetchFailure):
            if rendered.kind is FailureKind.TIMEOUT:
                raise RenderTimeoutError(rendered.message, url=target.url)
            raise RenderCrashError(rendered.message, url=target.url)

        verdict = detect_block(rendered.html, rendered.headers)
        if verdict.is_blocked:
            raise BlockedByProtectionError(
                f"Site blocks automated browsers ({verdict.value}).",
                classification=verdict.value,
                url=target.url,
            )

        document = extract_from_html(rendered.html, rendered.final_url or target.url)
        return ScrapeResult(
            engine=Engine.RENDERED,
            url=target.url,
            document=document,
            escalated=True,
            escalation_cause=cause,
        )
