"""``POST /scrape``: run the adaptive pipeline for one URL.

Classified failures are raised as ``ScrapeError`` and rendered into the
failure body by the exception handler registered in ``api/main.py``.
"""

from __future__ import annotations

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends

from adaptive_scraper.api.dependencies import get_pipeline, scrape_identity
from adaptive_scraper.core.schemas.auth import SessionUser
from adaptive_scraper.core.schemas.scrape import (
    ScrapeFailureResponse,
    ScrapeRequest,
    ScrapeSuccessResponse,
)
from adaptive_scraper.scraper.pipeline import ScrapePipeline

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["scrape"])


@router.post(
    "/scrape",
    response_model=ScrapeSuccessResponse,
    responses={
        400: {"model": ScrapeFailureResponse},
        403: {"model": ScrapeFailureResponse},
        502: {"model": ScrapeFailureResponse},
    },
)
async def scrape(
    body: ScrapeRequest,
    pipeline: Annotated[ScrapePipeline, Depends(get_pipeline)],
    identity: Annotated[Optional[SessionUser], Depends(scrape_identity)],
) -> ScrapeSuccessResponse:
    """Fetch ``body.url`` and return its title, headings, links and text."""
    if identity is not None:
        structlog.contextvars.bind_contextvars(user=identity.email)
    result = await pipeline.scrape(body.url, use_playwright=body.use_playwright)
    return ScrapeSuccessResponse.from_result(result)
