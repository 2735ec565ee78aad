"""Health check route handlers.

``GET /api/health``
    Process health including the headless browser pool.  Always returns
    HTTP 200; ``status`` is ``"ok"`` or ``"degraded"`` (rendering enabled but
    the browser is not running).  Rendering disabled by configuration is
    reported as ``"disabled"`` and does not degrade the overall status.

These endpoints are diagnostic: they never raise HTTP 5xx errors.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from adaptive_scraper import __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/api/health", include_in_schema=True)
async def system_health(request: Request) -> JSONResponse:
    """Return process-level health including browser pool status.

    Returns:
        JSON with keys: ``status``, ``version``, ``browser``, ``timestamp``.
    """
    pool = getattr(request.app.state, "browser_pool", None)
    if pool is None:
        browser: dict[str, object] = {"status": "disabled"}
        overall = "ok"
    else:
        browser = {"status": "ok" if pool.is_running else "not_running", **pool.status()}
        overall = "ok" if pool.is_running else "degraded"

    payload = {
        "status": overall,
        "version": __version__,
        "browser": browser,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("system_health_check", extra={"health": payload})
    return JSONResponse(payload)
