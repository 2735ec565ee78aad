"""Async HTTP light fetcher.

Uses ``httpx`` for a single streaming GET bounded by a total timeout and a
response-size cap.  It does not classify bot protection; the pipeline runs
:func:`~adaptive_scraper.scraper.block_detector.detect_block` on the result.
"""

from __future__ import annotations

import asyncio
import codecs
import logging

import httpx

from adaptive_scraper.scraper.config import BINARY_CONTENT_TYPES
from adaptive_scraper.scraper.models import (
    FailureKind,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
)

logger = logging.getLogger(__name__)


class _ResponseTooLarge(Exception):
    pass


# ---------------------------------------------------------------------------
# Binary content-type check
# ---------------------------------------------------------------------------


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text binary resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


def _decode_body(body: bytes, encoding: str | None) -> str:
    """Decode ``body`` with the declared charset, falling back to UTF-8."""
    if encoding:
        try:
            codecs.lookup(encoding)
        except LookupError:
            encoding = None
    return body.decode(encoding or "utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Streaming download
# ---------------------------------------------------------------------------


async def _download(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    max_bytes: int,
    user_agent: str,
) -> FetchOutcome:
    async with client.stream(
        "GET",
        url,
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": user_agent},
    ) as response:
        final_url = str(response.url)

        if response.status_code >= 400:
            logger.info("scraper: HTTP %d for %s", response.status_code, url)
            return FetchFailure(
                kind=FailureKind.NETWORK_ERROR,
                message=f"HTTP {response.status_code}",
            )

        content_type = response.headers.get("content-type", "")
        if _is_binary_content_type(content_type):
            logger.info("scraper: skipping binary content-type '%s' for %s", content_type, url)
            return FetchFailure(
                kind=FailureKind.NETWORK_ERROR,
                message=f"binary content-type: {content_type}",
            )

        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_bytes:
            raise _ResponseTooLarge(declared)

        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_bytes:
                raise _ResponseTooLarge(received)
            chunks.append(chunk)

        html = _decode_body(b"".join(chunks), response.charset_encoding)
        return FetchSuccess(
            html=html,
            headers=response.headers,
            final_url=final_url,
            status_code=response.status_code,
        )


# ---------------------------------------------------------------------------
# Public fetch function
# ---------------------------------------------------------------------------


async def fetch_url(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    max_bytes: int,
    user_agent: str,
) -> FetchOutcome:
    """Fetch a single URL with a plain HTTP GET.

    Performs the following checks in order:

    1. **HTTP GET** — streams the response with the scraper user-agent,
       following redirects, all within ``timeout`` seconds in total.
    2. **HTTP error status** — 4xx/5xx responses are failures.
    3. **Binary content-type** — PDFs, images, etc. are failures.
    4. **Size cap** — a declared or streamed body over ``max_bytes`` aborts
       the download.

    Args:
        url: Target URL (already normalized).
        client: Shared :class:`httpx.AsyncClient` instance.
        timeout: Total time budget in seconds.
        max_bytes: Maximum accepted body size.
        user_agent: User-agent header value.

    Returns:
        :class:`FetchSuccess` with the decoded body, headers and final URL,
        or :class:`FetchFailure` with ``kind=NETWORK_ERROR``.
    """
    try:
        return await asyncio.wait_for(
            _download(
                url,
                client=client,
                timeout=timeout,
                max_bytes=max_bytes,
                user_agent=user_agent,
            ),
            timeout=timeout,
        )
    except (httpx.TimeoutException, asyncio.TimeoutError):
        logger.warning("scraper: timeout fetching %s", url)
        return FetchFailure(kind=FailureKind.NETWORK_ERROR, message="timeout")
    except _ResponseTooLarge:
        logger.warning("scraper: response for %s exceeds %d bytes", url, max_bytes)
        return FetchFailure(
            kind=FailureKind.NETWORK_ERROR,
            message=f"response exceeds {max_bytes} bytes",
        )
    except httpx.TooManyRedirects:
        logger.warning("scraper: too many redirects for %s", url)
        return FetchFailure(kind=FailureKind.NETWORK_ERROR, message="too many redirects")
    except httpx.RequestError as exc:
        logger.warning("scraper: request error for %s: %s", url, exc)
        return FetchFailure(kind=FailureKind.NETWORK_ERROR, message=f"request error: {exc}")
