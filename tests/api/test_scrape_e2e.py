"""End-to-end tests for ``POST /scrape``.

The app is driven through httpx ``ASGITransport``.  The pipeline's own
outbound HTTP (robots.txt and the light fetch) goes through a plain
``httpx.AsyncClient`` mocked with respx, and the rendered fetch is patched
with an ``AsyncMock``.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx
from fastapi import FastAPI

from adaptive_scraper.api.dependencies import get_pipeline
from adaptive_scraper.scraper.models import FailureKind, FetchFailure, FetchSuccess
from adaptive_scraper.scraper.pipeline import ScrapePipeline

_RENDER = "adaptive_scraper.scraper.pipeline.fetch_url_playwright"

_LONG_TEXT = "Rendered paragraph text. " * 10


def _use(app: FastAPI, pipeline: ScrapePipeline) -> None:
    app.dependency_overrides[get_pipeline] = lambda: pipeline


@pytest.mark.asyncio
class TestScrapeEndToEnd:
    async def test_sparse_page_escalates_to_rendered(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))
        rendered = FetchSuccess(
            html=f"<title>Hi</title><p>{_LONG_TEXT}</p>",
            final_url="https://example.com/",
        )

        with (
            respx.mock(base_url="https://example.com", assert_all_called=True) as mock,
            patch(_RENDER, new_callable=AsyncMock, return_value=rendered) as render,
        ):
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/").mock(
                return_value=httpx.Response(
                    200,
                    text="<title>Hi</title><p>short</p>",
                    headers={"content-type": "text/html"},
                )
            )
            response = await api_client.post("/scrape", json={"url": "example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["engine"] == "rendered"
        assert body["data"]["title"] == "Hi"
        assert body["data"]["text"] == _LONG_TEXT.strip()
        render.assert_awaited_once()
        assert render.await_args.args[0] == "https://example.com/"

    async def test_sufficient_page_stays_light(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))
        html = (
            "<title>Article</title><h1>Heading</h1>"
            f"<p>{_LONG_TEXT}</p><a href='/next'>next</a>"
        )

        with (
            respx.mock(base_url="https://example.com") as mock,
            patch(_RENDER, new_callable=AsyncMock) as render,
        ):
            mock.get("/robots.txt").mock(return_value=httpx.Response(200, text="User-agent: *\nAllow: /\n"))
            mock.get("/article").mock(
                return_value=httpx.Response(200, text=html, headers={"content-type": "text/html"})
            )
            response = await api_client.post(
                "/scrape", json={"url": "https://example.com/article", "usePlaywright": "auto"}
            )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "engine": "light",
            "data": {
                "title": "Article",
                "headings": ["Heading"],
                "links": ["https://example.com/next"],
                "text": _LONG_TEXT.strip(),
            },
        }
        render.assert_not_awaited()

    async def test_captcha_page_is_blocked_without_rendering(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
    ) -> None:
        _use(app, make_pipeline(None))

        with respx.mock(base_url="https://blocked.example") as mock:
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/").mock(
                return_value=httpx.Response(
                    200,
                    text="<html><body><p>Please solve the captcha</p></body></html>",
                    headers={"content-type": "text/html"},
                )
            )
            response = await api_client.post("/scrape", json={"url": "blocked.example"})

        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "reason": "blocked_by_protection",
            "message": "This site appears to be protected (captcha). Scraping blocked.",
            "classification": "captcha",
        }

    async def test_captcha_page_is_blocked_after_rendering(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))
        captcha = "<html><body><p>Please solve the captcha</p></body></html>"

        with (
            respx.mock(base_url="https://blocked.example") as mock,
            patch(_RENDER, new_callable=AsyncMock, return_value=FetchSuccess(html=captcha)) as render,
        ):
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/").mock(
                return_value=httpx.Response(200, text=captcha, headers={"content-type": "text/html"})
            )
            response = await api_client.post("/scrape", json={"url": "blocked.example"})

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["reason"] == "blocked_by_protection"
        assert body["classification"] == "captcha"
        render.assert_awaited_once()

    async def test_invalid_url_makes_no_outbound_call(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))

        with (
            respx.mock(assert_all_called=False) as mock,
            patch(_RENDER, new_callable=AsyncMock) as render,
        ):
            mock.route().mock(return_value=httpx.Response(200))
            response = await api_client.post("/scrape", json={"url": "not a url!!"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["reason"] == "invalid_url"
        assert "classification" not in body
        assert mock.calls.call_count == 0
        render.assert_not_awaited()

    async def test_robots_disallow(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
    ) -> None:
        _use(app, make_pipeline(None))

        with respx.mock(base_url="https://example.com", assert_all_called=False) as mock:
            mock.get("/robots.txt").mock(
                return_value=httpx.Response(200, text="User-agent: *\nDisallow: /private\n")
            )
            page = mock.get("/private/page")
            response = await api_client.post("/scrape", json={"url": "https://example.com/private/page"})

        assert response.status_code == 403
        assert response.json()["reason"] == "robots_block"
        assert page.call_count == 0

    async def test_light_failure_without_rendering(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))

        with (
            respx.mock(base_url="https://example.com") as mock,
            patch(_RENDER, new_callable=AsyncMock) as render,
        ):
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/").mock(side_effect=httpx.ConnectError("refused"))
            response = await api_client.post(
                "/scrape", json={"url": "https://example.com/", "usePlaywright": False}
            )

        assert response.status_code == 502
        assert response.json()["reason"] == "fetch_failed"
        render.assert_not_awaited()

    async def test_render_failure(
        self,
        app: FastAPI,
        api_client: httpx.AsyncClient,
        make_pipeline: Callable[..., ScrapePipeline],
        fake_pool: MagicMock,
    ) -> None:
        _use(app, make_pipeline(fake_pool))
        timeout = FetchFailure(kind=FailureKind.TIMEOUT, message="render timed out after 2s")

        with (
            respx.mock(base_url="https://example.com") as mock,
            patch(_RENDER, new_callable=AsyncMock, return_value=timeout),
        ):
            mock.get("/robots.txt").mock(return_value=httpx.Response(404))
            mock.get("/").mock(
                return_value=httpx.Response(200, text="<div id='app'></div>", headers={"content-type": "text/html"})
            )
            response = await api_client.post("/scrape", json={"url": "https://example.com/"})

        assert response.status_code == 502
        assert response.json()["reason"] == "render_failed"


@pytest.mark.asyncio
class TestScrapeRequestValidation:
    async def test_missing_url_is_422(
        self, app: FastAPI, api_client: httpx.AsyncClient, make_pipeline: Callable[..., ScrapePipeline]
    ) -> None:
        _use(app, make_pipeline(None))
        response = await api_client.post("/scrape", json={})
        assert response.status_code == 422

    async def test_bad_use_playwright_is_422(
        self, app: FastAPI, api_client: httpx.AsyncClient, make_pipeline: Callable[..., ScrapePipeline]
    ) -> None:
        _use(app, make_pipeline(None))
        response = await api_client.post(
            "/scrape", json={"url": "https://example.com/", "usePlaywright": "sometimes"}
        )
        assert response.status_code == 422

    async def test_response_carries_request_id(
        self, app: FastAPI, api_client: httpx.AsyncClient, make_pipeline: Callable[..., ScrapePipeline]
    ) -> None:
        _use(app, make_pipeline(None))
        response = await api_client.post("/scrape", json={"url": "not a url!!"})
        assert response.headers.get("X-Request-ID")
