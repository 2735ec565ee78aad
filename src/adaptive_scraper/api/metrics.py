"""Prometheus metrics for Adaptive Scraper.

All metrics are module-level singletons registered on the default
``REGISTRY`` when this module is first imported.  Import them from here;
constructing a metric with an already registered name raises ``ValueError``.

Metrics defined here:

  scrape_requests_total{engine, outcome}
      Counter — terminal pipeline outcomes.  ``outcome`` is ``success`` or a
      failure reason code (``robots_block``, ``render_failed``, …);
      ``engine`` is ``light``, ``rendered`` or ``none`` for failures before
      any document was produced.

  scrape_escalations_total{cause}
      Counter — escalations from the light fetch to browser rendering.

  scrape_stage_duration_seconds{stage}
      Histogram — wall-clock duration of each pipeline stage
      (robots, light_fetch, render).

  browser_pages_in_use
      Gauge — browser contexts currently checked out of the pool.

  http_requests_total{method, path, status}
      Counter — HTTP requests handled by the FastAPI application.

  http_request_duration_seconds{method, path}
      Histogram — HTTP request latency in seconds.

Usage::

    from adaptive_scraper.api.metrics import scrape_requests_total
    scrape_requests_total.labels(engine="light", outcome="success").inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Pipeline metrics
# ---------------------------------------------------------------------------

scrape_requests_total: Counter = Counter(
    "scrape_requests_total",
    "Terminal scrape pipeline outcomes by engine and outcome.",
    labelnames=["engine", "outcome"],
)

scrape_escalations_total: Counter = Counter(
    "scrape_escalations_total",
    "Escalations from the light fetch to browser rendering by cause.",
    labelnames=["cause"],
)
"""Labels:
  cause: fetch_failed, blocked, insufficient_text
"""

scrape_stage_duration_seconds: Histogram = Histogram(
    "scrape_stage_duration_seconds",
    "Wall-clock duration of scrape pipeline stages.",
    labelnames=["stage"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0, 30.0, 60.0],
)

browser_pages_in_use: Gauge = Gauge(
    "browser_pages_in_use",
    "Browser contexts currently checked out of the pool.",
)

# ---------------------------------------------------------------------------
# HTTP metrics (populated by middleware in main.py)
# ---------------------------------------------------------------------------

http_requests_total: Counter = Counter(
    "http_requests_total",
    "HTTP requests handled by the FastAPI application.",
    labelnames=["method", "path", "status"],
)
"""Labels:
  method: HTTP method (GET, POST, …)
  path:   route template where possible
  status: HTTP response status code as string (e.g. '200', '403')
"""

http_request_duration_seconds: Histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


# ---------------------------------------------------------------------------
# Response helper
# ---------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Generate a Prometheus text-format metrics response.

    Returns:
        A tuple of (body_bytes, content_type_string) suitable for constructing
        a FastAPI ``Response`` object.
    """
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # noqa: PLC0415

    return generate_latest(), CONTENT_TYPE_LATEST
