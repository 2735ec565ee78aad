"""Adaptive Scraper: structured single-page extraction over HTTP.

Sub-packages:
- ``config``  — process settings (pydantic-settings)
- ``core``    — logging configuration and the exception hierarchy
- ``scraper`` — the adaptive fetch pipeline
- ``api``     — FastAPI application, routes and metrics
"""

__version__ = "0.1.0"
