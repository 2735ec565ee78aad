"""Pydantic schemas for request/response validation.

Sub-modules:
    scrape — ScrapeRequest, ScrapeSuccessResponse, ScrapeFailureResponse
    auth   — GoogleLoginRequest, SessionUser, TokenResponse
"""

from __future__ import annotations
