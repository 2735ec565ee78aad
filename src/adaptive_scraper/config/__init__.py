"""Configuration package for Adaptive Scraper.

Re-exports the settings symbols so that callers can write::

    from adaptive_scraper.config import get_settings
"""

from __future__ import annotations

from adaptive_scraper.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
