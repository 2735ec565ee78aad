"""Adaptive fetch pipeline.

Turns an arbitrary URL into a structured document, escalating from a plain
HTTP fetch to headless-browser rendering when the former is blocked, fails,
or yields too little text.

Sub-modules:
- ``config``             — constants and tuning defaults
- ``models``             — dataclasses and enums shared across stages
- ``url_normalizer``     — raw string to canonical absolute URL
- ``robots_gate``        — robots.txt fetch and longest-match evaluation
- ``block_detector``     — bot-protection signature table
- ``http_fetcher``       — async httpx-based light fetcher
- ``browser_pool``       — long-lived pooled Chromium instance
- ``playwright_fetcher`` — rendered fetch through the pool
- ``content_extractor``  — BeautifulSoup-based structured extraction
- ``pipeline``           — escalation state machine
"""
