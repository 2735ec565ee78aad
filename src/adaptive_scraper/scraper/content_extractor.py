"""Structured extraction from raw HTML.

Parses the document with BeautifulSoup on the ``lxml`` backend (malformed
markup never raises and unclosed ``<p>``/``<hN>`` tags are closed by their
successor, as browsers do) and pulls out the title, h1-h4 headings,
absolute links and paragraph text.  Nothing is executed and nothing is
followed.
"""

from __future__ import annotations

import logging
import urllib.parse

from bs4 import BeautifulSoup, Tag

from adaptive_scraper.scraper.models import ExtractedDocument

logger = logging.getLogger(__name__)

_HEADING_TAGS: list[str] = ["h1", "h2", "h3", "h4"]


def _clean(text: str) -> str:
    # Output never carries NUL bytes.
    return text.replace("\x00", "").strip()


def _resolve_href(href: str, base_url: str) -> str | None:
    """Resolve ``href`` against ``base_url``; ``None`` if it cannot be made absolute."""
    try:
        absolute = urllib.parse.urljoin(base_url, href.strip())
        parts = urllib.parse.urlsplit(absolute)
        # Accessing .port validates it.
        _ = parts.port
    except ValueError:
        return None
    if not parts.scheme:
        return None
    if parts.scheme in ("http", "https") and not parts.netloc:
        return None
    return absolute


def extract_from_html(html: str, base_url: str) -> ExtractedDocument:
    """Extract title, headings, links and paragraph text from raw HTML.

    Args:
        html: Raw HTML string (may be partial or malformed).
        base_url: URL the HTML was fetched from (after redirects); base for
            link resolution.

    Returns:
        An :class:`~adaptive_scraper.scraper.models.ExtractedDocument`.
        Links keep document order and duplicates; hrefs that cannot be
        resolved to an absolute URL are skipped.
    """
    # libxml2 does not tolerate NUL, so drop it before parsing.
    soup = BeautifulSoup((html or "").replace("\x00", ""), "lxml")

    title_tag = soup.find("title")
    title = _clean(title_tag.get_text()) if isinstance(title_tag, Tag) else ""

    headings = [_clean(tag.get_text()) for tag in soup.find_all(_HEADING_TAGS)]

    links: list[str] = []
    skipped = 0
    for tag in soup.find_all("a", href=True):
        href = tag.get("href")
        if not isinstance(href, str):
            continue
        resolved = _resolve_href(href, base_url)
        if resolved is None:
            skipped += 1
            continue
        links.append(resolved)
    if skipped:
        logger.debug("scraper: skipped %d unresolvable links on %s", skipped, base_url)

    paragraphs = [_clean(p.get_text()) for p in soup.find_all("p")]
    text = "\n\n".join(p for p in paragraphs if p)

    return ExtractedDocument(title=title, headings=headings, links=links, text=text)
